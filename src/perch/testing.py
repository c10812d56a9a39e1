"""In-process test client for perch routers.

Uses the same Request and Response types as production.
No wrapper translation layer, no network.
"""

import json as json_module
from urllib.parse import urlencode

from perch.http.request import Request
from perch.http.response import Response
from perch.routing.router import NoRouteMatched, Router


class TestClient:
    """Synchronous test client for a perch router.

    Returns the ``Response`` that ``Router.execute()`` produces. When no
    route matches, returns an empty 404 response instead of
    ``NoRouteMatched``::

        client = TestClient(router)
        response = client.get("/users/42")
        assert response.status == 200
    """

    __test__ = False  # Tell pytest this is not a test class

    __slots__ = ("router",)

    def __init__(self, router: Router) -> None:
        self.router = router

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        query: dict[str, str] | None = None,
        body: bytes | str = b"",
    ) -> Response:
        """Send a request with any method."""
        if query:
            separator = "&" if "?" in path else "?"
            path = f"{path}{separator}{urlencode(query)}"
        request = Request.build(method, path, headers=headers or {}, body=body)
        result = self.router.execute(request)
        if isinstance(result, NoRouteMatched):
            return Response(status=result.status)
        return result

    def get(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        query: dict[str, str] | None = None,
    ) -> Response:
        """Send a GET request."""
        return self.request("GET", path, headers=headers, query=query)

    def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | str = b"",
        json: object = None,
    ) -> Response:
        """Send a POST request. ``json`` is encoded as the body."""
        extra_headers: dict[str, str] = {}
        if json is not None:
            body = json_module.dumps(json).encode("utf-8")
            extra_headers["Content-Type"] = "application/json"
        merged = {**extra_headers, **(headers or {})}
        return self.request("POST", path, headers=merged, body=body)

    def put(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | str = b"",
    ) -> Response:
        """Send a PUT request."""
        return self.request("PUT", path, headers=headers, body=body)

    def patch(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | str = b"",
    ) -> Response:
        """Send a PATCH request."""
        return self.request("PATCH", path, headers=headers, body=body)

    def delete(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> Response:
        """Send a DELETE request."""
        return self.request("DELETE", path, headers=headers)
