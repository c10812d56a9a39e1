"""WSGI adapter — serves a router from any WSGI server.

Translates the environ into a ``Request``, runs ``Router.execute()``, and
emits the resulting ``Response``::

    from wsgiref.simple_server import make_server
    from perch.wsgi import WSGIAdapter

    make_server("127.0.0.1", 8000, WSGIAdapter(router)).serve_forever()
"""

import logging
from collections.abc import Callable, Iterable
from http import HTTPStatus
from typing import Any

from perch.errors import HTTPError, PerchError
from perch.http.multimap import Headers, QueryParams
from perch.http.request import Request
from perch.http.response import Response
from perch.routing.router import NoRouteMatched, Router

logger = logging.getLogger("perch.wsgi")

type Environ = dict[str, Any]
type StartResponse = Callable[..., Any]


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _status_line(status: int) -> str:
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return f"{status} Unknown"


def request_from_environ(environ: Environ) -> Request:
    """Build a ``Request`` from a PEP 3333 environ."""
    headers: list[tuple[str, str]] = []
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers.append((key[5:].replace("_", "-").title(), value))
    if environ.get("CONTENT_TYPE"):
        headers.append(("Content-Type", environ["CONTENT_TYPE"]))
    if environ.get("CONTENT_LENGTH"):
        headers.append(("Content-Length", environ["CONTENT_LENGTH"]))

    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    stream = environ.get("wsgi.input")
    body = stream.read(length) if stream is not None and length > 0 else b""

    # PEP 3333 hands the path over as latin-1 decoded bytes.
    path = environ.get("PATH_INFO", "").encode("latin-1").decode("utf-8", "replace")

    return Request(
        method=environ.get("REQUEST_METHOD", "GET"),
        path=path or "/",
        headers=Headers(headers),
        query=QueryParams(environ.get("QUERY_STRING", "")),
        raw_body=body,
    )


class WSGIAdapter:
    """A WSGI application wrapping a perch router.

    ``NoRouteMatched`` becomes a plain 404. An ``HTTPError`` raised by a
    handler becomes its status, detail and headers. Any other
    ``PerchError`` is logged and answered with 500.
    """

    __slots__ = ("router",)

    def __init__(self, router: Router) -> None:
        self.router = router

    def __call__(self, environ: Environ, start_response: StartResponse) -> Iterable[bytes]:
        request = request_from_environ(environ)
        response = self.handle(request)

        body = response.body if _body_allowed(response.status) else b""
        headers = list(response.headers)
        if not any(name.lower() == "content-length" for name, _ in headers):
            headers.append(("Content-Length", str(len(body))))
        start_response(_status_line(response.status), headers)
        if request.method == "HEAD":
            return [b""]
        return [body]

    def handle(self, request: Request) -> Response:
        """Execute *request* and map every outcome to a ``Response``."""
        try:
            result = self.router.execute(request)
        except HTTPError as exc:
            logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
            detail = exc.detail or f"Error {exc.status}"
            return Response(body=detail, status=exc.status, headers=tuple(exc.headers)).with_header(
                "Content-Type", "text/plain; charset=utf-8"
            )
        except PerchError as exc:
            logger.exception("500 %s %s", request.method, request.path)
            body = f"500: {exc}" if self.router.config.debug else "Internal Server Error"
            return Response(
                body=body,
                status=500,
                headers=(("Content-Type", "text/plain; charset=utf-8"),),
            )

        if isinstance(result, NoRouteMatched):
            logger.debug("%d %s %s", result.status, result.method, result.path)
            return Response(
                body="Not Found",
                status=result.status,
                headers=(("Content-Type", "text/plain; charset=utf-8"),),
            )
        return result
