"""Immutable HTTP request.

The dispatch core never reads a socket. The embedding server parses the
request line, headers and body, and hands perch a ``Request``.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote, urlsplit

from perch.http.multimap import Headers, QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable, already-parsed HTTP request.

    Construct directly or via ``Request.build()`` which splits a request
    target into path and query string::

        request = Request.build("GET", "/users/42?expand=1", headers={"Accept": "*/*"})
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query: QueryParams = field(default_factory=QueryParams)
    raw_body: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())

    def header(self, name: str) -> str | None:
        """Return the first value of header *name*, or ``None``."""
        return self.headers.get(name)

    def body(self) -> bytes:
        """The raw request body."""
        return self.raw_body

    def text(self) -> str:
        """The body decoded as UTF-8."""
        return self.raw_body.decode("utf-8")

    def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(self.raw_body)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Path plus query string."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw}"
        return self.path

    @classmethod
    def build(
        cls,
        method: str,
        target: str,
        *,
        headers: Iterable[tuple[str, str]] | Mapping[str, str] = (),
        body: bytes | str = b"",
    ) -> Request:
        """Create a Request from a method and a raw request target."""
        parts = urlsplit(target)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            method=method,
            path=unquote(parts.path) or "/",
            headers=Headers(headers),
            query=QueryParams(parts.query),
            raw_body=body,
        )
