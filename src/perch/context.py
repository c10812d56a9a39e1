"""Per-request routing context.

A ``Context`` is created for every successful match during resolution and
carries the consumed path, the bound parameters, the link to the context
of the mount it was resolved through, and the eventual response.

Provides:
- ``Context``: the per-request state object.
- ``context_var`` / ``get_context()``: the context being executed in the
  current thread or task.

Thread safety:
    Contexts are never shared between requests. ``ContextVar`` is
    task-local under asyncio and thread-local under threads, so handlers
    on concurrent requests each see their own context.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from perch.http.response import Redirect, Response

if TYPE_CHECKING:
    from perch.http.encoders import ResponseEncoder
    from perch.http.request import Request
    from perch.routing.descriptor import HandlerDescriptor
    from perch.routing.route import Route


@dataclass(slots=True)
class Context:
    """Mutable state for one resolution attempt.

    ``params`` already contains the bindings of every ancestor context,
    overridden by this route's own bindings. ``state`` is free-form
    storage for middleware (e.g. an authenticated owner id).
    """

    path: str = ""
    params: dict[str, str | None] = field(default_factory=dict)
    parent: Context | None = None
    route: Route | None = None
    request: Request | None = None
    response_code: int = 200
    response: Response | None = None
    descriptor: HandlerDescriptor | None = None
    encoder: ResponseEncoder | None = None
    state: dict[str, Any] = field(default_factory=dict)
    started: float = field(default_factory=time.perf_counter)

    # -- Response helpers --

    def set_response(self, response: Response) -> None:
        """Set the final response and adopt its status code."""
        self.response = response
        self.response_code = response.status

    def redirect(self, url: str, status: int = 302) -> None:
        """Write a redirect as the final response.

        Intended for void handlers (``-> None``)::

            @router.post("/logout")
            def logout(context: Context) -> None:
                context.redirect("/")
        """
        self.set_response(Redirect(url, status).to_response())

    @property
    def elapsed(self) -> float:
        """Seconds since resolution created this context."""
        return time.perf_counter() - self.started

    # -- Ancestry --

    def ancestors(self) -> Iterator[Context]:
        """Yield enclosing contexts, innermost first."""
        ctx = self.parent
        while ctx is not None:
            yield ctx
            ctx = ctx.parent

    @property
    def root(self) -> Context:
        """The outermost context of the chain."""
        ctx = self
        while ctx.parent is not None:
            ctx = ctx.parent
        return ctx


context_var: ContextVar[Context] = ContextVar("perch_context")
"""The context being executed. Set by ``Router.execute``."""


def get_context() -> Context:
    """Return the context of the request being executed.

    Raises ``LookupError`` if called outside ``Router.execute``.
    """
    return context_var.get()
