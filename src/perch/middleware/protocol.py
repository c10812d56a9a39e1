"""Middleware protocol and pipeline decisions.

A middleware is any object with an ``apply`` method, or any plain
callable, matching::

    def apply(route: Route, context: Context) -> MiddlewareDecision: ...

No base class required. The pipeline checks the shape, not the lineage.

A middleware either lets the request through (``CONTINUE``) or ends the
pipeline with a substitute response (``Halt(response)``). There is no
third outcome and no shared flag to flip.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from perch.http.response import Response

if TYPE_CHECKING:
    from perch.context import Context
    from perch.routing.route import Route

logger = logging.getLogger("perch.middleware")


@dataclass(frozen=True, slots=True)
class Continue:
    """Proceed to the next middleware, then the handler."""


@dataclass(frozen=True, slots=True)
class Halt:
    """Stop the pipeline and answer with *response*."""

    response: Response


CONTINUE = Continue()

type MiddlewareDecision = Continue | Halt


@runtime_checkable
class Middleware(Protocol):
    """Protocol for perch middleware.

    Accepts both objects and functions::

        # Object middleware
        class RequireJson:
            def apply(self, route: Route, context: Context) -> MiddlewareDecision:
                if context.request.content_type != "application/json":
                    return Halt(Response(b"expected JSON", status=415))
                return CONTINUE

        # Function middleware
        def stamp(route: Route, context: Context) -> MiddlewareDecision:
            context.state["stamped"] = True
            return CONTINUE
    """

    def apply(self, route: Route, context: Context) -> MiddlewareDecision: ...


type AnyMiddleware = Middleware | Callable[[Route, Context], MiddlewareDecision]


def apply_middleware(middleware: AnyMiddleware, route: Route, context: Context) -> MiddlewareDecision:
    """Invoke one middleware, whichever shape it has."""
    apply = getattr(middleware, "apply", None)
    decision = apply(route, context) if apply is not None else middleware(route, context)  # type: ignore[operator]
    if not isinstance(decision, (Continue, Halt)):
        msg = (
            f"Middleware {middleware!r} returned {decision!r}; "
            "expected CONTINUE or Halt(response)."
        )
        raise TypeError(msg)
    return decision


def run_pipeline(
    middleware: Iterable[AnyMiddleware],
    route: Route,
    context: Context,
) -> Halt | None:
    """Fold *middleware* in order. Returns the first ``Halt``, or None.

    On halt the response and its status are written to *context*; later
    middleware does not run.
    """
    for mw in middleware:
        decision = apply_middleware(mw, route, context)
        if isinstance(decision, Halt):
            logger.debug(
                "Pipeline halted by %r with status %d", mw, decision.response.status
            )
            context.set_response(decision.response)
            return decision
    return None
