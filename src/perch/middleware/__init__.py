"""Middleware — Protocol-based, no inheritance required.

A middleware is any object with ``apply(route, context)`` (or a plain
callable with that signature) returning ``CONTINUE`` or ``Halt(response)``.

Built-in middleware:
    BearerTokenMiddleware -- Bearer-token authentication with route scopes
"""

from perch.middleware.auth import BearerConfig, BearerTokenMiddleware, TokenInfo
from perch.middleware.protocol import (
    CONTINUE,
    AnyMiddleware,
    Continue,
    Halt,
    Middleware,
    MiddlewareDecision,
)

__all__ = [
    "CONTINUE",
    "AnyMiddleware",
    "BearerConfig",
    "BearerTokenMiddleware",
    "Continue",
    "Halt",
    "Middleware",
    "MiddlewareDecision",
    "TokenInfo",
]
