"""Perch exception hierarchy.

Shared across the pattern compiler, Router, handler binding, encoders and
middleware so every module raises and catches the same types.

A request that matches no route is *not* an error: ``Router.execute``
returns a ``NoRouteMatched`` value (see ``perch.routing.router``).
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when the route tree is set up incorrectly.

    Typically raised during registration, before the first request.
    """


class PatternError(ConfigurationError):
    """A route template could not be compiled.

    Raised at registration time, e.g. for two wildcards or a wildcard
    that is not the final segment.
    """

    def __init__(self, template: str, reason: str) -> None:
        self.template = template
        self.reason = reason
        super().__init__(f"Invalid route pattern {template!r}: {reason}")


class MissingParameterError(PerchError):
    """A required handler parameter has no bound value.

    The parameter is not nullable, has no default and was not captured
    by the matched path pattern.
    """

    def __init__(self, handler_name: str, param_name: str) -> None:
        self.handler_name = handler_name
        self.param_name = param_name
        super().__init__(
            f"Handler {handler_name!r} requires parameter {param_name!r}, "
            "but the matched route did not bind it."
        )


class ParameterConversionError(PerchError):
    """A bound path value could not be converted to the declared type."""

    def __init__(self, param_name: str, value: str, target: type) -> None:
        self.param_name = param_name
        self.value = value
        self.target = target
        super().__init__(
            f"Cannot convert {value!r} to {target.__name__} for parameter {param_name!r}."
        )


class InvalidResponseValue(PerchError):
    """An encoder received a value it cannot render."""


class IllegalState(PerchError):
    """An internal invariant was violated. Indicates a programming error."""


class RenderError(PerchError):
    """A template failed to load or render."""


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Middleware turns these into ``Halt`` responses; the core itself never
    catches them.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)
