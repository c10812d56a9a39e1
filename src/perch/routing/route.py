"""Route and its closed target variant.

A route binds a set of HTTP methods and a compiled path pattern to one of
two targets:

    Callback(handler)   invoke a handler function
    Mount(router)       delegate the path remainder to a nested router

Routes are created during setup and never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from perch.errors import IllegalState
from perch.routing.descriptor import HandlerDescriptor, ParamSpec, bind_arguments, describe_handler
from perch.routing.pattern import PathPattern, PatternMatch

if TYPE_CHECKING:
    from perch.context import Context
    from perch.http.encoders import ResponseEncoder
    from perch.middleware.protocol import AnyMiddleware
    from perch.routing.router import Router

ANY_METHOD = "*"


class Callback:
    """Route target that invokes a handler.

    The handler descriptor is computed on first use and cached. Computing
    it twice under a race yields an identical value, so no lock is taken.
    """

    __slots__ = ("_descriptor", "handler")

    def __init__(
        self,
        handler: Callable[..., Any],
        descriptor: HandlerDescriptor | None = None,
    ) -> None:
        self.handler = handler
        self._descriptor = descriptor

    @property
    def descriptor(self) -> HandlerDescriptor:
        if self._descriptor is None:
            self._descriptor = describe_handler(self.handler)
        return self._descriptor

    def __repr__(self) -> str:
        return f"Callback({getattr(self.handler, '__qualname__', self.handler)!r})"


@dataclass(frozen=True, slots=True)
class Mount:
    """Route target that delegates to a nested router."""

    router: Router


type RouteTarget = Callback | Mount


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition."""

    methods: frozenset[str]
    pattern: PathPattern
    target: RouteTarget
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    middleware: tuple[AnyMiddleware, ...] = ()
    name: str | None = None
    encoder: ResponseEncoder | None = None

    @property
    def path(self) -> str:
        """The template this route was registered with."""
        return self.pattern.template

    @property
    def is_mount(self) -> bool:
        return isinstance(self.target, Mount)

    def allows(self, method: str) -> bool:
        return ANY_METHOD in self.methods or method.upper() in self.methods

    def match(self, path: str) -> PatternMatch | None:
        """Match *path*. Mount routes match as a prefix, callbacks in full."""
        return self.pattern.match(path, prefix=self.is_mount)

    def invoke(self, context: Context) -> Any:
        """Call the handler with arguments bound from *context*.

        Records the descriptor on the context. Mount routes cannot be
        invoked: resolution always hands back the terminal callback route.
        """
        match self.target:
            case Callback() as callback:
                descriptor = callback.descriptor
                context.descriptor = descriptor
                args, kwargs = bind_arguments(descriptor, context.params, context)
                return callback.handler(*args, **kwargs)
            case Mount():
                msg = f"Mount route {self.path!r} was asked to execute; resolve the request first."
                raise IllegalState(msg)

    def validatable_params(self) -> tuple[ParamSpec, ...]:
        """Scalar, non-path inputs declared by the handler(s) behind this route.

        For a mount, aggregates every route of the nested router.
        """
        bound = self.pattern.param_names
        match self.target:
            case Callback() as callback:
                return callback.descriptor.validatable(exclude=bound)
            case Mount(router=router):
                return tuple(
                    spec for spec in router.validatable_params() if spec.name not in bound
                )
        return ()
