"""Router — ordered routes, recursive resolution, and request execution.

Routes are registered during setup. The first ``resolve()`` or
``execute()`` freezes the router tree; after that it is read-only and can
be shared across threads without locking.

Resolution walks routes in declaration order and the first match wins.
There is no specificity scoring: register ``/users/me`` before
``/users/{id}`` if both should work. A mount whose prefix matches but
whose nested router finds nothing does not commit; scanning continues
with the next sibling route.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from perch.config import RouterConfig
from perch.context import Context, context_var
from perch.errors import ConfigurationError
from perch.http.encoders import ResponseEncoder, encoder_for
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import AnyMiddleware, run_pipeline
from perch.negotiation import negotiate
from perch.routing.descriptor import HandlerDescriptor, ParamSpec
from perch.routing.pattern import compile_pattern
from perch.routing.route import ANY_METHOD, Callback, Mount, Route
from perch.templating import TemplateRenderer

logger = logging.getLogger("perch.routing")

type Handler = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class NoRouteMatched:
    """Outcome of ``execute()`` when no route and method combination matches.

    Not an exception: the embedding server decides the transport status.
    ``status`` carries the conventional mapping.
    """

    method: str
    path: str
    status: int = 404


@dataclass(frozen=True, slots=True)
class Resolution:
    """A successful resolution: the terminal route and its context.

    ``chain`` lists the ``(router, route)`` pair taken at every level,
    outermost first; the last pair holds the terminal callback route.
    """

    route: Route
    context: Context
    chain: tuple[tuple[Router, Route], ...]
    renderer: TemplateRenderer | None = None

    @property
    def middleware(self) -> tuple[AnyMiddleware, ...]:
        """Pipeline order: outermost router first, terminal route last."""
        result: list[AnyMiddleware] = []
        for router, route in self.chain:
            result.extend(router.middleware)
            result.extend(route.middleware)
        return tuple(result)


class Router:
    """An ordered collection of routes with a resolution entry point.

    Usage::

        api = Router(response=JsonResponse())

        @api.get("/users/{id:int}")
        def user(id: int):
            return {"id": id}

        root = Router()
        root.mount("/api", api)
        response = root.execute(Request.build("GET", "/api/users/42"))
    """

    __slots__ = (
        "__weakref__",
        "_config",
        "_encoder",
        "_frozen",
        "_middleware",
        "_mount_path",
        "_parent",
        "_renderer",
        "_routes",
    )

    def __init__(
        self,
        *,
        config: RouterConfig | None = None,
        response: ResponseEncoder | None = None,
        renderer: TemplateRenderer | None = None,
        middleware: Iterable[AnyMiddleware] = (),
    ) -> None:
        self._config = config or RouterConfig()
        self._encoder = response
        self._renderer = renderer
        self._middleware: list[AnyMiddleware] = list(middleware)
        self._routes: list[Route] = []
        self._parent: weakref.ref[Router] | None = None
        self._mount_path = ""
        self._frozen = False

    # -- Introspection --

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def routes(self) -> tuple[Route, ...]:
        """Routes in declaration order."""
        return tuple(self._routes)

    @property
    def middleware(self) -> tuple[AnyMiddleware, ...]:
        return tuple(self._middleware)

    @property
    def parent(self) -> Router | None:
        """The router this one is mounted in, if it is still alive."""
        return self._parent() if self._parent is not None else None

    @property
    def prefix(self) -> str:
        """The template prefix under which this router is mounted, from the root."""
        parent = self.parent
        if parent is None:
            return ""
        return _join(parent.prefix, self._mount_path)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def iter_routes(self, prefix: str = "") -> Iterator[tuple[str, Route]]:
        """Yield ``(full_template, route)`` for every callback route, depth first."""
        for route in self._routes:
            full = _join(prefix, route.path)
            if isinstance(route.target, Mount):
                yield from route.target.router.iter_routes(full)
            else:
                yield full, route

    def validatable_params(self) -> tuple[ParamSpec, ...]:
        """Validation descriptors of every route, in declaration order."""
        specs: list[ParamSpec] = []
        for route in self._routes:
            specs.extend(route.validatable_params())
        return tuple(specs)

    # -- Registration --

    def register(
        self,
        methods: Iterable[str],
        pattern: str,
        handler: Handler,
        options: Mapping[str, Any] | None = None,
        *,
        middleware: Iterable[AnyMiddleware] = (),
        name: str | None = None,
        encoder: ResponseEncoder | None = None,
        descriptor: HandlerDescriptor | None = None,
    ) -> Route:
        """Register *handler* for *methods* on *pattern*.

        Raises ``PatternError`` for malformed templates and
        ``ConfigurationError`` after the router is frozen.
        """
        self._check_mutable()
        if not callable(handler):
            msg = f"Handler for {pattern!r} is not callable: {handler!r}"
            raise ConfigurationError(msg)
        route = Route(
            methods=_normalize_methods(methods, pattern),
            pattern=compile_pattern(pattern),
            target=Callback(handler, descriptor),
            options=MappingProxyType(dict(options or {})),
            middleware=tuple(middleware),
            name=name,
            encoder=encoder,
        )
        self._routes.append(route)
        return route

    def mount(
        self,
        prefix: str,
        router: Router,
        options: Mapping[str, Any] | None = None,
        *,
        methods: Iterable[str] = (ANY_METHOD,),
        middleware: Iterable[AnyMiddleware] = (),
    ) -> Route:
        """Mount *router* under *prefix*.

        The nested router sees request paths relative to the prefix. A
        router can be mounted in one parent only.
        """
        self._check_mutable()
        ancestor: Router | None = self
        while ancestor is not None:
            if ancestor is router:
                msg = "A router cannot be mounted inside itself or its own subtree."
                raise ConfigurationError(msg)
            ancestor = ancestor.parent
        if router.parent is not None and router.parent is not self:
            msg = f"Router is already mounted under {router.prefix!r}."
            raise ConfigurationError(msg)

        pattern = compile_pattern(prefix)
        if pattern.has_wildcard:
            msg = f"Mount prefix {prefix!r} cannot contain a wildcard."
            raise ConfigurationError(msg)

        route = Route(
            methods=_normalize_methods(methods, prefix),
            pattern=pattern,
            target=Mount(router),
            options=MappingProxyType(dict(options or {})),
            middleware=tuple(middleware),
        )
        router._parent = weakref.ref(self)
        router._mount_path = prefix
        self._routes.append(route)
        return route

    def use(self, middleware: AnyMiddleware) -> None:
        """Attach *middleware* to every route of this router and of nested routers."""
        self._check_mutable()
        self._middleware.append(middleware)

    def route(
        self,
        pattern: str,
        *,
        methods: Iterable[str] = ("GET",),
        options: Mapping[str, Any] | None = None,
        middleware: Iterable[AnyMiddleware] = (),
        name: str | None = None,
        encoder: ResponseEncoder | None = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of ``register()``. Returns the handler unchanged."""

        def decorator(handler: Handler) -> Handler:
            self.register(
                methods,
                pattern,
                handler,
                options,
                middleware=middleware,
                name=name,
                encoder=encoder,
            )
            return handler

        return decorator

    def get(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("GET",), **kwargs)

    def post(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("POST",), **kwargs)

    def put(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("PUT",), **kwargs)

    def patch(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("PATCH",), **kwargs)

    def delete(self, pattern: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(pattern, methods=("DELETE",), **kwargs)

    def freeze(self) -> None:
        """Make this router and every nested router read-only."""
        if self._frozen:
            return
        if self._renderer is None and self._config.template_dir is not None:
            self._renderer = TemplateRenderer(
                self._config.template_dir, autoescape=self._config.autoescape
            )
        self._frozen = True
        for route in self._routes:
            if isinstance(route.target, Mount):
                route.target.router.freeze()

    def _check_mutable(self) -> None:
        if self._frozen:
            msg = "Cannot modify a router after it has started resolving requests."
            raise ConfigurationError(msg)

    # -- Resolution --

    def resolve(
        self,
        path: str,
        method: str,
        *,
        request: Request | None = None,
    ) -> Resolution | None:
        """Find the callback route for *path* and *method*.

        Returns ``None`` when nothing matches.
        """
        self.freeze()
        method = method.upper()
        found = self._resolve(path, method, MappingProxyType({}), "", None, (), request)
        if found is None:
            logger.debug("No route matches %s %s", method, path)
            return None

        route, context, chain = found
        context.encoder = self._encoder_for(route, chain)
        logger.debug("%s %s -> %s %r", method, path, route.path, context.params)
        return Resolution(
            route=route,
            context=context,
            chain=chain,
            renderer=self._renderer_for(chain),
        )

    def _resolve(
        self,
        path: str,
        method: str,
        inherited: Mapping[str, str | None],
        base: str,
        parent: Context | None,
        chain: tuple[tuple[Router, Route], ...],
        request: Request | None,
    ) -> tuple[Route, Context, tuple[tuple[Router, Route], ...]] | None:
        for route in self._routes:
            if not route.allows(method):
                continue
            match = route.match(path)
            if match is None:
                continue

            context = Context(
                path=_join(base, match.consumed),
                params={**inherited, **match.params},
                parent=parent,
                route=route,
                request=request,
            )
            step = (*chain, (self, route))

            if isinstance(route.target, Mount):
                relative = path[len(match.consumed) :]
                if not relative:
                    relative = "/"
                elif not relative.startswith("/"):
                    relative = "/" + relative
                found = route.target.router._resolve(
                    relative,
                    method,
                    MappingProxyType(dict(context.params)),
                    context.path,
                    context,
                    step,
                    request,
                )
                if found is not None:
                    return found
                logger.debug(
                    "Mount %r matched %r but its router did not; trying siblings",
                    route.path,
                    path,
                )
                continue

            return route, context, step
        return None

    def _encoder_for(
        self, route: Route, chain: tuple[tuple[Router, Route], ...]
    ) -> ResponseEncoder:
        if route.encoder is not None:
            return route.encoder
        for router, _ in reversed(chain):
            if router._encoder is not None:
                return router._encoder
        return encoder_for(
            self._config.default_response,
            json_with_defaults=self._config.json_with_defaults,
        )

    def _renderer_for(self, chain: tuple[tuple[Router, Route], ...]) -> TemplateRenderer | None:
        for router, _ in reversed(chain):
            if router._renderer is not None:
                return router._renderer
        return self._renderer

    # -- Execution --

    def execute(self, request: Request, respond: bool = True) -> Any:
        """Resolve and run *request*.

        Returns:
            ``NoRouteMatched`` when nothing matches. The halt ``Response``
            when middleware stops the pipeline. Otherwise the negotiated
            ``Response`` if *respond* is true, or the handler's raw return
            value if it is false.

        Raises:
            MissingParameterError: A required handler parameter is unbound.
            ParameterConversionError: A path value does not fit its type.
            InvalidResponseValue: The encoder cannot render the value.
        """
        resolution = self.resolve(request.path, request.method, request=request)
        if resolution is None:
            return NoRouteMatched(method=request.method, path=request.path)

        context = resolution.context
        token = context_var.set(context)
        try:
            halted = run_pipeline(resolution.middleware, resolution.route, context)
            if halted is not None:
                return halted.response

            result = resolution.route.invoke(context)

            if context.descriptor is not None and context.descriptor.returns_void:
                if not respond:
                    return None
                if context.response is None:
                    context.response = Response(status=context.response_code)
                return context.response

            if not respond:
                return result

            response = negotiate(result, context, renderer=resolution.renderer)
            context.set_response(response)
            return response
        finally:
            context_var.reset(token)

    def __repr__(self) -> str:
        return f"<Router routes={len(self._routes)} prefix={self.prefix!r}>"


def _normalize_methods(methods: Iterable[str], pattern: str) -> frozenset[str]:
    if isinstance(methods, str):
        methods = (methods,)
    normalized = frozenset(m.upper() for m in methods)
    if not normalized:
        msg = f"Route {pattern!r} must allow at least one method."
        raise ConfigurationError(msg)
    return normalized


def _join(prefix: str, path: str) -> str:
    """Join two path templates with exactly one slash between them."""
    prefix = prefix.rstrip("/")
    path = path.strip("/")
    if not path:
        return prefix or "/"
    return f"{prefix}/{path}"
