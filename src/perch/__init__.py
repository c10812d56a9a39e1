"""Perch — a recursive HTTP request router.

Routes map a method and a path template to a handler. Routers nest:
mount one router under a prefix of another and its routes resolve
relative to that prefix, with the parent's bindings inherited.

Basic usage::

    from perch import Router, Request

    router = Router()

    @router.get("/hello/{name}")
    def hello(name: str):
        return f"Hello, {name}!"

    response = router.execute(Request.build("GET", "/hello/world"))

Templates (``pip install perch[templates]``)::

    from perch import RouterConfig, Template
    router = Router(config=RouterConfig(template_dir="templates"))

    @router.get("/")
    def index():
        return Template("index.html", title="Home")
"""

__version__ = "0.1.0"
__all__ = [
    "CONTINUE",
    "ConfigurationError",
    "Context",
    "HTTPError",
    "Halt",
    "HtmlResponse",
    "JavaScriptResponse",
    "JsonResponse",
    "Middleware",
    "NoRouteMatched",
    "PerchError",
    "Redirect",
    "Request",
    "Response",
    "Router",
    "RouterConfig",
    "SerializeResponse",
    "Template",
    "TestClient",
    "get_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name in ("Router", "NoRouteMatched"):
        from perch.routing import router as _router

        return getattr(_router, name)

    if name == "RouterConfig":
        from perch.config import RouterConfig

        return RouterConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("HtmlResponse", "JavaScriptResponse", "JsonResponse", "SerializeResponse"):
        from perch.http import encoders as _enc

        return getattr(_enc, name)

    if name == "Template":
        from perch.templating import Template

        return Template

    if name in ("CONTINUE", "Halt", "Middleware"):
        from perch.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("Context", "get_context"):
        from perch import context as _ctx

        return getattr(_ctx, name)

    if name == "TestClient":
        from perch.testing import TestClient

        return TestClient

    if name in ("PerchError", "ConfigurationError", "HTTPError"):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
