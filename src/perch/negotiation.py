"""Content negotiation — maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

from typing import Any

from perch.context import Context
from perch.errors import ConfigurationError, IllegalState
from perch.http.encoders import HtmlResponse
from perch.http.response import Redirect, Response
from perch.templating import Template, TemplateRenderer

_HTML = HtmlResponse()


def _is_status(value: object) -> bool:
    """True for a real int in the HTTP status range; bools are not statuses."""
    return type(value) is int and 100 <= value <= 599


def negotiate(
    value: Any,
    context: Context,
    *,
    renderer: TemplateRenderer | None = None,
) -> Response:
    """Convert a handler's return value to a Response.

    Dispatch order:

    1. ``Response``            -> pass through
    2. ``Redirect``            -> empty body with Location header
    3. ``Template``            -> render via kida -> text/html
    4. ``(value, status)``     -> negotiate value with the status overridden (tuples only,
                                  status an int in 100..599)
    5. ``(value, status, dict)`` -> same, plus the dict as extra headers
    6. anything else           -> the context's encoder, at ``context.response_code``
    """
    match value:
        case Response():
            return value
        case Redirect():
            return value.to_response()
        case Template():
            if renderer is None:
                msg = (
                    "Template return type requires a TemplateRenderer. "
                    "Pass renderer=... to the Router or set template_dir in RouterConfig."
                )
                raise ConfigurationError(msg)
            html = renderer.render(value.name, value.context)
            return _HTML.respond(html, status=context.response_code)
        case tuple((inner, int() as status)) if _is_status(status):
            context.response_code = status
            return negotiate(inner, context, renderer=renderer).with_status(status)
        case tuple((inner, int() as status, dict() as headers)) if _is_status(status):
            context.response_code = status
            return (
                negotiate(inner, context, renderer=renderer)
                .with_status(status)
                .with_headers(headers)
            )

    if context.encoder is None:
        msg = "Context has no encoder; it was not produced by Router.resolve()."
        raise IllegalState(msg)
    return context.encoder.respond(value, status=context.response_code, elapsed=context.elapsed)
