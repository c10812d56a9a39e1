"""Response encoders — turn a handler's return value into a body.

Each encoder owns a fixed set of base headers and a ``render()`` contract.
``respond()`` combines both into a ``Response``. Encoders never mutate the
value they are given.

    HtmlResponse        scalars only, text/html
    JsonResponse        JSON, optionally wrapped in the default envelope
    JavaScriptResponse  raw script text, text/javascript
    SerializeResponse   pickled value, text/plain
"""

import json as json_module
import pickle
import re
from collections.abc import Mapping
from typing import Any, ClassVar

from perch.errors import ConfigurationError, InvalidResponseValue
from perch.http.response import Response

# Escapes applied to JSON output so it can be embedded in HTML safely.
_JSON_HTML_ESCAPES: dict[str, str] = {
    "<": "\\u003C",
    ">": "\\u003E",
    "&": "\\u0026",
    "'": "\\u0027",
}
_JSON_QUOTE_RE = re.compile(r'\\\\|\\"')


class ResponseEncoder:
    """Base class for encoders.

    Subclasses set ``headers`` and implement ``render()``.
    """

    name: ClassVar[str] = ""
    headers: tuple[tuple[str, str], ...] = ()

    def render(self, value: Any, *, status: int = 200, elapsed: float = 0.0) -> bytes:
        raise NotImplementedError

    def respond(self, value: Any, *, status: int = 200, elapsed: float = 0.0) -> Response:
        """Render *value* into a ``Response`` carrying this encoder's headers."""
        body = self.render(value, status=status, elapsed=elapsed)
        return Response(body=body, status=status, headers=self.headers)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class HtmlResponse(ResponseEncoder):
    """Renders ``str(value)`` for scalar values."""

    name = "html"
    headers = (("Content-Type", "text/html; charset=utf-8"),)

    def render(self, value: Any, *, status: int = 200, elapsed: float = 0.0) -> bytes:
        if not isinstance(value, (str, int, float, bool)):
            msg = f"HtmlResponse needs a scalar value, got {type(value).__name__}."
            raise InvalidResponseValue(msg)
        return str(value).encode("utf-8")


class JsonResponse(ResponseEncoder):
    """JSON encoder with an optional response envelope.

    With ``with_defaults=True`` the value is wrapped::

        {"header": {"execution_time": 0.0012, "response_code": 200},
         "data": <value>,
         "success": true}

    A mapping with an ``error`` key is reported under ``error`` instead of
    ``data``, and ``success`` then follows the response code.
    """

    name = "json"
    headers = (
        ("Access-Control-Allow-Headers", "*"),
        ("Access-Control-Allow-Methods", "GET, PUT, PATCH, DELETE, POST, OPTIONS"),
        ("Access-Control-Allow-Origin", "*"),
        ("Content-Type", "application/json; charset=utf-8"),
        ("X-Content-Type-Options", "nosniff"),
        ("X-Frame-Options", "deny"),
    )

    __slots__ = ("with_defaults",)

    def __init__(self, with_defaults: bool = True) -> None:
        self.with_defaults = with_defaults

    def envelope(self, value: Any, *, status: int = 200, elapsed: float = 0.0) -> dict[str, Any]:
        """Build the default envelope around *value* without touching it."""
        result: dict[str, Any] = {
            "header": {"execution_time": round(elapsed, 6), "response_code": status},
        }
        if isinstance(value, Mapping) and "error" in value:
            result["error"] = value["error"]
            result["success"] = status < 400
        else:
            result["data"] = value
            result["success"] = True
        return result

    def render(self, value: Any, *, status: int = 200, elapsed: float = 0.0) -> bytes:
        payload = self.envelope(value, status=status, elapsed=elapsed) if self.with_defaults else value
        try:
            text = json_module.dumps(payload, ensure_ascii=False, default=_json_default)
        except (TypeError, ValueError) as exc:
            msg = f"JsonResponse cannot encode value: {exc}"
            raise InvalidResponseValue(msg) from exc
        return escape_json_for_html(text).encode("utf-8")

    def __repr__(self) -> str:
        return f"JsonResponse(with_defaults={self.with_defaults})"


class JavaScriptResponse(ResponseEncoder):
    """Emits script text verbatim."""

    name = "script"
    headers = (("Content-Type", "text/javascript; charset=utf-8"),)

    def render(self, value: Any, *, status: int = 200, elapsed: float = 0.0) -> bytes:
        if isinstance(value, bytes):
            return value
        if not isinstance(value, str):
            msg = f"JavaScriptResponse needs script text, got {type(value).__name__}."
            raise InvalidResponseValue(msg)
        return value.encode("utf-8")


class SerializeResponse(ResponseEncoder):
    """Emits the pickled form (protocol 0, ASCII) of the value."""

    name = "serialize"
    headers = (("Content-Type", "text/plain"),)

    def render(self, value: Any, *, status: int = 200, elapsed: float = 0.0) -> bytes:
        try:
            return pickle.dumps(value, protocol=0)
        except (pickle.PicklingError, TypeError, AttributeError) as exc:
            msg = f"SerializeResponse cannot serialize {type(value).__name__}: {exc}"
            raise InvalidResponseValue(msg) from exc


ENCODERS: dict[str, type[ResponseEncoder]] = {
    cls.name: cls for cls in (HtmlResponse, JsonResponse, JavaScriptResponse, SerializeResponse)
}


def encoder_for(name: str, *, json_with_defaults: bool = True) -> ResponseEncoder:
    """Instantiate the encoder registered under *name*.

    Raises ``ConfigurationError`` for unknown names.
    """
    try:
        cls = ENCODERS[name]
    except KeyError:
        msg = f"Unknown response encoder {name!r}. Expected one of: {', '.join(ENCODERS)}"
        raise ConfigurationError(msg) from None
    if cls is JsonResponse:
        return JsonResponse(with_defaults=json_with_defaults)
    return cls()


def escape_json_for_html(text: str) -> str:
    """Escape ``< > & '`` everywhere and ``"`` inside strings as ``\\uXXXX``.

    Structural quotes are left alone, so the output stays valid JSON.
    """
    for char, escaped in _JSON_HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return _JSON_QUOTE_RE.sub(lambda m: "\\u0022" if m.group() == '\\"' else m.group(), text)


def _json_default(value: Any) -> Any:
    if hasattr(value, "to_json"):
        return value.to_json()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)
