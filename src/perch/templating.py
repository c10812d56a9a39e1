"""Template rendering through kida.

Handlers return a ``Template`` and the negotiation layer renders it with
the ``TemplateRenderer`` attached to the router::

    renderer = TemplateRenderer("templates", globals_={"site": "Example"})
    router = Router(renderer=renderer)

    @router.get("/")
    def index():
        return Template("index.html", title="Home")

kida is an optional dependency (``pip install perch[templates]``).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from perch.errors import ConfigurationError, RenderError


@dataclass(frozen=True, slots=True)
class Template:
    """Render a kida template as the response body.

    Usage::

        return Template("page.html", title="Home", items=items)
    """

    name: str
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, name: str, /, **context: Any) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "context", context)


class TemplateRenderer:
    """A kida ``Environment`` bound to a template directory or loader.

    Pass either *template_dir* or a ready-made kida *loader* (e.g.
    ``DictLoader`` for in-memory templates).
    """

    __slots__ = ("env",)

    def __init__(
        self,
        template_dir: str | Path | None = None,
        *,
        loader: Any = None,
        autoescape: bool = True,
        globals_: Mapping[str, Any] | None = None,
        filters: Mapping[str, Callable[..., Any]] | None = None,
    ) -> None:
        try:
            from kida import Environment, FileSystemLoader
        except ImportError as exc:
            msg = (
                "TemplateRenderer requires kida. "
                "Install it with: pip install perch[templates]"
            )
            raise ConfigurationError(msg) from exc

        if loader is None:
            if template_dir is None:
                msg = "TemplateRenderer needs a template_dir or a loader."
                raise ConfigurationError(msg)
            loader = FileSystemLoader(str(template_dir))

        self.env = Environment(loader=loader, autoescape=autoescape)
        if filters:
            self.env.update_filters(dict(filters))
        for name, value in (globals_ or {}).items():
            self.env.add_global(name, value)

    def render(self, name: str, context: Mapping[str, Any] | None = None) -> str:
        """Render template *name* with *context*.

        Raises ``RenderError`` when the template is missing, malformed, or
        fails at runtime.
        """
        from kida.environment.exceptions import (
            TemplateNotFoundError,
            TemplateRuntimeError,
            TemplateSyntaxError,
            UndefinedError,
        )

        try:
            template = self.env.get_template(name)
            return template.render(dict(context or {}))
        except (TemplateNotFoundError, TemplateSyntaxError, TemplateRuntimeError, UndefinedError) as exc:
            msg = f"Failed to render template {name!r}: {exc}"
            raise RenderError(msg) from exc
