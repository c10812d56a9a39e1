"""Router configuration.

RouterConfig is frozen: it is built once during setup and shared by every
request the router tree resolves afterwards.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Configuration for a router tree. Immutable after creation.

    Only the root router's config is consulted; mounted routers inherit it.
    All fields have sensible defaults. Override what you need::

        config = RouterConfig(default_response="json", template_dir="templates")
    """

    debug: bool = False

    # Encoder used when neither the route nor any router in its chain sets one.
    # One of: "html", "json", "script", "serialize".
    default_response: str = "html"
    json_with_defaults: bool = True

    # Templates (requires perch[templates])
    template_dir: str | Path | None = None
    autoescape: bool = True
