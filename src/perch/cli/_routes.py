"""``perch routes`` — list registered routes.

Prints every callback route of the flattened router tree, with mounted
prefixes joined into the path, in resolution order.
"""

import argparse

from perch.cli._resolve import load_router
from perch.routing.route import Callback, Route

_HEADER = ("METHOD", "PATH", "HANDLER")


def _describe(path: str, route: Route) -> tuple[str, str, str]:
    target = route.target
    handler = target.handler if isinstance(target, Callback) else target
    label = getattr(handler, "__qualname__", str(handler))
    if route.name:
        label = f"{label} ({route.name})"
    return ", ".join(sorted(route.methods)), path, label


def run_routes(args: argparse.Namespace) -> None:
    """Print a METHOD / PATH / HANDLER table for ``args.router``."""
    router = load_router(args.router)

    rows = [_describe(path, route) for path, route in router.iter_routes()]
    if not rows:
        print("No routes registered.")
        return

    widths = [max(len(row[i]) for row in (_HEADER, *rows)) for i in range(2)]
    for methods, path, label in (_HEADER, *rows):
        print(f"{methods:<{widths[0]}}  {path:<{widths[1]}}  {label}")
