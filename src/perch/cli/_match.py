"""``perch match`` — show which route resolves a request.

Resolves without executing: no middleware runs and no handler is called.
"""

import argparse
import sys

from perch.cli._resolve import load_router
from perch.routing.route import Callback


def run_match(args: argparse.Namespace) -> None:
    """Print the terminal route and bindings, or exit 1 when nothing matches."""
    router = load_router(args.router)

    resolution = router.resolve(args.path, args.method)
    if resolution is None:
        print(f"No route matches {args.method.upper()} {args.path}", file=sys.stderr)
        raise SystemExit(1)

    route = resolution.route
    target = route.target
    handler = target.handler if isinstance(target, Callback) else target
    context = resolution.context

    print(f"route:   {context.path}")
    print(f"pattern: {' -> '.join(step.path for _, step in resolution.chain)}")
    print(f"handler: {getattr(handler, '__qualname__', str(handler))}")
    print(f"encoder: {context.encoder.name if context.encoder is not None else '-'}")
    if context.params:
        print("params:")
        for name, value in context.params.items():
            print(f"  {name} = {value!r}")
