"""Loads the router a CLI command operates on.

Every failure is reported on stderr and ends the command with status 1,
so the subcommands never handle import errors themselves.
"""

import importlib
import sys
from typing import NoReturn

from perch.routing.router import Router

DEFAULT_ATTRIBUTE = "router"


def _fail(target: str, reason: str, cause: BaseException | None = None) -> NoReturn:
    print(f"Error: cannot load a router from {target!r}: {reason}", file=sys.stderr)
    raise SystemExit(1) from cause


def load_router(target: str) -> Router:
    """Return the Router named by ``module[:attribute]``.

    ``attribute`` defaults to ``router``. When it names a zero-argument
    callable instead of a Router, the callable is called once and must
    return one.
    """
    module_name, _, attribute = target.partition(":")
    attribute = attribute or DEFAULT_ATTRIBUTE

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        _fail(target, f"module {module_name!r} could not be imported ({exc})", exc)

    if not hasattr(module, attribute):
        _fail(target, f"module {module_name!r} has no attribute {attribute!r}")
    found = getattr(module, attribute)

    if not isinstance(found, Router) and callable(found):
        try:
            found = found()
        except Exception as exc:
            _fail(target, f"{attribute}() raised {type(exc).__name__}: {exc}", exc)

    if not isinstance(found, Router):
        _fail(target, f"expected a Router, got {type(found).__name__}")
    return found
