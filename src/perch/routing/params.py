"""Path parameter converters and scalar conversion.

Built-in converters for route path segments like ``{id:int}``. A converter
only restricts which segments a parameter accepts; the captured value is
kept as a string until handler binding converts it.
"""

import re

# (segment regex, python type) for each supported converter
CONVERTERS: dict[str, tuple[re.Pattern[str], type]] = {
    "str": (re.compile(r"[^/]+"), str),
    "int": (re.compile(r"-?\d+"), int),
    "float": (re.compile(r"-?\d+(?:\.\d+)?"), float),
}

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})

SCALAR_TYPES: tuple[type, ...] = (str, int, float, bool)


def convert_param(value: str, target: type) -> str | int | float | bool:
    """Convert a captured path string to the scalar *target* type.

    Raises ``ValueError`` if the string cannot be converted.
    """
    if target is bool:
        lowered = value.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        msg = f"{value!r} is not a boolean"
        raise ValueError(msg)
    return target(value)
