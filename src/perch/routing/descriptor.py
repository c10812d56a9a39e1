"""Handler descriptors — what a callback accepts, and how to call it.

A ``HandlerDescriptor`` is built once per callback route from the
handler's signature and cached on the route. Binding walks its
``ParamSpec`` list in order::

    1. ``request`` (by name or ``Request`` annotation)  -> the Request
    2. ``context`` (by name or ``Context`` annotation)  -> the Context
    3. bound path value                                 -> converted to the declared scalar type
    4. nullable annotation (``X | None``)               -> None
    5. default value                                    -> the default
    6. otherwise                                        -> MissingParameterError

The same descriptor doubles as a validation descriptor: the scalar,
non-path inputs a handler declares are exposed for an external request
validator without perch validating anything itself.
"""

import inspect
import types
import typing
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from perch.context import Context
from perch.errors import ConfigurationError, MissingParameterError, ParameterConversionError
from perch.http.request import Request
from perch.routing.params import SCALAR_TYPES, convert_param

type ParamSource = Literal["value", "request", "context"]

_EMPTY = inspect.Parameter.empty


@dataclass(frozen=True, slots=True)
class ParamSpec:
    """One formal parameter of a handler."""

    name: str
    declared_type: Any = None
    nullable: bool = False
    has_default: bool = False
    default: Any = None
    source: ParamSource = "value"
    keyword_only: bool = False

    @property
    def is_scalar(self) -> bool:
        return self.declared_type in SCALAR_TYPES


@dataclass(frozen=True, slots=True)
class HandlerDescriptor:
    """The ordered parameter list and return contract of a handler."""

    name: str
    params: tuple[ParamSpec, ...] = ()
    returns_void: bool = False

    def validatable(self, exclude: Iterable[str] = ()) -> tuple[ParamSpec, ...]:
        """Scalar value parameters not listed in *exclude*.

        *exclude* is normally the set of names bound from the path.
        """
        skipped = set(exclude)
        return tuple(
            spec
            for spec in self.params
            if spec.source == "value" and spec.is_scalar and spec.name not in skipped
        )


def describe_handler(handler: Callable[..., Any]) -> HandlerDescriptor:
    """Build a ``HandlerDescriptor`` by inspecting *handler*'s signature.

    Raises ``ConfigurationError`` if the signature cannot be read or its
    string annotations cannot be resolved.
    """
    name = getattr(handler, "__qualname__", None) or repr(handler)
    try:
        sig = inspect.signature(handler, eval_str=True)
    except (NameError, TypeError, ValueError) as exc:
        msg = f"Cannot inspect handler {name!r}: {exc}"
        raise ConfigurationError(msg) from exc

    specs: list[ParamSpec] = []
    for param in sig.parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        annotation = None if param.annotation is _EMPTY else param.annotation
        declared, nullable = _unwrap_optional(annotation)
        specs.append(
            ParamSpec(
                name=param.name,
                declared_type=declared,
                nullable=nullable,
                has_default=param.default is not _EMPTY,
                default=None if param.default is _EMPTY else param.default,
                source=_source_of(param.name, declared),
                keyword_only=param.kind is inspect.Parameter.KEYWORD_ONLY,
            )
        )

    returns_void = sig.return_annotation is None or sig.return_annotation is type(None)
    return HandlerDescriptor(name=name, params=tuple(specs), returns_void=returns_void)


def bind_arguments(
    descriptor: HandlerDescriptor,
    params: Mapping[str, str | None],
    context: Context,
) -> tuple[list[Any], dict[str, Any]]:
    """Resolve positional and keyword arguments for a handler call.

    Raises ``MissingParameterError`` when a required parameter has no
    value, ``ParameterConversionError`` when a bound value does not
    convert to its declared scalar type.
    """
    args: list[Any] = []
    kwargs: dict[str, Any] = {}

    for spec in descriptor.params:
        if spec.source == "request":
            value: Any = context.request
        elif spec.source == "context":
            value = context
        elif params.get(spec.name) is not None:
            value = _convert(spec, params[spec.name])
        elif spec.nullable:
            value = None
        elif spec.has_default:
            value = spec.default
        else:
            raise MissingParameterError(descriptor.name, spec.name)

        if spec.keyword_only:
            kwargs[spec.name] = value
        else:
            args.append(value)

    return args, kwargs


def _convert(spec: ParamSpec, raw: Any) -> Any:
    if not isinstance(raw, str) or spec.declared_type in (None, str) or not spec.is_scalar:
        return raw
    try:
        return convert_param(raw, spec.declared_type)
    except ValueError as exc:
        raise ParameterConversionError(spec.name, raw, spec.declared_type) from exc


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Split ``X | None`` / ``Optional[X]`` into ``(X, True)``."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        nullable = len(members) != len(typing.get_args(annotation))
        if len(members) == 1:
            return members[0], nullable
        return annotation, nullable
    return annotation, False


def _source_of(name: str, declared: Any) -> ParamSource:
    if name == "request" or declared is Request:
        return "request"
    if name == "context" or declared is Context:
        return "context"
    return "value"
