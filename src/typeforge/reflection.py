"""Reflection plumbing used by the composer, constructor and adapter.

Small helpers for reading and writing fields and properties by name,
creating instances, working with type tokens and picking the best overload
for a list of parameter types.

A *field* is a plain data attribute: a value in the instance ``__dict__``,
a slot, an annotated attribute or a non-callable class attribute. A
*property* is a ``property`` object found on the class.
"""

from __future__ import annotations

import collections.abc
import functools
import inspect
import types
import typing
from typing import Any, NamedTuple

from .errors import MemberNotFoundError

_EMPTY = inspect.Parameter.empty

_ZERO_DEFAULTS: dict[Any, Any] = {bool: False, int: 0, float: 0.0, complex: 0j}

# Implicit numeric widening accepted when matching parameter types.
_NUMERIC_WIDENING: dict[tuple[type, type], int] = {
    (bool, int): 1,
    (int, float): 1,
    (int, complex): 2,
    (float, complex): 1,
}

# Distance assigned to matches against untyped parameters.
_LOOSE_MATCH = 100


# =============================================================================
# Type Tokens
# =============================================================================


def is_type_token(obj: Any) -> bool:
    """Check if obj denotes a type (a class, a typing alias or a special form)."""
    if isinstance(obj, type):
        return True
    if typing.get_origin(obj) is not None:
        return True
    return obj is Any or isinstance(obj, typing.TypeVar)


def is_callable_type(tp: Any) -> bool:
    """Check if a type token denotes a callable type."""
    if tp is collections.abc.Callable or typing.get_origin(tp) is collections.abc.Callable:
        return True
    if typing.get_origin(tp) is not None or not isinstance(tp, type):
        return False
    return issubclass(
        tp, (types.FunctionType, types.BuiltinFunctionType, types.MethodType, functools.partial)
    )


def callable_parts(tp: Any) -> tuple[tuple[Any, ...] | None, Any]:
    """Split a callable type token into (parameter types, return type).

    Parameter types are None when unspecified (``Callable[..., R]`` or a bare
    ``Callable``).
    """
    args = typing.get_args(tp)
    if len(args) != 2:
        return None, Any
    params, returns = args
    if params is Ellipsis:
        return None, returns
    return tuple(params), returns


def default_value(tp: Any) -> Any:
    """Return the default value for a type.

    Numeric value types default to zero; everything else to None.
    """
    return _ZERO_DEFAULTS.get(tp)


def type_hints(obj: Any) -> dict[str, Any]:
    """Get resolved annotations, falling back to the raw ones."""
    try:
        return typing.get_type_hints(obj)
    except (NameError, TypeError):
        return dict(getattr(obj, "__annotations__", None) or {})


def return_type(fn: Any) -> Any:
    """Get the annotated return type of a callable, or Any."""
    if fn is None:
        return Any
    return type_hints(fn).get("return", Any)


def type_name(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)


# =============================================================================
# Member Lookup
# =============================================================================


def find_property(tp: type, name: str) -> property | None:
    """Find a property declared on tp or its bases."""
    try:
        attr = inspect.getattr_static(tp, name)
    except AttributeError:
        return None
    return attr if isinstance(attr, property) else None


def annotated_names(tp: type) -> dict[str, Any]:
    """Collect annotated attribute names across the MRO (most derived wins)."""
    names: dict[str, Any] = {}
    for klass in reversed(tp.__mro__):
        names.update(getattr(klass, "__annotations__", None) or {})
    return names


def slot_names(tp: type) -> set[str]:
    slots: set[str] = set()
    for klass in tp.__mro__:
        declared = klass.__dict__.get("__slots__", ())
        if isinstance(declared, str):
            declared = (declared,)
        slots.update(declared)
    return slots


def has_data_member(tp: type, name: str) -> bool:
    """Check whether tp declares a plain data attribute (field) called name."""
    if name in slot_names(tp):
        return True
    annotations = annotated_names(tp)
    if name in annotations:
        return typing.get_origin(annotations[name]) is not typing.ClassVar
    try:
        attr = inspect.getattr_static(tp, name)
    except AttributeError:
        return False
    if isinstance(attr, (property, staticmethod, classmethod, types.FunctionType)):
        return False
    return not callable(attr) and not hasattr(attr, "__get__")


def has_field(instance: Any, name: str) -> bool:
    """Check whether instance has a field called name."""
    instance_dict = getattr(instance, "__dict__", None)
    if instance_dict is not None and name in instance_dict:
        return True
    return has_data_member(type(instance), name)


def is_final(attr: Any) -> bool:
    """Check whether a member is marked with ``typing.final``."""
    if isinstance(attr, property):
        return any(getattr(f, "__final__", False) for f in (attr.fget, attr.fset))
    if isinstance(attr, (staticmethod, classmethod)):
        attr = attr.__func__
    return bool(getattr(attr, "__final__", False))


# =============================================================================
# Get / Set
# =============================================================================


def get_field(instance: Any, name: str) -> Any:
    if not has_field(instance, name):
        raise MemberNotFoundError(type_name(type(instance)), name)
    return getattr(instance, name)


def set_field(instance: Any, name: str, value: Any) -> None:
    if not has_field(instance, name):
        raise MemberNotFoundError(type_name(type(instance)), name)
    setattr(instance, name, value)


def get_property(instance: Any, name: str) -> Any:
    prop = find_property(type(instance), name)
    if prop is None or prop.fget is None:
        raise MemberNotFoundError(type_name(type(instance)), name)
    return prop.__get__(instance, type(instance))


def set_property(instance: Any, name: str, value: Any) -> None:
    prop = find_property(type(instance), name)
    if prop is None or prop.fset is None:
        raise MemberNotFoundError(type_name(type(instance)), name)
    prop.__set__(instance, value)


def set_value(instance: Any, name: str, value: Any) -> None:
    """Set a property if one exists by that name, otherwise a field."""
    if find_property(type(instance), name) is not None:
        set_property(instance, name, value)
    else:
        set_field(instance, name, value)


def create_instance(tp: type, *args: Any, **kwargs: Any) -> Any:
    return tp(*args, **kwargs)


# =============================================================================
# Overload Resolution
# =============================================================================


class MethodCandidate(NamedTuple):
    """One implementation a method name can dispatch to."""

    name: str
    function: Any
    bound: bool  # Takes the instance as first argument
    dispatch_type: Any = None  # singledispatch registration type

    def parameters(self) -> list[inspect.Parameter]:
        params = list(inspect.signature(self.function).parameters.values())
        return params[1:] if self.bound else params


def method_candidates(tp: type, name: str) -> list[MethodCandidate]:
    """List the implementations reachable through an attribute name.

    A ``functools.singledispatchmethod`` contributes one candidate per
    registered implementation.
    """
    try:
        attr = inspect.getattr_static(tp, name)
    except AttributeError:
        return []

    if isinstance(attr, functools.singledispatchmethod):
        registry = attr.dispatcher.registry
        impls = [(cls, fn) for cls, fn in registry.items() if cls is not object]
        if object in registry:
            impls.append((object, registry[object]))
        bound = not isinstance(attr.func, (staticmethod, classmethod))
        return [
            MethodCandidate(name, getattr(fn, "__func__", fn), bound=bound, dispatch_type=cls)
            for cls, fn in impls
        ]
    if isinstance(attr, staticmethod):
        return [MethodCandidate(name, attr.__func__, bound=False)]
    if isinstance(attr, classmethod):
        return [MethodCandidate(name, attr.__func__.__get__(tp), bound=False)]
    if isinstance(attr, types.FunctionType):
        return [MethodCandidate(name, attr, bound=True)]
    return []


def _type_distance(arg_type: Any, param_type: Any) -> int | None:
    """How far arg_type is from param_type, or None when incompatible."""
    if param_type is _EMPTY or param_type is Any or param_type is object:
        return _LOOSE_MATCH
    if arg_type is _EMPTY or arg_type is Any:
        return _LOOSE_MATCH
    if arg_type == param_type:
        return 0

    if isinstance(param_type, str) or isinstance(arg_type, str):
        left = arg_type if isinstance(arg_type, str) else type_name(arg_type)
        right = param_type if isinstance(param_type, str) else type_name(param_type)
        return 0 if left.rsplit(".", 1)[-1] == right.rsplit(".", 1)[-1] else None

    param_origin = typing.get_origin(param_type)
    if param_origin is typing.Union or param_origin is types.UnionType:
        distances = [_type_distance(arg_type, option) for option in typing.get_args(param_type)]
        matched = [d for d in distances if d is not None]
        return min(matched) if matched else None

    arg_cls = typing.get_origin(arg_type) or arg_type
    param_cls = param_origin or param_type
    if not isinstance(arg_cls, type) or not isinstance(param_cls, type):
        return None
    if (arg_cls, param_cls) in _NUMERIC_WIDENING:
        return _NUMERIC_WIDENING[(arg_cls, param_cls)]
    if issubclass(arg_cls, param_cls):
        mro = arg_cls.__mro__
        return mro.index(param_cls) if param_cls in mro else 1
    return None


def _match_score(candidate: MethodCandidate, parameter_types: tuple[Any, ...] | None) -> int | None:
    params = candidate.parameters()
    if parameter_types is None:
        return 0

    positional = [
        p
        for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    variadic = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params)
    required = [p for p in positional if p.default is _EMPTY]

    count = len(parameter_types)
    if count < len(required) or (count > len(positional) and not variadic):
        return None

    hints = type_hints(candidate.function)
    score = 0
    for index, arg_type in enumerate(parameter_types):
        param_type = hints.get(positional[index].name, _EMPTY) if index < len(positional) else _EMPTY
        if index == 0 and candidate.dispatch_type is not None:
            param_type = candidate.dispatch_type
        distance = _type_distance(arg_type, param_type)
        if distance is None:
            return None
        score += distance
    return score


def resolve_overload(
    candidates: list[MethodCandidate],
    parameter_types: tuple[Any, ...] | None,
) -> MethodCandidate | None:
    """Pick the best candidate for the given parameter types.

    Candidates are matched on arity first, then on per-parameter
    compatibility; the lowest total type distance wins and ties go to the
    earliest candidate.

    Args:
        candidates: Implementations sharing a name
        parameter_types: Expected parameter types, or None to accept any arity

    Returns:
        The best candidate, or None when nothing is compatible
    """
    best: MethodCandidate | None = None
    best_score: int | None = None
    for candidate in candidates:
        score = _match_score(candidate, parameter_types)
        if score is None:
            continue
        if best_score is None or score < best_score:
            best, best_score = candidate, score
    return best
