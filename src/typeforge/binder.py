"""Call argument binder.

Turns the arguments of a call plus the names given to its trailing
arguments into an ordered list of member descriptors. Arguments that are
already descriptors describe themselves; every other argument needs a name.

Example:
    bind_values([Member.field("id", 7), "Ada"], ["name"])
    # -> [Member.field("id", 7), Member.unknown("name", "Ada")]
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from .errors import BindingError
from .members import Member, MemberDefinition
from .reflection import is_callable_type, is_type_token

D = TypeVar("D")


def _bind(
    args: Sequence[Any],
    names: Sequence[str],
    descriptor_type: type[D],
    synthesize: Callable[[str, Any], D],
) -> list[D]:
    total = len(args)
    named = len(names)

    if total == named:
        offset = 0
    else:
        plain = sum(1 for arg in args if not isinstance(arg, descriptor_type))
        if plain != named:
            raise BindingError(
                f"{plain} unnamed argument(s) but {named} name(s); "
                f"unnamed arguments must be {descriptor_type.__name__} instances",
                context={"arguments": total, "names": named},
            )
        offset = total - named

    bound: list[D] = []
    for i in range(total - 1, -1, -1):
        argument = args[i]
        if isinstance(argument, descriptor_type):
            bound.append(argument)
            continue

        slot = i - offset
        if slot < 0:
            raise BindingError(
                f"Argument {i} has no name; named arguments must come last",
                context={"index": i},
            )
        bound.append(synthesize(names[slot], argument))

    bound.reverse()
    return bound


def bind_values(args: Sequence[Any], names: Sequence[str]) -> list[Member]:
    """Bind call arguments to instance value nodes.

    Plain arguments become Member.unknown, which assigns a property when one
    exists and a field otherwise.

    Raises:
        BindingError: If plain arguments cannot be paired with names
    """
    return _bind(args, names, Member, Member.unknown)


def _definition_for(name: str, argument: Any) -> MemberDefinition:
    if is_type_token(argument):
        if is_callable_type(argument):
            return MemberDefinition.empty_method(name, argument)
        return MemberDefinition.property(name, argument)
    if callable(argument):
        return MemberDefinition.method(name, argument)
    raise BindingError(
        f"Definition {name!r} needs a type or a callable, got {type(argument).__name__}",
        suggestion="Pass a type token, a function, or a MemberDefinition",
        context={"name": name},
    )


def bind_definitions(args: Sequence[Any], names: Sequence[str]) -> list[MemberDefinition]:
    """Bind call arguments to schema definition nodes.

    A plain argument becomes:
    - an empty method when it is a callable type token (``Callable[[int], str]``)
    - a property when it is any other type token
    - a method forwarding to it when it is a callable

    Raises:
        BindingError: If arguments cannot be paired with names, or a plain
            argument is neither a type token nor a callable
    """
    return _bind(args, names, MemberDefinition, _definition_for)
