"""Member descriptors: the data shapes the engine consumes.

Two flavors of "a named thing":

- Member: a name plus a runtime value, assigned onto an existing instance
  (an instance value node).
- MemberDefinition: a name plus a type and a kind, describing one member of
  a type that is about to be composed (a schema definition node).

Both use closed kind enums; nothing is dispatched on strings.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from . import reflection


class ValueKind(Enum):
    """How a Member is assigned onto an instance."""

    FIELD = "field"
    PROPERTY = "property"
    UNKNOWN = "unknown"  # Property preferred, field fallback


class MemberKind(Enum):
    """Kinds of members a composed type can declare."""

    FIELD = "field"
    PROPERTY = "property"
    METHOD = "method"  # Forwards to a supplied callable
    EMPTY_METHOD = "empty_method"  # No-op returning the default value
    EVENT = "event"


@dataclass(frozen=True)
class Member:
    """A value to assign onto an instance by name.

    Attributes:
        name: Member name on the target instance
        value: Value to assign
        kind: Whether to assign a field, a property or whichever exists
    """

    name: str
    value: Any
    kind: ValueKind = ValueKind.UNKNOWN

    @classmethod
    def field(cls, name: str, value: Any) -> Member:
        return cls(name, value, ValueKind.FIELD)

    @classmethod
    def property(cls, name: str, value: Any) -> Member:
        return cls(name, value, ValueKind.PROPERTY)

    @classmethod
    def unknown(cls, name: str, value: Any) -> Member:
        return cls(name, value, ValueKind.UNKNOWN)

    def apply(self, instance: Any) -> None:
        """Assign this value onto instance.

        Raises:
            MemberNotFoundError: If instance has no matching member
        """
        if self.kind is ValueKind.FIELD:
            reflection.set_field(instance, self.name, self.value)
        elif self.kind is ValueKind.PROPERTY:
            reflection.set_property(instance, self.name, self.value)
        else:
            reflection.set_value(instance, self.name, self.value)


@dataclass(frozen=True)
class MemberDefinition:
    """One intended member of a type to be composed.

    Attributes:
        name: Member name
        member_type: Value type for fields/properties, a callable type token
            for empty methods, the handler type for events
        kind: Member kind
        is_virtual: Overrides an inherited abstract member
        body: Callable a METHOD forwards to
    """

    name: str
    member_type: Any = Any
    kind: MemberKind = MemberKind.PROPERTY
    is_virtual: bool = False
    body: Callable[..., Any] | None = None

    # Declared before the factories below, which shadow the builtin name.
    @property
    def return_type(self) -> Any:
        """Return type of a method definition."""
        if self.kind is MemberKind.METHOD and self.body is not None:
            return reflection.return_type(self.body)
        return reflection.callable_parts(self.member_type)[1]

    @property
    def parameter_types(self) -> tuple[Any, ...] | None:
        """Parameter types of a method definition, None when unspecified."""
        if self.kind is MemberKind.METHOD and self.body is not None:
            hints = reflection.type_hints(self.body)
            params = inspect.signature(self.body).parameters.values()
            return tuple(hints.get(p.name, Any) for p in params)
        return reflection.callable_parts(self.member_type)[0]

    @classmethod
    def field(cls, name: str, member_type: Any = Any) -> MemberDefinition:
        return cls(name, member_type, MemberKind.FIELD)

    @classmethod
    def property(cls, name: str, member_type: Any = Any, is_virtual: bool = False) -> MemberDefinition:
        return cls(name, member_type, MemberKind.PROPERTY, is_virtual)

    @classmethod
    def method(cls, name: str, body: Callable[..., Any]) -> MemberDefinition:
        return cls(name, Callable[..., reflection.return_type(body)], MemberKind.METHOD, body=body)

    @classmethod
    def empty_method(
        cls,
        name: str,
        member_type: Any = Callable[..., None],
        is_virtual: bool = False,
    ) -> MemberDefinition:
        return cls(name, member_type, MemberKind.EMPTY_METHOD, is_virtual)

    @classmethod
    def event(cls, name: str, handler_type: Any = Callable[..., None]) -> MemberDefinition:
        return cls(name, handler_type, MemberKind.EVENT)
