"""Capability contracts.

A capability contract is a named set of required properties, methods and
events. Two forms are accepted:

- a class: a ``typing.Protocol`` or an ABC, whose contract parents are its
  contract bases;
- a declarative Contract, built at runtime from MemberDefinitions, whose
  parents are listed in ``extends``.

Contracts are flattened transitively before use: a contract brings in
every contract it extends.
"""

from __future__ import annotations

import abc
import inspect
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol

from .errors import CompositionError
from .members import MemberDefinition, MemberKind
from .notify import Event
from .reflection import callable_parts, return_type, type_hints, type_name

_ROOTS = frozenset({object, Protocol, Generic, abc.ABC})


@dataclass(eq=False)
class Contract:
    """A capability contract declared at runtime.

    Attributes:
        name: Contract name
        members: Required members
        extends: Parent contracts (classes or Contracts)
    """

    name: str
    members: list[MemberDefinition] = field(default_factory=list)
    extends: list[Any] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"Contract({self.name!r})"


@dataclass(frozen=True)
class ContractMember:
    """A member required by a contract.

    Attributes:
        name: Member name
        kind: PROPERTY, METHOD or EVENT
        member_type: Property type, method return type or event handler type
        parameter_types: Method parameter types (None when unspecified)
        readable: Property has a getter
        writable: Property has a setter
    """

    name: str
    kind: MemberKind
    member_type: Any = Any
    parameter_types: tuple[Any, ...] | None = None
    readable: bool = True
    writable: bool = True

    def to_definition(self) -> MemberDefinition:
        """Convert to the definition a composed type emits for it."""
        if self.kind is MemberKind.METHOD:
            if self.parameter_types is None:
                signature = typing.Callable[..., self.member_type]
            else:
                signature = typing.Callable[list(self.parameter_types), self.member_type]
            return MemberDefinition.empty_method(self.name, signature)
        if self.kind is MemberKind.EVENT:
            return MemberDefinition.event(self.name, self.member_type)
        return MemberDefinition.property(self.name, self.member_type)


def is_contract(obj: Any) -> bool:
    """Check whether obj can be used as a capability contract."""
    if isinstance(obj, Contract):
        return True
    if not isinstance(obj, type) or obj in _ROOTS:
        return False
    return bool(getattr(obj, "_is_protocol", False)) or isinstance(obj, abc.ABCMeta)


def contract_name(contract: Any) -> str:
    return contract.name if isinstance(contract, Contract) else type_name(contract)


def _parents(contract: Any) -> list[Any]:
    if isinstance(contract, Contract):
        return list(contract.extends)
    return [base for base in contract.__bases__ if is_contract(base)]


def flatten_contracts(contracts: typing.Iterable[Any]) -> list[Any]:
    """Expand contracts with every contract they extend, transitively.

    Order is depth-first, each contract before its parents; duplicates are
    dropped.

    Raises:
        CompositionError: If an entry is not a contract or contracts form a cycle
    """
    flattened: list[Any] = []
    seen: set[int] = set()

    def visit(contract: Any, path: list[Any]) -> None:
        if not is_contract(contract):
            raise CompositionError(
                f"{contract!r} is not a capability contract",
                suggestion="Use a typing.Protocol, an ABC or a Contract",
            )
        if any(contract is entry for entry in path):
            cycle = " -> ".join(contract_name(c) for c in [*path, contract])
            raise CompositionError(f"Contract cycle: {cycle}", context={"cycle": cycle})
        if id(contract) in seen:
            return
        seen.add(id(contract))
        flattened.append(contract)
        for parent in _parents(contract):
            visit(parent, [*path, contract])

    for contract in contracts:
        visit(contract, [])
    return flattened


# =============================================================================
# Member Enumeration
# =============================================================================


def _method_member(name: str, fn: Any, bound: bool) -> ContractMember:
    hints = type_hints(fn)
    params = list(inspect.signature(fn).parameters.values())
    if bound:
        params = params[1:]
    if any(p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD) for p in params):
        parameter_types = None
    else:
        parameter_types = tuple(hints.get(p.name, Any) for p in params)
    return ContractMember(name, MemberKind.METHOD, hints.get("return", Any), parameter_types)


def _class_members(contract: type) -> list[ContractMember]:
    members: list[ContractMember] = []
    own = contract.__dict__
    hints = type_hints(contract)

    for name, attr in own.items():
        if name.startswith("_"):
            continue
        if isinstance(attr, property):
            members.append(
                ContractMember(
                    name,
                    MemberKind.PROPERTY,
                    return_type(attr.fget),
                    readable=attr.fget is not None,
                    writable=attr.fset is not None,
                )
            )
        elif isinstance(attr, Event):
            members.append(ContractMember(name, MemberKind.EVENT, attr.handler_type))
        elif isinstance(attr, staticmethod):
            members.append(_method_member(name, attr.__func__, bound=False))
        elif isinstance(attr, classmethod):
            members.append(_method_member(name, attr.__func__, bound=True))
        elif isinstance(attr, types.FunctionType):
            members.append(_method_member(name, attr, bound=True))

    # Annotation-only data members, e.g. ``name: str`` in a Protocol
    for name in inspect.get_annotations(contract):
        if name.startswith("_") or name in own:
            continue
        hint = hints.get(name, Any)
        if typing.get_origin(hint) is typing.ClassVar:
            continue
        members.append(ContractMember(name, MemberKind.PROPERTY, hint))

    return members


def _declared_members(contract: Contract) -> list[ContractMember]:
    members: list[ContractMember] = []
    for definition in contract.members:
        if definition.kind in (MemberKind.PROPERTY, MemberKind.FIELD):
            members.append(ContractMember(definition.name, MemberKind.PROPERTY, definition.member_type))
        elif definition.kind is MemberKind.EVENT:
            members.append(ContractMember(definition.name, MemberKind.EVENT, definition.member_type))
        elif definition.kind is MemberKind.METHOD:
            members.append(
                ContractMember(
                    definition.name,
                    MemberKind.METHOD,
                    definition.return_type,
                    definition.parameter_types,
                )
            )
        else:
            params, returns = callable_parts(definition.member_type)
            members.append(ContractMember(definition.name, MemberKind.METHOD, returns, params))
    return members


def contract_members(contract: Any) -> list[ContractMember]:
    """List the members one contract declares itself (parents excluded)."""
    if isinstance(contract, Contract):
        return _declared_members(contract)
    return _class_members(contract)


def collect_members(contracts: typing.Iterable[Any]) -> list[ContractMember]:
    """List the members of flattened contracts; first declaration of a name wins."""
    collected: dict[str, ContractMember] = {}
    for contract in flatten_contracts(contracts):
        for member in contract_members(contract):
            collected.setdefault(member.name, member)
    return list(collected.values())


def implements(obj: Any, contract: Any) -> bool:
    """Check whether an instance or class implements a contract.

    Nominal: a class contract must be among the bases (or, for a plain ABC,
    registered with it); a declarative contract must be one the composed type
    was built with.
    """
    tp = obj if isinstance(obj, type) else type(obj)
    if isinstance(contract, Contract):
        declared = getattr(tp, "__forge_contracts__", ())
        return any(contract is entry for entry in declared)
    if contract in tp.__mro__:
        return True
    if getattr(contract, "_is_protocol", False):
        return False
    return issubclass(tp, contract)
