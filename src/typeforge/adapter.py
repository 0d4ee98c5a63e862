"""Adapter composer.

Synthesizes a class implementing one capability contract by forwarding every
contract member to a wrapped instance of an existing target type:

    class Shape(Protocol):
        def area(self) -> float: ...

    adapters = AdapterComposer(TypeRegistry("adapter"), HiddenMemberAccess())
    ShapeOfSquare = adapters.compose_adapter("ShapeOfSquare", Shape, Square)
    ShapeOfSquare(Square(3)).area()

Resolution, member by member:
- Methods pick the best implementation by arity and parameter types. A
  method only reachable under a hidden name cannot be forwarded and is
  rejected.
- Properties resolve the getter and the setter independently; hidden
  counterparts (``_name``, ``_Target__name``, or any member of a private
  class) are reached through HiddenMemberAccess. An accessor the class does
  not declare is looked up in the wrapped instance's ``__dict__`` on each
  call, so attributes assigned in ``__init__`` are forwarded too.
- Anything unresolved follows the MissingMemberPolicy: FAIL stubs raise
  UnsupportedMemberError, DEFAULT stubs return the type's default value.
"""

from __future__ import annotations

import types
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .access import HiddenMemberAccess
from .composer import sealed_init_subclass
from .contracts import Contract, ContractMember, collect_members, flatten_contracts, is_contract
from .errors import AdapterError, ArgumentError, CompositionError, UnknownTypeError, UnsupportedMemberError
from .logging import get_logger
from .members import MemberKind
from .reflection import (
    MethodCandidate,
    default_value,
    find_property,
    has_data_member,
    method_candidates,
    resolve_overload,
    type_name,
)
from .registry import TypeRegistry

logger = get_logger("adapter")

WRAPPED = "_wrapped"


class MissingMemberPolicy(Enum):
    """What an adapter does for contract members the target lacks."""

    FAIL = "fail"  # Raise UnsupportedMemberError when used
    DEFAULT = "default"  # Return the default value, ignore writes


@dataclass(frozen=True)
class AdapterRequest:
    """Everything needed to compose one adapter."""

    name: str
    contract: Any
    target_type: type
    on_missing: MissingMemberPolicy


@dataclass(frozen=True)
class _Resolved:
    attribute: str
    hidden: bool


def is_hidden_type(tp: type) -> bool:
    """Private classes (leading underscore) only expose hidden members."""
    return tp.__name__.startswith("_")


def hidden_names(tp: type, name: str) -> list[str]:
    """Names a hidden counterpart of a public member may use."""
    names = [f"_{name}"]
    for klass in tp.__mro__:
        if klass is not object:
            names.append(f"_{klass.__name__.lstrip('_')}__{name}")
    return names


def _readable(tp: type, name: str) -> bool:
    prop = find_property(tp, name)
    if prop is not None:
        return prop.fget is not None
    return has_data_member(tp, name)


def _writable(tp: type, name: str) -> bool:
    prop = find_property(tp, name)
    if prop is not None:
        return prop.fset is not None
    return has_data_member(tp, name)


def _resolve_accessor(tp: type, name: str, check: Callable[[type, str], bool]) -> _Resolved | None:
    if check(tp, name):
        return _Resolved(name, hidden=is_hidden_type(tp))
    for candidate in hidden_names(tp, name):
        if check(tp, candidate):
            return _Resolved(candidate, hidden=True)
    return None


class AdapterComposer:
    """Composes forwarding adapters and caches them by name."""

    def __init__(
        self,
        registry: TypeRegistry[type] | None = None,
        access: HiddenMemberAccess | None = None,
        default_on_missing: MissingMemberPolicy = MissingMemberPolicy.DEFAULT,
        allow_hidden_access: bool = True,
    ):
        self.registry = registry if registry is not None else TypeRegistry("adapter")
        self.access = access if access is not None else HiddenMemberAccess()
        self.default_on_missing = default_on_missing
        self.allow_hidden_access = allow_hidden_access

    def get(self, name: str) -> type:
        """Get a composed adapter by name.

        Raises:
            UnknownTypeError: If the name was never composed
        """
        cls = self.registry.get(name)
        if cls is None:
            raise UnknownTypeError(name, kind="adapter")
        return cls

    def wrap(self, name: str, instance: Any) -> Any:
        """Wrap instance in the adapter composed under name."""
        return self.get(name)(instance)

    def compose_adapter(
        self,
        name: str,
        contract: Any,
        target_type: type,
        on_missing: MissingMemberPolicy | str | None = None,
    ) -> type:
        """Compose an adapter, or return the cached adapter of that name.

        Args:
            name: Adapter name, unique in the registry
            contract: The one capability contract to implement
            target_type: Type of the instances to wrap
            on_missing: Policy for unsupported members (configured default if None)

        Returns:
            The adapter class; instantiate it with the instance to wrap

        Raises:
            AdapterError: If not exactly one contract is given, or a method is
                only reachable through a hidden name
            ArgumentError: If target_type is not a class
        """
        cached = self.registry.get(name)
        if cached is not None:
            return cached

        if isinstance(contract, (list, tuple, set, frozenset)):
            if len(contract) != 1:
                raise AdapterError(
                    f"{name}: an adapter implements exactly one contract, got {len(contract)}"
                )
            (contract,) = contract
        if not is_contract(contract):
            raise AdapterError(f"{name}: {contract!r} is not a capability contract")
        if not isinstance(target_type, type):
            raise ArgumentError(f"{name}: target type {target_type!r} is not a class")

        policy = MissingMemberPolicy(on_missing if on_missing is not None else self.default_on_missing)
        request = AdapterRequest(name, contract, target_type, policy)
        return self.registry.get_or_create(name, lambda: self._synthesize(request))

    # -------------------------------------------------------------------------
    # Synthesis
    # -------------------------------------------------------------------------

    def _synthesize(self, request: AdapterRequest) -> type:
        name = request.name
        target = request.target_type
        if not isinstance(name, str) or not name.isidentifier():
            raise AdapterError(f"{name!r} is not a valid adapter name")

        try:
            flattened = flatten_contracts([request.contract])
            members = collect_members(flattened)
        except CompositionError as e:
            raise AdapterError(f"{name}: {e}") from e

        namespace: dict[str, Any] = {}
        properties: set[str] = set()

        with logger.timed("compose_adapter", adapter=name, target=type_name(target)):
            for member in members:
                if member.kind is MemberKind.METHOD:
                    namespace[member.name] = self._method(request, member)
                elif member.kind is MemberKind.PROPERTY:
                    namespace[member.name] = self._property(request, member)
                    properties.add(member.name)
                else:
                    logger.debug("Event not forwarded", adapter=name, member=member.name)

            namespace.update(self._plumbing(request, frozenset(properties), flattened))
            bases = (request.contract,) if isinstance(request.contract, type) else ()

            try:
                cls = types.new_class(name, bases, {}, lambda ns: ns.update(namespace))
            except TypeError as e:
                raise AdapterError(f"Cannot compose adapter {name}: {e}") from e

            still_abstract = sorted(getattr(cls, "__abstractmethods__", ()))
            if still_abstract:
                raise AdapterError(
                    f"{name}: contract members left unimplemented: {', '.join(still_abstract)}"
                )

        return cls

    def _plumbing(
        self,
        request: AdapterRequest,
        properties: frozenset[str],
        flattened: list[Any],
    ) -> dict[str, Any]:
        name = request.name
        target = request.target_type

        def __init__(self, instance: Any) -> None:
            if instance is None:
                raise ArgumentError(f"{name} needs an instance to wrap", context={"argument": "instance"})
            if not isinstance(instance, target):
                raise ArgumentError(
                    f"{name} wraps {type_name(target)}, got {type_name(type(instance))}",
                    context={"argument": "instance"},
                )
            object.__setattr__(self, WRAPPED, instance)

        def __setattr__(self, key: str, value: Any) -> None:
            if key == WRAPPED:
                raise AttributeError(f"{name}: the wrapped instance cannot be reassigned")
            if key not in properties:
                raise AttributeError(f"{name} has no property {key!r}")
            object.__setattr__(self, key, value)

        def __repr__(self) -> str:
            return f"<{name} wrapping {getattr(self, WRAPPED)!r}>"

        __init__.__qualname__ = f"{name}.__init__"
        return {
            "__slots__": (WRAPPED,),
            "__init__": __init__,
            "__setattr__": __setattr__,
            "__repr__": __repr__,
            "__init_subclass__": classmethod(sealed_init_subclass),
            "__final__": True,
            "__module__": __name__,
            "__qualname__": name,
            "__doc__": f"Adapter exposing {type_name(target)} as the contract it wraps.",
            "__wrapped_type__": target,
            "__forge_contracts__": tuple(c for c in flattened if isinstance(c, Contract)),
            "__forge_request__": request,
        }

    def _hidden_allowed(self, request: AdapterRequest, member: str) -> bool:
        if not self.allow_hidden_access:
            logger.debug("Hidden member ignored", adapter=request.name, member=member)
        return self.allow_hidden_access

    def _method(self, request: AdapterRequest, member: ContractMember) -> Callable[..., Any]:
        target = request.target_type
        resolved = resolve_overload(method_candidates(target, member.name), member.parameter_types)
        hidden = resolved is not None and is_hidden_type(target)

        if resolved is None:
            for alternative in hidden_names(target, member.name):
                resolved = resolve_overload(method_candidates(target, alternative), member.parameter_types)
                if resolved is not None:
                    hidden = True
                    break

        if resolved is not None and hidden:
            if self._hidden_allowed(request, member.name):
                raise AdapterError(
                    f"{request.name}: {type_name(target)}.{resolved.name} is not publicly reachable; "
                    "forwarding methods through hidden access is not supported",
                    context={"member": member.name},
                )
            resolved = None

        if resolved is None:
            return self._missing_method(request, member)
        return _forwarding_method(request.name, member.name, resolved)

    def _missing_method(self, request: AdapterRequest, member: ContractMember) -> Callable[..., Any]:
        logger.debug(
            "Method not supported by target",
            adapter=request.name,
            member=member.name,
            policy=request.on_missing.value,
        )
        message = f"{request.name}.{member.name} is not supported by {type_name(request.target_type)}"

        if request.on_missing is MissingMemberPolicy.FAIL:

            def method(self, *args, **kwargs):
                raise UnsupportedMemberError(message, context={"member": member.name})

        else:
            result = default_value(member.member_type)

            def method(self, *args, **kwargs):
                return result

        method.__name__ = member.name
        method.__qualname__ = f"{request.name}.{member.name}"
        return method

    def _property(self, request: AdapterRequest, member: ContractMember) -> property:
        target = request.target_type
        getter = setter = None

        if member.readable:
            resolved = _resolve_accessor(target, member.name, _readable)
            if resolved is not None and resolved.hidden and not self._hidden_allowed(request, member.name):
                resolved = None
            getter = self._getter(request, member, resolved)

        if member.writable:
            resolved = _resolve_accessor(target, member.name, _writable)
            if resolved is not None and resolved.hidden and not self._hidden_allowed(request, member.name):
                resolved = None
            setter = self._setter(request, member, resolved)

        return property(getter, setter)

    def _instance_candidates(self, request: AdapterRequest, name: str) -> list[_Resolved]:
        """Names to look up in the wrapped instance's ``__dict__`` at call time."""
        target = request.target_type
        candidates = []
        if not is_hidden_type(target) or self.allow_hidden_access:
            candidates.append(_Resolved(name, hidden=is_hidden_type(target)))
        if self.allow_hidden_access:
            candidates.extend(_Resolved(alt, hidden=True) for alt in hidden_names(target, name))
        return candidates

    def _getter(self, request: AdapterRequest, member: ContractMember, resolved: _Resolved | None):
        access = self.access

        if resolved is None:
            # Attributes assigned in __init__ only show up on instances.
            missing = self._missing_getter(request, member)
            candidates = self._instance_candidates(request, member.name)
            target_id = access.register(request.target_type)
            logger.debug("Getter resolved per instance", adapter=request.name, member=member.name)

            def fget(self):
                wrapped = getattr(self, WRAPPED)
                state = getattr(wrapped, "__dict__", None) or {}
                for candidate in candidates:
                    if candidate.attribute not in state:
                        continue
                    if candidate.hidden:
                        return access.get(target_id, candidate.attribute, wrapped)
                    return getattr(wrapped, candidate.attribute)
                return missing(self)

        elif resolved.hidden:
            attribute = resolved.attribute
            target_id = access.register(request.target_type)

            def fget(self):
                return access.get(target_id, attribute, getattr(self, WRAPPED))

        else:
            attribute = resolved.attribute

            def fget(self):
                return getattr(getattr(self, WRAPPED), attribute)

        fget.__name__ = member.name
        fget.__annotations__ = {"return": member.member_type}
        return fget

    def _missing_getter(
        self, request: AdapterRequest, member: ContractMember
    ) -> Callable[[Any], Any]:
        if request.on_missing is MissingMemberPolicy.FAIL:
            message = f"Reading {request.name}.{member.name} is not supported"

            def fget(self):
                raise UnsupportedMemberError(message, context={"member": member.name})

        else:
            default = default_value(member.member_type)

            def fget(self):
                return default

        return fget

    def _setter(self, request: AdapterRequest, member: ContractMember, resolved: _Resolved | None):
        access = self.access

        if resolved is None:
            missing = self._missing_setter(request, member)
            candidates = self._instance_candidates(request, member.name)
            target_id = access.register(request.target_type)
            logger.debug("Setter resolved per instance", adapter=request.name, member=member.name)

            def fset(self, value):
                wrapped = getattr(self, WRAPPED)
                state = getattr(wrapped, "__dict__", None) or {}
                for candidate in candidates:
                    if candidate.attribute not in state:
                        continue
                    if candidate.hidden:
                        access.set(target_id, candidate.attribute, wrapped, value)
                    else:
                        setattr(wrapped, candidate.attribute, value)
                    return
                missing(self, value)

        elif resolved.hidden:
            attribute = resolved.attribute
            target_id = access.register(request.target_type)

            def fset(self, value):
                access.set(target_id, attribute, getattr(self, WRAPPED), value)

        else:
            attribute = resolved.attribute

            def fset(self, value):
                setattr(getattr(self, WRAPPED), attribute, value)

        fset.__name__ = member.name
        return fset

    def _missing_setter(
        self, request: AdapterRequest, member: ContractMember
    ) -> Callable[[Any, Any], None]:
        if request.on_missing is MissingMemberPolicy.FAIL:
            message = f"Writing {request.name}.{member.name} is not supported"

            def fset(self, value):
                raise UnsupportedMemberError(message, context={"member": member.name})

        else:

            def fset(self, value):
                pass

        return fset


def _forwarding_method(adapter_name: str, member_name: str, resolved: MethodCandidate) -> Callable[..., Any]:
    fn = resolved.function
    attribute = resolved.name

    if resolved.dispatch_type is not None and resolved.bound:
        # Pin the overload picked for the contract signature.
        def method(self, *args, **kwargs):
            return fn(getattr(self, WRAPPED), *args, **kwargs)

    elif resolved.bound:

        def method(self, *args, **kwargs):
            return getattr(getattr(self, WRAPPED), attribute)(*args, **kwargs)

    else:

        def method(self, *args, **kwargs):
            return fn(*args, **kwargs)

    method.__name__ = member_name
    method.__qualname__ = f"{adapter_name}.{member_name}"
    method.__doc__ = getattr(fn, "__doc__", None)
    return method
