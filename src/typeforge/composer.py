"""Type composer.

Synthesizes a class from a name and a list of MemberDefinitions, optionally
deriving from a base type and implementing capability contracts.

Member sources, in order of precedence (the first definition of a name
wins):
1. Explicit definitions
2. Abstract members of the base type, overridden with trivial bodies
3. Members of the flattened contracts, except those an ABC contract implements

When change notification is requested, every synthesized property setter and
every overridable property inherited from the base type announces changes
through a single ``_raise_property_changed`` method.

Example:
    composer = TypeComposer(TypeRegistry())
    Point = composer.compose(
        "Point",
        [MemberDefinition.property("x", int), MemberDefinition.property("y", int)],
        contracts=[NotifyPropertyChanged],
    )
"""

from __future__ import annotations

import inspect
import keyword
import types
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from . import generated
from .contracts import Contract, collect_members, flatten_contracts
from .errors import CompositionError, UnknownTypeError
from .logging import get_logger
from .members import MemberDefinition, MemberKind
from .notify import Event, NotifyPropertyChanged, PropertyChangedEvent
from .reflection import default_value, is_final, return_type
from .registry import TypeRegistry

logger = get_logger("composer")

RAISE_METHOD = "_raise_property_changed"
CHANGED_EVENT = "property_changed"

_MISSING = object()


@dataclass(frozen=True)
class TypeRequest:
    """Everything needed to compose one type."""

    name: str
    definitions: tuple[MemberDefinition, ...] = ()
    base_type: type | None = None
    contracts: tuple[Any, ...] = ()
    sealed: bool = False
    serializable: bool = False
    notify_changes: bool = False


@dataclass
class _Plan:
    members: dict[str, MemberDefinition] = field(default_factory=dict)
    contracts: list[Any] = field(default_factory=list)
    notify: bool = False
    # staticmethod or classmethod, for stubs replacing such abstract members
    descriptors: dict[str, type] = field(default_factory=dict)


def _check_member_name(type_name: str, name: str) -> None:
    if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name):
        raise CompositionError(f"{type_name}: {name!r} is not a valid member name")
    if name.startswith("__") and name.endswith("__"):
        raise CompositionError(f"{type_name}: special name {name!r} cannot be defined")


def _static(tp: type, name: str) -> Any:
    try:
        return inspect.getattr_static(tp, name)
    except AttributeError:
        return _MISSING


def _changed(before: Any, after: Any) -> bool:
    return before is not after and before != after


# =============================================================================
# Member Emission
# =============================================================================


def _storage_property(type_name: str, definition: MemberDefinition, notify: bool) -> property:
    name = definition.name
    storage = f"_{name}_value"
    default = default_value(definition.member_type)

    def fget(self):
        return self.__dict__.get(storage, default)

    if notify:

        def fset(self, value):
            before = fget(self)
            self.__dict__[storage] = value
            if _changed(before, fget(self)):
                getattr(self, RAISE_METHOD)(name)

    else:

        def fset(self, value):
            self.__dict__[storage] = value

    for accessor in (fget, fset):
        accessor.__name__ = name
        accessor.__qualname__ = f"{type_name}.{name}"
    fget.__annotations__ = {"return": definition.member_type}
    fset.__annotations__ = {"value": definition.member_type, "return": None}
    return property(fget, fset)


def _notifying_override(type_name: str, name: str, inherited: property) -> property:
    getter = inherited.fget
    setter = inherited.fset

    def fset(self, value):
        if getter is None:
            setter(self, value)
            getattr(self, RAISE_METHOD)(name)
            return
        before = getter(self)
        setter(self, value)
        if _changed(before, getter(self)):
            getattr(self, RAISE_METHOD)(name)

    fset.__name__ = name
    fset.__qualname__ = f"{type_name}.{name}"
    return property(getter, fset, inherited.fdel, inherited.__doc__)


def _forwarding_method(type_name: str, definition: MemberDefinition) -> Callable[..., Any]:
    body = definition.body

    def method(self, *args, **kwargs):
        return body(*args, **kwargs)

    method.__name__ = definition.name
    method.__qualname__ = f"{type_name}.{definition.name}"
    method.__doc__ = getattr(body, "__doc__", None)
    method.__annotations__ = {"return": definition.return_type}
    return method


def _empty_method(
    type_name: str, definition: MemberDefinition, descriptor: type | None = None
) -> Any:
    returns = definition.return_type
    result = default_value(returns)

    if descriptor is staticmethod:

        def method(*args, **kwargs):
            return result

    else:

        def method(self, *args, **kwargs):
            return result

    method.__name__ = definition.name
    method.__qualname__ = f"{type_name}.{definition.name}"
    method.__annotations__ = {"return": returns}
    return descriptor(method) if descriptor is not None else method


def _descriptor_kind(attr: Any) -> type | None:
    if isinstance(attr, (staticmethod, classmethod)):
        return type(attr)
    return None


def _implemented_by(contract: Any, name: str) -> bool:
    """Check whether an ABC contract class carries a concrete body for name.

    Protocol members are stubs and never count as implementations.
    """
    if not isinstance(contract, type) or getattr(contract, "_is_protocol", False):
        return False
    if name not in contract.__dict__:
        return False
    return name not in getattr(contract, "__abstractmethods__", ())


def _raise_property_changed(self, property_name: str) -> None:
    getattr(self, CHANGED_EVENT).fire(PropertyChangedEvent(self, property_name))


def _composed_repr(self) -> str:
    members = type(self).__forge_members__
    shown = [
        f"{name}={getattr(self, name)!r}"
        for name, definition in members.items()
        if definition.kind in (MemberKind.FIELD, MemberKind.PROPERTY)
    ]
    return f"{type(self).__qualname__}({', '.join(shown)})"


# =============================================================================
# Composer
# =============================================================================


class TypeComposer:
    """Composes types and caches them by name.

    A name is composed at most once; later requests for the same name
    return the cached type whatever shape they ask for.
    """

    def __init__(self, registry: TypeRegistry[type] | None = None):
        self.registry = registry if registry is not None else TypeRegistry("type")

    def get(self, name: str) -> type:
        """Get a composed type by name.

        Raises:
            UnknownTypeError: If the name was never composed
        """
        cls = self.registry.get(name)
        if cls is None:
            raise UnknownTypeError(name)
        return cls

    def compose(
        self,
        name: str,
        definitions: Iterable[MemberDefinition] = (),
        *,
        base_type: type | None = None,
        contracts: Sequence[Any] = (),
        sealed: bool = False,
        serializable: bool = False,
        notify_changes: bool = False,
    ) -> type:
        """Compose a type, or return the cached type of that name.

        Args:
            name: Type name, unique in the registry
            definitions: Explicit members
            base_type: Class to derive from
            contracts: Capability contracts to implement
            sealed: Reject subclassing
            serializable: Allow pickling and copying instances
            notify_changes: Implement NotifyPropertyChanged

        Returns:
            The composed class

        Raises:
            CompositionError: On invalid names or members, contract cycles,
                a sealed base, or overriding a final base member
        """
        request = TypeRequest(
            name=name,
            definitions=tuple(definitions),
            base_type=base_type,
            contracts=tuple(contracts),
            sealed=sealed,
            serializable=serializable,
            notify_changes=notify_changes,
        )
        return self.registry.get_or_create(name, lambda: self._synthesize(request))

    def _plan(self, request: TypeRequest) -> _Plan:
        plan = _Plan()
        members = plan.members
        base = request.base_type

        for definition in request.definitions:
            if not isinstance(definition, MemberDefinition):
                raise CompositionError(
                    f"{request.name}: expected MemberDefinition, got {type(definition).__name__}",
                    suggestion="Bind raw arguments with bind_definitions first",
                )
            _check_member_name(request.name, definition.name)
            members.setdefault(definition.name, definition)

        if base is not None:
            self._plan_base(request, plan)

        contracts = list(request.contracts)
        if request.notify_changes and NotifyPropertyChanged not in contracts:
            contracts.append(NotifyPropertyChanged)
        plan.contracts = flatten_contracts(contracts)
        plan.notify = any(c is NotifyPropertyChanged for c in plan.contracts)

        if plan.notify and CHANGED_EVENT in members:
            raise CompositionError(
                f"{request.name}: {CHANGED_EVENT!r} is reserved for change notification"
            )

        for member in collect_members(plan.contracts):
            if member.name in members:
                continue
            if plan.notify and member.name == CHANGED_EVENT:
                continue
            if base is not None and _static(base, member.name) is not _MISSING:
                if member.name not in getattr(base, "__abstractmethods__", ()):
                    continue
            declared = [
                c for c in plan.contracts if isinstance(c, type) and member.name in c.__dict__
            ]
            if any(_implemented_by(c, member.name) for c in declared):
                continue
            if declared:
                descriptor = _descriptor_kind(declared[0].__dict__[member.name])
                if descriptor is not None:
                    plan.descriptors[member.name] = descriptor
            members[member.name] = member.to_definition()

        return plan

    def _plan_base(self, request: TypeRequest, plan: _Plan) -> None:
        base = request.base_type
        if not isinstance(base, type):
            raise CompositionError(f"{request.name}: base type {base!r} is not a class")
        if getattr(base, "__final__", False):
            raise CompositionError(
                f"{request.name}: cannot derive from sealed type {base.__qualname__}"
            )

        for name in plan.members:
            inherited = _static(base, name)
            if inherited is not _MISSING and is_final(inherited):
                raise CompositionError(
                    f"{request.name}: {base.__qualname__}.{name} is final and cannot be overridden",
                    context={"member": name},
                )

        for name in sorted(getattr(base, "__abstractmethods__", ())):
            if name in plan.members:
                continue
            inherited = _static(base, name)
            if isinstance(inherited, property):
                plan.members[name] = MemberDefinition.property(
                    name, return_type(inherited.fget), is_virtual=True
                )
            else:
                fn = getattr(inherited, "__func__", inherited)
                plan.members[name] = MemberDefinition.empty_method(
                    name, Callable[..., return_type(fn)], is_virtual=True
                )
                descriptor = _descriptor_kind(inherited)
                if descriptor is not None:
                    plan.descriptors[name] = descriptor

    def _synthesize(self, request: TypeRequest) -> type:
        name = request.name
        if not isinstance(name, str) or not name.isidentifier():
            raise CompositionError(f"{name!r} is not a valid type name")

        with logger.timed("compose", type_name=name):
            plan = self._plan(request)
            namespace = self._namespace(request, plan)
            bases = self._bases(request, plan)

            try:
                cls = types.new_class(name, bases, {}, lambda ns: ns.update(namespace))
            except TypeError as e:
                raise CompositionError(f"Cannot compose {name}: {e}") from e

            still_abstract = sorted(getattr(cls, "__abstractmethods__", ()))
            if still_abstract:
                raise CompositionError(
                    f"{name}: abstract members left unimplemented: {', '.join(still_abstract)}"
                )

            generated.register(cls)

        logger.debug(
            "Composed type",
            type_name=name,
            members=len(plan.members),
            contracts=len(plan.contracts),
            notify=plan.notify,
        )
        return cls

    def _bases(self, request: TypeRequest, plan: _Plan) -> tuple[type, ...]:
        base = request.base_type
        inherited = base.__mro__ if base is not None else (object,)
        classes = [c for c in plan.contracts if isinstance(c, type) and c not in inherited]
        # Only the most derived contracts; their parents come along via the MRO.
        leaves = [c for c in classes if not any(c is not other and c in other.__mro__ for other in classes)]
        bases = ([base] if base is not None else []) + leaves
        return tuple(bases)

    def _namespace(self, request: TypeRequest, plan: _Plan) -> dict[str, Any]:
        name = request.name
        namespace: dict[str, Any] = {}
        annotations: dict[str, Any] = {}

        for definition in plan.members.values():
            kind = definition.kind
            if kind is MemberKind.FIELD:
                namespace[definition.name] = default_value(definition.member_type)
                annotations[definition.name] = definition.member_type
            elif kind is MemberKind.PROPERTY:
                namespace[definition.name] = _storage_property(name, definition, plan.notify)
            elif kind is MemberKind.METHOD:
                namespace[definition.name] = _forwarding_method(name, definition)
            elif kind is MemberKind.EMPTY_METHOD:
                namespace[definition.name] = _empty_method(
                    name, definition, plan.descriptors.get(definition.name)
                )
            elif kind is MemberKind.EVENT:
                namespace[definition.name] = Event(definition.member_type)

        if plan.notify:
            namespace[CHANGED_EVENT] = Event(Callable[[PropertyChangedEvent], None])
            namespace[RAISE_METHOD] = _raise_property_changed
            if request.base_type is not None:
                for prop_name, inherited in _overridable_properties(request.base_type):
                    if prop_name not in namespace:
                        namespace[prop_name] = _notifying_override(name, prop_name, inherited)

        if request.sealed:
            namespace["__final__"] = True
            namespace["__init_subclass__"] = classmethod(sealed_init_subclass)

        if not request.serializable:
            namespace["__reduce_ex__"] = _refuse_pickling

        namespace["__module__"] = generated.__name__
        namespace["__qualname__"] = name
        namespace["__annotations__"] = annotations
        namespace["__forge_members__"] = MappingProxyType(dict(plan.members))
        namespace["__forge_contracts__"] = tuple(c for c in plan.contracts if isinstance(c, Contract))
        namespace["__forge_request__"] = request
        if request.base_type is None or request.base_type.__repr__ is object.__repr__:
            namespace["__repr__"] = _composed_repr
        return namespace


def _overridable_properties(base: type) -> list[tuple[str, property]]:
    found = []
    for name in dir(base):
        if name.startswith("__"):
            continue
        attr = _static(base, name)
        if isinstance(attr, property) and attr.fset is not None and not is_final(attr):
            found.append((name, attr))
    return found


def sealed_init_subclass(cls, **kwargs: Any) -> None:
    sealed = next(base for base in cls.__mro__[1:] if base.__dict__.get("__final__"))
    raise TypeError(f"{sealed.__qualname__} is sealed and cannot be subclassed")


def _refuse_pickling(self, protocol: int) -> Any:
    raise TypeError(
        f"{type(self).__qualname__} is not serializable; compose it with serializable=True"
    )
