"""Tests for the adapter composer."""

import abc
import functools
import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import pytest

from typeforge.access import HiddenMemberAccess
from typeforge.adapter import AdapterComposer, MissingMemberPolicy, hidden_names, is_hidden_type
from typeforge.contracts import Contract, implements
from typeforge.errors import (
    AdapterError,
    ArgumentError,
    UnknownTypeError,
    UnsupportedMemberError,
)
from typeforge.members import MemberDefinition
from typeforge.registry import TypeRegistry

# ===== Contracts =====


@runtime_checkable
class Shape(Protocol):
    def area(self) -> float: ...


class Measured(Protocol):
    def area(self) -> float: ...

    def perimeter(self) -> float: ...


class Round(Protocol):
    @property
    def radius(self) -> float: ...

    @radius.setter
    def radius(self, value: float) -> None: ...

    @property
    def diameter(self) -> float: ...

    @diameter.setter
    def diameter(self, value: float) -> None: ...


class Tunable(Protocol):
    @property
    def temperature(self) -> int: ...

    @temperature.setter
    def temperature(self, value: int) -> None: ...


class Startable(Protocol):
    def start(self) -> bool: ...


class IntRenderer(Protocol):
    def render(self, value: int) -> str: ...


class Doubler(Protocol):
    def double(self, x: int) -> int: ...


class Sized(abc.ABC):
    @abc.abstractmethod
    def size(self) -> int: ...


class Badged(Protocol):
    name: str
    code: int


# ===== Targets =====


class Square:
    def __init__(self, side: float):
        self.side = side

    def area(self) -> float:
        return self.side**2


class Circle:
    radius: float

    def __init__(self, radius: float):
        self.radius = radius

    @property
    def diameter(self) -> float:
        return self.radius * 2


class Thermostat:
    _temperature: int = 20


class Engine:
    def _start(self) -> bool:
        return True


class _Internal:
    def area(self) -> float:
        return 1.0


class Formatter:
    @functools.singledispatchmethod
    def render(self, value) -> str:
        return "any"

    @render.register
    def _(self, value: int) -> str:
        return f"int {value}"

    @render.register
    def _(self, value: str) -> str:
        return f"str {value}"


class MathTools:
    @staticmethod
    def double(x: int) -> int:
        return x * 2


class Box:
    def size(self) -> int:
        return 3


class Person:
    def __init__(self, name: str):
        self.name = name
        self._code = 7


@pytest.fixture
def adapters():
    return AdapterComposer(TypeRegistry("adapter"), HiddenMemberAccess())


class TestHelpers:
    """Tests for hidden-name helpers."""

    def test_hidden_names(self):
        assert hidden_names(Engine, "start") == ["_start", "_Engine__start"]

    def test_hidden_type(self):
        assert is_hidden_type(_Internal)
        assert not is_hidden_type(Engine)


class TestComposeAdapter:
    """Tests for composing and caching adapters."""

    def test_forwards_method(self, adapters, unique):
        cls = adapters.compose_adapter(unique("ShapeOfSquare"), Shape, Square)
        adapter = cls(Square(3))

        assert adapter.area() == 9
        assert isinstance(adapter, Shape)
        assert implements(adapter, Shape)

    def test_forwarding_sees_target_state(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Shape, Square)
        square = Square(2)
        adapter = cls(square)

        square.side = 5

        assert adapter.area() == 25

    def test_cached_by_name(self, adapters, unique):
        name = unique()
        first = adapters.compose_adapter(name, Shape, Square)

        assert adapters.compose_adapter(name, Measured, Circle) is first
        assert adapters.get(name) is first

    def test_wrap_by_name(self, adapters, unique):
        name = unique()
        adapters.compose_adapter(name, Shape, Square)

        assert adapters.wrap(name, Square(2)).area() == 4

    def test_wrap_unknown(self, adapters):
        with pytest.raises(UnknownTypeError, match="adapter"):
            adapters.wrap("NeverComposed", Square(1))

    def test_single_contract_in_list(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), [Shape], Square)

        assert cls(Square(1)).area() == 1

    def test_several_contracts_rejected(self, adapters, unique):
        with pytest.raises(AdapterError, match="exactly one contract"):
            adapters.compose_adapter(unique(), [Shape, Round], Square)

    def test_no_contract_rejected(self, adapters, unique):
        with pytest.raises(AdapterError, match="exactly one contract"):
            adapters.compose_adapter(unique(), [], Square)

    def test_non_contract_rejected(self, adapters, unique):
        with pytest.raises(AdapterError, match="not a capability contract"):
            adapters.compose_adapter(unique(), Square, Square)

    def test_target_must_be_class(self, adapters, unique):
        with pytest.raises(ArgumentError):
            adapters.compose_adapter(unique(), Shape, Square(1))

    def test_abc_contract(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Sized, Box)
        adapter = cls(Box())

        assert isinstance(adapter, Sized)
        assert adapter.size() == 3

    def test_declarative_contract(self, adapters, unique):
        contract = Contract(
            "Areal",
            [MemberDefinition.empty_method("area", Callable[[], float])],
        )

        cls = adapters.compose_adapter(unique(), contract, Square)
        adapter = cls(Square(4))

        assert adapter.area() == 16
        assert implements(adapter, contract)

    def test_logs_synthesis(self, adapters, unique, caplog):
        with caplog.at_level(logging.DEBUG, logger="typeforge"):
            adapters.compose_adapter(unique(), Measured, Square)

        assert "compose_adapter completed" in caplog.text
        assert "Method not supported by target" in caplog.text


class TestAdapterInstances:
    """Tests for the wrapped-instance plumbing."""

    def test_none_rejected(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Shape, Square)

        with pytest.raises(ArgumentError, match="needs an instance"):
            cls(None)

    def test_wrong_type_rejected(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Shape, Square)

        with pytest.raises(ArgumentError, match="wraps Square"):
            cls(Circle(1))

    def test_wrapped_not_reassignable(self, adapters, unique):
        adapter = adapters.compose_adapter(unique(), Shape, Square)(Square(1))

        with pytest.raises(AttributeError, match="cannot be reassigned"):
            adapter._wrapped = Square(2)

    def test_unknown_attribute_rejected(self, adapters, unique):
        adapter = adapters.compose_adapter(unique(), Shape, Square)(Square(1))

        with pytest.raises(AttributeError, match="no property 'color'"):
            adapter.color = "red"

    def test_sealed(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Shape, Square)

        with pytest.raises(TypeError, match="sealed"):
            type("Sub", (cls,), {})

    def test_repr(self, adapters, unique):
        name = unique("Plug")
        adapter = adapters.compose_adapter(name, Shape, Square)(Square(1))

        assert repr(adapter).startswith(f"<{name} wrapping ")


class TestMissingMembers:
    """Tests for the missing-member policies."""

    def test_default_returns_default(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Measured, Square, MissingMemberPolicy.DEFAULT)

        assert cls(Square(2)).perimeter() == 0.0

    def test_default_is_out_of_the_box(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Measured, Square)

        assert cls(Square(2)).perimeter() == 0.0

    def test_fail_raises(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Measured, Square, MissingMemberPolicy.FAIL)
        adapter = cls(Square(2))

        assert adapter.area() == 4
        with pytest.raises(UnsupportedMemberError, match="perimeter"):
            adapter.perimeter()

    def test_policy_by_value(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Measured, Square, "fail")

        with pytest.raises(UnsupportedMemberError):
            cls(Square(2)).perimeter()

    def test_configured_default(self, unique):
        adapters = AdapterComposer(default_on_missing=MissingMemberPolicy.FAIL)
        cls = adapters.compose_adapter(unique(), Measured, Square)

        with pytest.raises(UnsupportedMemberError):
            cls(Square(2)).perimeter()

    def test_read_only_target_property(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Round, Circle, MissingMemberPolicy.FAIL)
        adapter = cls(Circle(2))

        assert adapter.diameter == 4
        with pytest.raises(UnsupportedMemberError, match="Writing"):
            adapter.diameter = 10

    def test_default_ignores_writes(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Round, Circle, MissingMemberPolicy.DEFAULT)
        circle = Circle(2)
        adapter = cls(circle)

        adapter.diameter = 10

        assert circle.radius == 2

    def test_missing_property(self, adapters, unique):
        default = adapters.compose_adapter(unique(), Tunable, Square)(Square(1))
        failing = adapters.compose_adapter(unique(), Tunable, Square, "fail")(Square(1))

        assert default.temperature == 0
        with pytest.raises(UnsupportedMemberError, match="Reading"):
            _ = failing.temperature


class TestProperties:
    """Tests for property forwarding."""

    def test_public_property(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Round, Circle)
        circle = Circle(2)
        adapter = cls(circle)

        adapter.radius = 3

        assert circle.radius == 3
        assert adapter.radius == 3
        assert adapter.diameter == 6

    def test_hidden_property(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Tunable, Thermostat)
        thermostat = Thermostat()
        adapter = cls(thermostat)

        assert adapter.temperature == 20
        adapter.temperature = 25

        assert thermostat._temperature == 25
        assert adapters.access.accessor_count() == 2

    def test_hidden_access_disabled(self, unique):
        adapters = AdapterComposer(allow_hidden_access=False)
        cls = adapters.compose_adapter(unique(), Tunable, Thermostat)
        thermostat = Thermostat()
        adapter = cls(thermostat)

        adapter.temperature = 25

        assert adapter.temperature == 0
        assert thermostat._temperature == 20

    def test_instance_attributes(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Badged, Person, MissingMemberPolicy.FAIL)
        person = Person("Ada")
        adapter = cls(person)

        assert adapter.name == "Ada"
        assert adapter.code == 7
        adapter.name = "Grace"
        adapter.code = 8

        assert person.name == "Grace"
        assert person._code == 8

    def test_instance_attribute_missing_on_instance(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Badged, Person, MissingMemberPolicy.FAIL)
        person = Person("Ada")
        del person.name
        adapter = cls(person)

        with pytest.raises(UnsupportedMemberError, match="Reading"):
            _ = adapter.name
        with pytest.raises(UnsupportedMemberError, match="Writing"):
            adapter.name = "Grace"

    def test_instance_attributes_default_policy(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Badged, Person)
        adapter = cls(Person("Ada"))

        adapter.name = "Grace"

        assert adapter.name == "Grace"
        assert adapter.code == 7

    def test_hidden_instance_attribute_when_access_disabled(self, unique):
        adapters = AdapterComposer(allow_hidden_access=False)
        cls = adapters.compose_adapter(unique(), Badged, Person)
        adapter = cls(Person("Ada"))

        assert adapter.name == "Ada"
        assert adapter.code == 0


class TestMethodResolution:
    """Tests for method resolution."""

    def test_hidden_method_rejected(self, adapters, unique):
        with pytest.raises(AdapterError, match="not publicly reachable"):
            adapters.compose_adapter(unique(), Startable, Engine)

    def test_hidden_method_policy_when_access_disabled(self, unique):
        adapters = AdapterComposer(allow_hidden_access=False)

        cls = adapters.compose_adapter(unique(), Startable, Engine)

        assert cls(Engine()).start() is False

    def test_hidden_type_rejected(self, adapters, unique):
        with pytest.raises(AdapterError, match="not publicly reachable"):
            adapters.compose_adapter(unique(), Shape, _Internal)

    def test_overload_pinned(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), IntRenderer, Formatter)
        adapter = cls(Formatter())

        assert adapter.render(5) == "int 5"
        assert adapter.render("x") == "int x"

    def test_static_method(self, adapters, unique):
        cls = adapters.compose_adapter(unique(), Doubler, MathTools)

        assert cls(MathTools()).double(4) == 8

    def test_arity_mismatch_is_missing(self, adapters, unique):
        class Pair(Protocol):
            def area(self, scale: float) -> float: ...

        cls = adapters.compose_adapter(unique(), Pair, Square, "fail")

        with pytest.raises(UnsupportedMemberError):
            cls(Square(1)).area(2.0)
