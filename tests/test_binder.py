"""Tests for the call argument binder."""

from collections.abc import Callable

import pytest

from typeforge.binder import bind_definitions, bind_values
from typeforge.errors import BindingError
from typeforge.members import Member, MemberDefinition, MemberKind, ValueKind


class TestBindValues:
    """Tests for bind_values."""

    def test_all_named(self):
        bound = bind_values(["Ada", 36], ["name", "age"])

        assert bound == [Member.unknown("name", "Ada"), Member.unknown("age", 36)]

    def test_descriptors_then_named(self):
        first = Member.field("id", 1)
        second = Member.property("email", "ada@example.com")

        bound = bind_values([first, second, "Ada"], ["name"])

        assert bound[0] is first
        assert bound[1] is second
        assert bound[2] == Member("name", "Ada", ValueKind.UNKNOWN)

    def test_equal_counts_keep_descriptors(self):
        descriptor = Member.field("id", 1)

        bound = bind_values([descriptor, "Ada"], ["ignored", "name"])

        assert bound == [descriptor, Member.unknown("name", "Ada")]

    def test_unnamed_plain_arguments(self):
        with pytest.raises(BindingError, match="3 unnamed"):
            bind_values(["a", "b", "c"], ["name"])

    def test_named_argument_before_descriptor(self):
        with pytest.raises(BindingError, match="must come last"):
            bind_values([Member.field("id", 1), "Ada", Member.field("age", 3)], ["name"])

    def test_empty(self):
        assert bind_values([], []) == []

    def test_only_descriptors(self):
        descriptors = [Member.field("a", 1), Member.field("b", 2)]

        assert bind_values(descriptors, []) == descriptors


class TestBindDefinitions:
    """Tests for bind_definitions."""

    def test_type_tokens_and_callables(self):
        def greet(other: str) -> str:
            return f"hi {other}"

        explicit = MemberDefinition.field("id", int)

        bound = bind_definitions(
            [explicit, str, Callable[[int], bool], greet],
            ["name", "check", "greet"],
        )

        assert bound[0] is explicit
        assert bound[1] == MemberDefinition.property("name", str)
        assert bound[2].kind is MemberKind.EMPTY_METHOD
        assert bound[2].member_type == Callable[[int], bool]
        assert bound[3].kind is MemberKind.METHOD
        assert bound[3].body is greet

    def test_generic_alias_is_property(self):
        bound = bind_definitions([list[int]], ["items"])

        assert bound[0].kind is MemberKind.PROPERTY
        assert bound[0].member_type == list[int]

    def test_plain_value_rejected(self):
        with pytest.raises(BindingError, match="needs a type or a callable"):
            bind_definitions([42], ["answer"])

    def test_count_mismatch(self):
        with pytest.raises(BindingError):
            bind_definitions([int, str, float], ["x"])
