"""Tests for structured errors."""

import pytest

from typeforge.errors import (
    AdapterError,
    ArgumentError,
    BindingError,
    ConfigError,
    ErrorCategory,
    ForgeError,
    MemberNotFoundError,
    UnknownTypeError,
    UnsupportedMemberError,
)


class TestForgeError:
    """Tests for the ForgeError base."""

    def test_defaults(self):
        error = ForgeError("boom")

        assert str(error) == "boom"
        assert error.suggestion is None
        assert error.context == {}

    def test_to_dict(self):
        error = BindingError("bad call", suggestion="name it", context={"index": 2})

        assert error.to_dict() == {
            "category": "BINDING",
            "message": "bad call",
            "suggestion": "name it",
            "context": {"index": 2},
        }

    def test_to_compact(self):
        error = AdapterError("no adapter", suggestion="pass one contract")

        compact = error.to_compact()

        assert compact.startswith("[ADAPTER] no adapter")
        assert "Try: pass one contract" in compact


class TestSubclasses:
    """Tests for the specific error types."""

    def test_unknown_type_is_lookup_error(self):
        error = UnknownTypeError("Ghost")

        assert isinstance(error, LookupError)
        assert error.category is ErrorCategory.UNKNOWN_TYPE
        assert error.name == "Ghost"
        assert "Ghost" in str(error)

    def test_unknown_type_kind(self):
        error = UnknownTypeError("Plug", kind="adapter")

        assert str(error) == "Unknown adapter: 'Plug'"
        assert error.context == {"name": "Plug", "kind": "adapter"}

    def test_member_not_found_is_attribute_error(self):
        with pytest.raises(AttributeError, match="has no member 'size'"):
            raise MemberNotFoundError("Box", "size")

    def test_argument_error_is_value_error(self):
        assert isinstance(ArgumentError("x"), ValueError)

    def test_unsupported_is_not_implemented(self):
        assert isinstance(UnsupportedMemberError("x"), NotImplementedError)

    def test_config_error_records_file(self):
        error = ConfigError("bad", file="typeforge.toml")

        assert error.context["file"] == "typeforge.toml"
        assert error.category is ErrorCategory.CONFIG
        assert error.suggestion
