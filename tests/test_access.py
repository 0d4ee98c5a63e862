"""Tests for hidden-member access."""

import pytest

from typeforge.access import HiddenMemberAccess, type_id
from typeforge.errors import MemberNotFoundError, NullReferenceError, UnknownTypeError


class Vault:
    _label: str = "vault"

    def __init__(self):
        self._secret = "s3cret"
        self.__code = 42

    @property
    def _sealed(self) -> bool:
        return True


@pytest.fixture
def access():
    return HiddenMemberAccess()


@pytest.fixture
def vault_id(access):
    return access.register(Vault)


class TestRegister:
    """Tests for type registration."""

    def test_register_returns_type_id(self, access):
        assert access.register(Vault) == type_id(Vault)

    def test_register_twice(self, access):
        assert access.register(Vault) == access.register(Vault)

    def test_type_id_mentions_type(self):
        assert "Vault" in type_id(Vault)


class TestGet:
    """Tests for reading members."""

    def test_instance_attribute(self, access, vault_id):
        assert access.get(vault_id, "_secret", Vault()) == "s3cret"

    def test_mangled_attribute(self, access, vault_id):
        assert access.get(vault_id, "_Vault__code", Vault()) == 42

    def test_class_attribute_and_property(self, access, vault_id):
        assert access.get(vault_id, "_label", Vault()) == "vault"
        assert access.get(vault_id, "_sealed", Vault()) is True

    def test_accessor_reused(self, access, vault_id):
        access.get(vault_id, "_secret", Vault())
        access.get(vault_id, "_secret", Vault())

        assert access.accessor_count() == 1

    def test_none_instance(self, access, vault_id):
        with pytest.raises(NullReferenceError):
            access.get(vault_id, "_secret", None)

    def test_missing_member(self, access, vault_id):
        with pytest.raises(MemberNotFoundError, match="_missing"):
            access.get(vault_id, "_missing", Vault())

    def test_unregistered_type(self, access):
        with pytest.raises(UnknownTypeError):
            access.get("nowhere.Nothing#0", "_secret", Vault())


class TestSet:
    """Tests for writing members."""

    def test_set_instance_attribute(self, access, vault_id):
        vault = Vault()

        access.set(vault_id, "_secret", vault, "changed")

        assert vault._secret == "changed"

    def test_set_mangled_attribute(self, access, vault_id):
        vault = Vault()

        access.set(vault_id, "_Vault__code", vault, 7)

        assert access.get(vault_id, "_Vault__code", vault) == 7

    def test_setter_reused(self, access, vault_id):
        access.set(vault_id, "_secret", Vault(), 1)
        access.set(vault_id, "_secret", Vault(), 2)

        assert access.accessor_count() == 1

    def test_set_none_instance(self, access, vault_id):
        with pytest.raises(NullReferenceError):
            access.set(vault_id, "_secret", None, 1)

    def test_set_missing_member(self, access, vault_id):
        with pytest.raises(MemberNotFoundError):
            access.set(vault_id, "_missing", Vault(), 1)
