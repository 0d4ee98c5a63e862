"""Shared fixtures for typeforge tests."""

import itertools

import pytest

from typeforge import TypeForge

_names = itertools.count()


@pytest.fixture
def forge():
    """A fresh engine with empty registries."""
    return TypeForge()


@pytest.fixture
def unique():
    """Factory for type names no other test uses.

    Composed classes are attached to ``typeforge.generated`` by name, so
    tests keep their names apart.
    """

    def make(prefix: str = "Type") -> str:
        return f"{prefix}{next(_names)}"

    return make
