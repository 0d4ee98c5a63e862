"""Instance constructor: creates instances of composed types by name."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .errors import UnknownTypeError
from .logging import get_logger
from .members import Member
from .reflection import create_instance
from .registry import TypeRegistry

logger = get_logger("instances")


class InstanceConstructor:
    """Creates and populates instances of types held in a registry."""

    def __init__(self, registry: TypeRegistry[type]):
        self.registry = registry

    def construct(self, type_name: str, values: Iterable[Member] = ()) -> Any:
        """Create an instance of a composed type and assign values onto it.

        Values are independent of each other, so the order they are applied
        in does not matter.

        Args:
            type_name: Name the type was composed under
            values: Values to assign by name

        Returns:
            The populated instance

        Raises:
            UnknownTypeError: If type_name was never composed
            MemberNotFoundError: If a value names a member the type lacks
        """
        cls = self.registry.get(type_name)
        if cls is None:
            raise UnknownTypeError(type_name)

        instance = create_instance(cls)
        for value in values:
            value.apply(instance)
        return instance
