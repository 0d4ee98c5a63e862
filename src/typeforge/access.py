"""Hidden-member access.

Adapters reach target members that are not part of the target's public
surface (underscore names, name-mangled private attributes, members of
private classes) through this helper. Each (type, member) pair gets an
accessor built on first use and reused afterwards.

Python does not enforce visibility, so "hidden" is a naming convention
here; the helper only reaches attributes that exist.
"""

from __future__ import annotations

import operator
import threading
from collections.abc import Callable
from typing import Any

from .errors import MemberNotFoundError, NullReferenceError, UnknownTypeError
from .logging import get_logger
from .reflection import find_property, has_data_member, type_name

logger = get_logger("access")


def type_id(tp: type) -> str:
    """Identifier of a type for accessor lookups.

    Registered types are kept alive by the helper, so their ids stay unique.
    """
    return f"{tp.__module__}.{tp.__qualname__}#{id(tp):x}"


def _declares(tp: type, member: str, instance: Any) -> bool:
    if find_property(tp, member) is not None or has_data_member(tp, member):
        return True
    instance_dict = getattr(instance, "__dict__", None)
    return instance_dict is not None and member in instance_dict


class HiddenMemberAccess:
    """Cache of accessors for members reached by name."""

    def __init__(self) -> None:
        self._types: dict[str, type] = {}
        self._getters: dict[tuple[str, str], Callable[[Any], Any]] = {}
        self._setters: dict[tuple[str, str], Callable[[Any, Any], None]] = {}
        self._lock = threading.Lock()

    def register(self, tp: type) -> str:
        """Register a type and return its identifier."""
        key = type_id(tp)
        with self._lock:
            self._types.setdefault(key, tp)
        return key

    def _resolve(self, target_type_id: str) -> type:
        tp = self._types.get(target_type_id)
        if tp is None:
            raise UnknownTypeError(target_type_id, kind="accessor type")
        return tp

    def accessor_count(self) -> int:
        return len(self._getters) + len(self._setters)

    def get(self, target_type_id: str, member: str, instance: Any) -> Any:
        """Read member from instance.

        Raises:
            NullReferenceError: If instance is None
            MemberNotFoundError: If the member does not exist
        """
        if instance is None:
            raise NullReferenceError(f"Cannot read {member!r} from None")

        key = (target_type_id, member)
        getter = self._getters.get(key)
        if getter is None:
            tp = self._resolve(target_type_id)
            if not _declares(tp, member, instance):
                raise MemberNotFoundError(type_name(tp), member)
            with self._lock:
                getter = self._getters.setdefault(key, operator.attrgetter(member))
            logger.debug("Built getter", type_id=target_type_id, member=member)

        try:
            return getter(instance)
        except AttributeError as e:
            raise MemberNotFoundError(type_name(type(instance)), member) from e

    def set(self, target_type_id: str, member: str, instance: Any, value: Any) -> None:
        """Write member on instance.

        Raises:
            NullReferenceError: If instance is None
            MemberNotFoundError: If the member does not exist
        """
        if instance is None:
            raise NullReferenceError(f"Cannot write {member!r} on None")

        key = (target_type_id, member)
        setter = self._setters.get(key)
        if setter is None:
            tp = self._resolve(target_type_id)
            if not _declares(tp, member, instance):
                raise MemberNotFoundError(type_name(tp), member)

            def setter(target: Any, new_value: Any) -> None:
                setattr(target, member, new_value)

            with self._lock:
                setter = self._setters.setdefault(key, setter)
            logger.debug("Built setter", type_id=target_type_id, member=member)

        setter(instance, value)
