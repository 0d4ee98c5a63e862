"""Events and the change-notification contract.

An Event is a descriptor giving every instance its own list of handlers:

    class Button:
        clicked = Event()

    button.clicked += on_click
    button.clicked.fire(button)

Composed types that implement NotifyPropertyChanged get a
``property_changed`` event raised with a PropertyChangedEvent whenever a
woven property setter changes a value.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class PropertyChangedEvent:
    """Payload of a property-changed notification."""

    sender: Any
    property_name: str


class EventHandlers:
    """Handlers subscribed to one event of one instance."""

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: list[Callable[..., Any]] = []

    def add(self, handler: Callable[..., Any]) -> None:
        self._handlers.append(handler)

    def remove(self, handler: Callable[..., Any]) -> None:
        """Remove the most recently added occurrence of handler, if any."""
        for index in range(len(self._handlers) - 1, -1, -1):
            if self._handlers[index] == handler:
                del self._handlers[index]
                return

    def __iadd__(self, handler: Callable[..., Any]) -> EventHandlers:
        self.add(handler)
        return self

    def __isub__(self, handler: Callable[..., Any]) -> EventHandlers:
        self.remove(handler)
        return self

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[Callable[..., Any]]:
        return iter(list(self._handlers))

    def __reduce__(self) -> tuple[Any, ...]:
        # Subscriptions are not serialized.
        return (EventHandlers, ())

    def fire(self, *args: Any, **kwargs: Any) -> None:
        """Invoke every handler in subscription order."""
        for handler in list(self._handlers):
            handler(*args, **kwargs)


class Event:
    """Descriptor declaring an event on a class."""

    def __init__(self, handler_type: Any = None):
        self.handler_type = handler_type
        self.name = ""
        self._storage = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self._storage = f"_{name}_handlers"

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        handlers = instance.__dict__.get(self._storage)
        if handlers is None:
            handlers = instance.__dict__[self._storage] = EventHandlers()
        return handlers

    def __set__(self, instance: Any, value: Any) -> None:
        # Only the write-back of ``obj.event += handler`` is accepted.
        if value is not instance.__dict__.get(self._storage):
            raise AttributeError(f"event {self.name!r} can only be changed with += and -=")


@runtime_checkable
class NotifyPropertyChanged(Protocol):
    """Capability contract: announces property changes."""

    property_changed = Event()
