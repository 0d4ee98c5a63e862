"""Structured errors for typeforge.

Every failure the engine raises is a programmer error: it is surfaced
immediately, carries a category plus an optional suggestion, and is never
retried.

Usage:
    from typeforge.errors import ForgeError

    try:
        forge.construct("Missing")
    except ForgeError as e:
        print(e.to_compact())
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Any


class ErrorCategory(Enum):
    """Categories of errors."""

    BINDING = auto()  # Call arguments could not be paired with names
    COMPOSITION = auto()  # Type synthesis rejected the request
    UNKNOWN_TYPE = auto()  # Name was never composed
    ADAPTER = auto()  # Adapter synthesis rejected the request
    MEMBER_NOT_FOUND = auto()  # Named member does not exist
    NULL_REFERENCE = auto()  # Required instance was None
    ARGUMENT = auto()  # Invalid argument
    UNSUPPORTED = auto()  # Adapter stub for a member the target lacks
    CONFIG = auto()  # Configuration problems


class ForgeError(Exception):
    """Base exception for typeforge with structured context."""

    category: ErrorCategory = ErrorCategory.ARGUMENT

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.suggestion = suggestion
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "category": self.category.name,
            "message": str(self),
            "suggestion": self.suggestion,
            "context": self.context,
        }

    def to_compact(self) -> str:
        """Format as compact string."""
        parts = [f"[{self.category.name}] {self}"]
        if self.suggestion:
            parts.append(f"  Try: {self.suggestion}")
        return "\n".join(parts)


class BindingError(ForgeError):
    """Call arguments could not be turned into member descriptors."""

    category = ErrorCategory.BINDING


class CompositionError(ForgeError):
    """A type could not be composed."""

    category = ErrorCategory.COMPOSITION


class UnknownTypeError(ForgeError, LookupError):
    """A type or adapter name was never composed."""

    category = ErrorCategory.UNKNOWN_TYPE

    def __init__(self, name: str, kind: str = "type"):
        super().__init__(
            f"Unknown {kind}: {name!r}",
            suggestion=f"Compose the {kind} before using it by name",
            context={"name": name, "kind": kind},
        )
        self.name = name


class AdapterError(ForgeError):
    """An adapter could not be composed."""

    category = ErrorCategory.ADAPTER


class MemberNotFoundError(ForgeError, AttributeError):
    """A named member does not exist on the target."""

    category = ErrorCategory.MEMBER_NOT_FOUND

    def __init__(self, owner: str, member: str):
        super().__init__(
            f"{owner} has no member {member!r}",
            context={"owner": owner, "member": member},
        )
        self.member = member


class NullReferenceError(ForgeError):
    """An instance was required but None was given."""

    category = ErrorCategory.NULL_REFERENCE


class ArgumentError(ForgeError, ValueError):
    """An argument is missing or has the wrong shape."""

    category = ErrorCategory.ARGUMENT


class UnsupportedMemberError(ForgeError, NotImplementedError):
    """Raised by adapter stubs for members the wrapped type does not support."""

    category = ErrorCategory.UNSUPPORTED


class ConfigError(ForgeError):
    """Configuration file or setting issue."""

    category = ErrorCategory.CONFIG

    def __init__(self, message: str, file: str | None = None):
        super().__init__(
            message,
            suggestion="Check typeforge.toml or pyproject.toml [tool.typeforge]",
            context={"file": file},
        )
