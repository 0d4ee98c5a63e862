"""typeforge: runtime type synthesis and contract adapters.

Compose new classes from member definitions, construct and populate their
instances by name, and adapt existing objects to capability contracts.
"""

from .adapter import MissingMemberPolicy
from .binder import bind_definitions, bind_values
from .config import ForgeConfig, configure, find_config_file, load_config
from .contracts import Contract, implements
from .errors import (
    AdapterError,
    ArgumentError,
    BindingError,
    CompositionError,
    ConfigError,
    ErrorCategory,
    ForgeError,
    MemberNotFoundError,
    NullReferenceError,
    UnknownTypeError,
    UnsupportedMemberError,
)
from .forge import TypeForge, compose, compose_adapter, construct, get_forge, set_forge, wrap
from .members import Member, MemberDefinition, MemberKind, ValueKind
from .notify import Event, NotifyPropertyChanged, PropertyChangedEvent

__version__ = "0.1.0"

__all__ = [
    "AdapterError",
    "ArgumentError",
    "BindingError",
    "CompositionError",
    "ConfigError",
    "Contract",
    "ErrorCategory",
    "Event",
    "ForgeConfig",
    "ForgeError",
    "Member",
    "MemberDefinition",
    "MemberKind",
    "MemberNotFoundError",
    "MissingMemberPolicy",
    "NotifyPropertyChanged",
    "NullReferenceError",
    "PropertyChangedEvent",
    "TypeForge",
    "UnknownTypeError",
    "UnsupportedMemberError",
    "ValueKind",
    "bind_definitions",
    "bind_values",
    "compose",
    "compose_adapter",
    "configure",
    "construct",
    "find_config_file",
    "get_forge",
    "implements",
    "load_config",
    "set_forge",
    "wrap",
]
