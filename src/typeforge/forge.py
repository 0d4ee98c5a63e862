"""The typeforge engine.

A TypeForge owns one set of registries: composed types, adapters and the
hidden-member accessor cache. Most callers use the process-wide engine
through the module-level functions:

    from typeforge import bind_definitions, bind_values, compose, construct

    Person = compose("Person", bind_definitions([str, int], ["name", "age"]))
    ada = construct("Person", bind_values(["Ada", 36], ["name", "age"]))

The process-wide engine reads its settings from the nearest ``typeforge.toml``
(or ``[tool.typeforge]`` table) above the working directory on first use.
Logging settings from that file only take effect through ``configure``.
Tests and embedders that need isolation create their own TypeForge.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from .access import HiddenMemberAccess
from .adapter import AdapterComposer, MissingMemberPolicy
from .composer import TypeComposer
from .config import ForgeConfig, find_config_file, load_config
from .instances import InstanceConstructor
from .logging import get_logger
from .members import Member, MemberDefinition
from .registry import TypeRegistry

logger = get_logger("forge")


class TypeForge:
    """Engine composing types and adapters into its own registries."""

    def __init__(self, config: ForgeConfig | None = None):
        self.config = config or ForgeConfig()
        self.types: TypeRegistry[type] = TypeRegistry("type")
        self.adapters: TypeRegistry[type] = TypeRegistry("adapter")
        self.access = HiddenMemberAccess()
        self.composer = TypeComposer(self.types)
        self.constructor = InstanceConstructor(self.types)
        self.adapter_composer = AdapterComposer(
            self.adapters,
            self.access,
            default_on_missing=self.config.default_on_missing,
            allow_hidden_access=self.config.allow_hidden_access,
        )

    def compose(
        self,
        name: str,
        definitions: Iterable[MemberDefinition] = (),
        *,
        base_type: type | None = None,
        contracts: Sequence[Any] = (),
        sealed: bool = False,
        serializable: bool = False,
        notify_changes: bool = False,
    ) -> type:
        """Compose a type. See TypeComposer.compose."""
        return self.composer.compose(
            name,
            definitions,
            base_type=base_type,
            contracts=contracts,
            sealed=sealed,
            serializable=serializable,
            notify_changes=notify_changes,
        )

    def construct(self, type_name: str, values: Iterable[Member] = ()) -> Any:
        """Create an instance of a composed type. See InstanceConstructor.construct."""
        return self.constructor.construct(type_name, values)

    def compose_adapter(
        self,
        name: str,
        contract: Any,
        target_type: type,
        on_missing: MissingMemberPolicy | str | None = None,
    ) -> type:
        """Compose an adapter. See AdapterComposer.compose_adapter."""
        return self.adapter_composer.compose_adapter(name, contract, target_type, on_missing)

    def wrap(self, adapter_name: str, instance: Any) -> Any:
        """Wrap an instance in a previously composed adapter."""
        return self.adapter_composer.wrap(adapter_name, instance)

    def get_type(self, name: str) -> type:
        return self.composer.get(name)

    def get_adapter(self, name: str) -> type:
        return self.adapter_composer.get(name)

    def stats(self) -> dict[str, Any]:
        """Registry statistics, for diagnostics."""
        return {
            "types": self.types.stats.to_dict(),
            "adapters": self.adapters.stats.to_dict(),
            "accessors": self.access.accessor_count(),
        }


# =============================================================================
# Process-wide engine
# =============================================================================

_forge: TypeForge | None = None
_forge_lock = threading.Lock()


def _default_config() -> ForgeConfig:
    path = find_config_file(Path.cwd())
    if path is None:
        return ForgeConfig()
    logger.debug("Loading config", file=str(path))
    return load_config(path)


def get_forge() -> TypeForge:
    """Get the process-wide engine, creating it on first use.

    A new engine takes its config from the nearest config file above the
    working directory, or the defaults when there is none.

    Raises:
        ConfigError: If the config file found is invalid
    """
    global _forge
    if _forge is None:
        with _forge_lock:
            if _forge is None:
                _forge = TypeForge(_default_config())
                logger.debug("Created process-wide engine")
    return _forge


def set_forge(forge: TypeForge | None) -> None:
    """Replace the process-wide engine; None resets it to a fresh one on next use."""
    global _forge
    with _forge_lock:
        _forge = forge


def compose(name: str, definitions: Iterable[MemberDefinition] = (), **options: Any) -> type:
    return get_forge().compose(name, definitions, **options)


def construct(type_name: str, values: Iterable[Member] = ()) -> Any:
    return get_forge().construct(type_name, values)


def compose_adapter(
    name: str,
    contract: Any,
    target_type: type,
    on_missing: MissingMemberPolicy | str | None = None,
) -> type:
    return get_forge().compose_adapter(name, contract, target_type, on_missing)


def wrap(adapter_name: str, instance: Any) -> Any:
    return get_forge().wrap(adapter_name, instance)
