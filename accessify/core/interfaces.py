"""
Core interfaces and contracts for the Accessify runtime.

This module defines the contracts between the orchestrator and the code it
hosts. Feature modules and plugins are still duck-typed by the core, so
implementing these interfaces is optional, but they document exactly which
hooks are called and when:

- ``IComponent``: feature modules owned by the orchestrator
- ``IPlugin``: optional extensions managed by the plugin registry
- ``IPluginSource``: resolves external plugin references to factories
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List


class IComponent(ABC):
    """
    Interface for feature modules.

    Components receive the orchestrator in their constructor. ``init`` is
    awaited during startup; ``destroy`` must be idempotent and must not
    raise.
    """

    @abstractmethod
    async def init(self) -> None:
        """Attach the component's behavior."""
        pass

    @abstractmethod
    def destroy(self) -> None:
        """Detach the component's behavior."""
        pass


class IPlugin(IComponent):
    """
    Interface for plugins.

    Plugins are constructed as ``factory(host, config)`` and may accept live
    reconfiguration through ``update_config``.
    """

    def update_config(self, config: Dict[str, Any]) -> None:
        """Apply a merged configuration. Override if needed."""
        pass


class IPluginSource(ABC):
    """
    Interface for plugin loaders.

    Decouples how an external plugin reference is turned into a factory
    (module import, entry point lookup, in-memory table) from the registry.
    """

    @abstractmethod
    def resolve(self, ref: str, name: str) -> Callable[..., Any]:
        """
        Resolve a plugin reference.

        Args:
            ref: Source-specific plugin reference
            name: Name the plugin will be registered under

        Returns:
            Callable factory taking ``(host, config)``

        Raises:
            PluginLoadError: If the reference cannot be resolved
        """
        pass


@dataclass
class ValidationResult:
    """Advisory validation outcome; never raised."""
    valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> 'ValidationResult':
        return cls(valid=not errors, errors=list(errors))

    def to_dict(self) -> Dict[str, Any]:
        return {'valid': self.valid, 'errors': list(self.errors)}
