"""
Plugin sources used by the registry to load external plugins.

A plugin source turns an external reference into a plugin factory:

- ``ModulePluginSource``: imports ``"package.module:Attribute"`` references
- ``EntryPointPluginSource``: looks up installed ``accessify.plugins`` entry points
- ``MappingPluginSource``: resolves names from an in-memory table
"""

import importlib
import logging
from importlib.metadata import entry_points
from typing import Any, Callable, Dict, Mapping, Optional

from .exceptions import PluginLoadError
from .interfaces import IPluginSource

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "accessify.plugins"

PluginFactory = Callable[..., Any]


def _ensure_factory(factory: Any, ref: str, name: str) -> PluginFactory:
    if not callable(factory):
        raise PluginLoadError(
            f"Plugin reference {ref} does not resolve to a callable",
            plugin_ref=ref,
            plugin_name=name
        )
    return factory


class ModulePluginSource(IPluginSource):
    """
    Resolve plugins by importing Python modules.

    ``"package.module:Attribute"`` loads the named attribute, which may be
    dotted. ``"package.module"`` loads the attribute named after the plugin,
    falling back to a module-level ``Plugin``.
    """

    def resolve(self, ref: str, name: str) -> PluginFactory:
        module_name, _, attribute = ref.partition(':')

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise PluginLoadError(
                f"Cannot import plugin module {module_name}: {e}",
                plugin_ref=ref,
                plugin_name=name,
                cause=e
            )

        if attribute:
            factory: Any = module
            for part in attribute.split('.'):
                factory = getattr(factory, part, None)
                if factory is None:
                    break
        else:
            factory = getattr(module, name, None) or getattr(module, 'Plugin', None)

        if factory is None:
            raise PluginLoadError(
                f"Plugin factory not found in module: {ref}",
                plugin_ref=ref,
                plugin_name=name
            )

        logger.debug(f"Resolved plugin {name} from {ref}")
        return _ensure_factory(factory, ref, name)


class EntryPointPluginSource(IPluginSource):
    """Resolve plugins advertised by installed distributions."""

    def __init__(self, group: str = ENTRY_POINT_GROUP):
        self.group = group

    def resolve(self, ref: str, name: str) -> PluginFactory:
        matches = entry_points(group=self.group, name=ref)
        entry_point = next(iter(matches), None)
        if entry_point is None:
            raise PluginLoadError(
                f"No entry point {ref} in group {self.group}",
                plugin_ref=ref,
                plugin_name=name
            )

        try:
            factory = entry_point.load()
        except Exception as e:
            raise PluginLoadError(
                f"Failed to load entry point {ref}: {e}",
                plugin_ref=ref,
                plugin_name=name,
                cause=e
            )

        logger.debug(f"Resolved plugin {name} from entry point {entry_point.value}")
        return _ensure_factory(factory, ref, name)


class MappingPluginSource(IPluginSource):
    """Resolve plugins from an in-memory reference table."""

    def __init__(self, factories: Optional[Mapping[str, PluginFactory]] = None):
        self._factories: Dict[str, PluginFactory] = dict(factories or {})

    def add(self, ref: str, factory: PluginFactory) -> None:
        self._factories[ref] = factory

    def resolve(self, ref: str, name: str) -> PluginFactory:
        try:
            factory = self._factories[ref]
        except KeyError:
            raise PluginLoadError(
                f"Unknown plugin reference: {ref}",
                plugin_ref=ref,
                plugin_name=name
            )
        return _ensure_factory(factory, ref, name)
