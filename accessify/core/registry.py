"""
Plugin Registry for the Accessify runtime.

This module provides the plugin registry that manages:
- Plugin registration by name with a stored configuration
- Lifecycle coordination (registered -> initialized -> destroyed)
- At most one live instance per plugin name
- Capability-scoped APIs handed to plugins
- Loading external plugins through a pluggable source

Destroyed plugins stay registered and may be initialized again, which
constructs a fresh instance from the retained factory.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from .exceptions import ErrorKind, InvalidArgumentError, PluginLoadError, PluginNotFoundError
from .interfaces import IPluginSource, ValidationResult
from .loaders import ModulePluginSource

logger = logging.getLogger(__name__)

PluginFactory = Callable[..., Any]


class PluginStatus(Enum):
    """Plugin status enumeration."""
    REGISTERED = "registered"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"
    DESTROYED = "destroyed"


@dataclass
class PluginRecord:
    """Registration record for a plugin."""
    name: str
    factory: PluginFactory
    config: Dict[str, Any] = field(default_factory=dict)
    instance: Any = None
    status: PluginStatus = PluginStatus.REGISTERED
    registration_time: datetime = field(default_factory=datetime.now)

    @property
    def initialized(self) -> bool:
        return self.status == PluginStatus.INITIALIZED


class PluginAPI:
    """
    Capability-scoped view of the host handed to a plugin.

    Exposes events, state and configuration only. Plugins get no direct
    reference to other plugins or to the core components.
    """

    def __init__(self, registry: 'PluginRegistry', name: str):
        self._registry = registry
        self._host = registry.host
        self.name = name
        self.logger = logging.getLogger(f"accessify.plugins.{name}")

    @property
    def config(self) -> Optional[Dict[str, Any]]:
        record = self._registry._plugins.get(self.name)
        return dict(record.config) if record else None

    # Events

    def on(self, event: str, callback: Callable) -> 'PluginAPI':
        self._host.on(event, callback)
        return self

    def off(self, event: str, callback: Callable) -> 'PluginAPI':
        self._host.off(event, callback)
        return self

    def emit(self, event: str, *args: Any) -> 'PluginAPI':
        self._host.emit(event, *args)
        return self

    # State

    def get_state(self) -> Dict[str, Any]:
        return self._host.get_state()

    def set_state(self, partial: Mapping[str, Any]) -> None:
        self._host.set_state(partial)

    # Configuration

    def get_config(self, path: str, default: Any = None) -> Any:
        return self._host.config_manager.get(path, default)

    def set_config(self, path: str, value: Any) -> None:
        self._host.config_manager.set(path, value)

    # Logging

    def log(self, message: str, *args: Any) -> None:
        self.logger.info(message, *args)

    def warn(self, message: str, *args: Any) -> None:
        self.logger.warning(message, *args)

    def error(self, message: str, *args: Any) -> None:
        self.logger.error(message, *args)


class PluginRegistry:
    """
    Registry of plugin factories and their live instances.

    The host must provide ``emit`` and ``config_manager``; when it also has
    an ``error_handler``, lifecycle failures are recorded there.
    """

    def __init__(self, host: Any, source: Optional[IPluginSource] = None):
        self.host = host
        self.source = source or ModulePluginSource()
        self._plugins: Dict[str, PluginRecord] = {}

    # Registration

    def register(
        self,
        name: str,
        factory: PluginFactory,
        config: Optional[Mapping[str, Any]] = None
    ) -> 'PluginRegistry':
        """
        Register a plugin factory.

        Registering a name twice keeps the original factory.

        Raises:
            InvalidArgumentError: If factory is not callable
        """
        if not callable(factory):
            raise InvalidArgumentError(
                "Plugin must be a class or factory function",
                argument='factory',
                expected_type='callable'
            )

        if name in self._plugins:
            logger.warning(f'Plugin "{name}" is already registered')
            return self

        self._plugins[name] = PluginRecord(name=name, factory=factory, config=dict(config or {}))
        logger.info(f'Plugin "{name}" registered')
        return self

    def unregister(self, name: str) -> 'PluginRegistry':
        """Destroy the plugin if live, then drop its registration and config."""
        if name not in self._plugins:
            return self

        if self.is_initialized(name):
            self.destroy_plugin(name)

        del self._plugins[name]
        logger.info(f'Plugin "{name}" unregistered')
        return self

    # Lifecycle

    async def init(self) -> None:
        """Initialize the registered plugins listed in plugins.builtIn, in order."""
        enabled = self.host.config_manager.get('plugins.builtIn', []) or []

        for name in list(enabled):
            if name in self._plugins:
                await self.init_plugin(name)
            else:
                logger.debug(f'Skipping plugin "{name}": not registered')

    async def init_plugin(self, name: str) -> 'PluginRegistry':
        """
        Construct and initialize a plugin.

        Raises:
            PluginNotFoundError: If the plugin is not registered
            Exception: Whatever the factory or the plugin's init() raised
        """
        record = self._plugins.get(name)
        if record is None:
            raise PluginNotFoundError(name)

        if record.initialized:
            logger.warning(f'Plugin "{name}" is already initialized')
            return self

        if record.status == PluginStatus.INITIALIZING:
            logger.warning(f'Plugin "{name}" is already being initialized')
            return self

        previous_status = record.status
        record.status = PluginStatus.INITIALIZING

        try:
            instance = record.factory(self.host, dict(record.config))

            init_hook = getattr(instance, 'init', None)
            if callable(init_hook):
                if inspect.iscoroutinefunction(init_hook):
                    await init_hook()
                else:
                    result = init_hook()
                    if inspect.isawaitable(result):
                        await result

        except asyncio.CancelledError:
            record.status = previous_status
            raise
        except Exception as e:
            record.status = previous_status
            self._record_error(e, f'Failed to initialize plugin "{name}"')
            raise

        record.instance = instance
        record.status = PluginStatus.INITIALIZED

        logger.info(f'Plugin "{name}" initialized')
        self.host.emit('pluginInitialized', {'name': name, 'plugin': instance})
        return self

    def destroy_plugin(self, name: str) -> None:
        """Destroy a live plugin. Failures are recorded, never raised."""
        record = self._plugins.get(name)
        if record is None or not record.initialized:
            return

        try:
            destroy_hook = getattr(record.instance, 'destroy', None)
            if callable(destroy_hook):
                self._finish(destroy_hook())
        except Exception as e:
            self._record_error(e, f'Failed to destroy plugin "{name}"')

        record.instance = None
        record.status = PluginStatus.DESTROYED

        logger.info(f'Plugin "{name}" destroyed')
        self.host.emit('pluginDestroyed', {'name': name})

    def destroy(self) -> None:
        """Destroy every live plugin in registration order."""
        for name in self.get_initialized_plugins():
            self.destroy_plugin(name)

    # Configuration

    def update_plugin_config(self, name: str, partial: Mapping[str, Any]) -> None:
        """
        Merge ``partial`` into a plugin's stored config and forward it.

        Raises:
            PluginNotFoundError: If the plugin is not registered
        """
        record = self._plugins.get(name)
        if record is None:
            raise PluginNotFoundError(name)

        record.config = {**record.config, **partial}

        if record.initialized:
            update_hook = getattr(record.instance, 'update_config', None)
            if callable(update_hook):
                update_hook(dict(record.config))

        self.host.emit('pluginConfigUpdated', {'name': name, 'config': dict(record.config)})

    def enable_plugin(self, name: str) -> None:
        """Add a plugin to the startup list in plugins.builtIn."""
        enabled = list(self.host.config_manager.get('plugins.builtIn', []) or [])
        if name not in enabled:
            enabled.append(name)
            self.host.config_manager.set('plugins.builtIn', enabled)

    def disable_plugin(self, name: str) -> None:
        """Remove a plugin from the startup list and destroy it if live."""
        enabled = list(self.host.config_manager.get('plugins.builtIn', []) or [])
        if name in enabled:
            enabled.remove(name)
            self.host.config_manager.set('plugins.builtIn', enabled)

            if self.is_initialized(name):
                self.destroy_plugin(name)

    # Queries

    def get_plugin(self, name: str) -> Any:
        record = self._plugins.get(name)
        return record.instance if record and record.initialized else None

    def is_initialized(self, name: str) -> bool:
        record = self._plugins.get(name)
        return record is not None and record.initialized

    def is_registered(self, name: str) -> bool:
        return name in self._plugins

    def get_registered_plugins(self) -> List[str]:
        return list(self._plugins.keys())

    def get_initialized_plugins(self) -> List[str]:
        return [name for name, record in self._plugins.items() if record.initialized]

    def get_plugin_record(self, name: str) -> Optional[PluginRecord]:
        return self._plugins.get(name)

    def get_plugin_status(self) -> Dict[str, Dict[str, Any]]:
        """Get registration status and config of every plugin."""
        return {
            name: {
                'registered': True,
                'initialized': record.initialized,
                'status': record.status.value,
                'config': dict(record.config),
            }
            for name, record in self._plugins.items()
        }

    def validate_plugin(self, factory: Any) -> ValidationResult:
        """Check that a factory is callable and provides init and destroy."""
        errors = []

        if not callable(factory):
            errors.append("Plugin must be a class or factory function")

        for method in ('init', 'destroy'):
            if not callable(getattr(factory, method, None)):
                errors.append(f"Plugin must implement {method}() method")

        return ValidationResult.from_errors(errors)

    def create_plugin_api(self, name: str) -> PluginAPI:
        return PluginAPI(self, name)

    # External plugins

    async def load_external_plugin(
        self,
        ref: str,
        name: str,
        config: Optional[Mapping[str, Any]] = None
    ) -> Any:
        """
        Resolve, register and initialize an external plugin.

        Returns:
            The live plugin instance

        Raises:
            PluginLoadError: If the reference cannot be resolved, or the
                name is taken by a different factory
        """
        try:
            factory = self.source.resolve(ref, name)
        except PluginLoadError as e:
            self._record_error(e, f"Failed to load external plugin from {ref}")
            raise
        except Exception as e:
            self._record_error(e, f"Failed to load external plugin from {ref}")
            raise PluginLoadError(
                f"Failed to load external plugin from {ref}: {e}",
                plugin_ref=ref,
                plugin_name=name,
                cause=e
            )

        existing = self._plugins.get(name)
        if existing is not None and existing.factory is not factory:
            error = PluginLoadError(
                f'Plugin "{name}" is already registered with a different factory',
                plugin_ref=ref,
                plugin_name=name
            )
            self._record_error(error, f"Failed to load external plugin from {ref}")
            raise error

        self.register(name, factory, config)
        await self.init_plugin(name)
        return self.get_plugin(name)

    # Private methods

    def _record_error(self, error: Exception, context: str) -> None:
        error_handler = getattr(self.host, 'error_handler', None)
        if error_handler is not None:
            error_handler.handle(error, context, ErrorKind.PLUGIN)
        else:
            logger.error(f"{context}: {error}")

    def _finish(self, result: Any) -> None:
        """Run an awaitable returned by a sync teardown hook."""
        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._await(result))
        else:
            task = loop.create_task(self._await(result))
            task.add_done_callback(self._report_teardown_task)

    @staticmethod
    async def _await(awaitable: Any) -> Any:
        return await awaitable

    def _report_teardown_task(self, task: 'asyncio.Task') -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._record_error(error, "Plugin teardown failed")
