"""
Accessify - accessibility toolkit runtime.

The ``Accessify`` orchestrator owns the event bus, the state store, the
configuration manager, the error handler and the plugin registry. It
constructs the feature modules it is given, sequences their lifecycle and
re-exposes the event and state operations as its own surface.
"""

import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from .config.manager import ConfigurationManager
from .core.events import EventBus
from .core.exceptions import ErrorKind
from .core.interfaces import IPluginSource
from .core.registry import PluginRegistry
from .core.state import ChangeTrackedStore
from .error_handler import ErrorHandler

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

ComponentFactory = Callable[['Accessify'], Any]

WCAG_REQUIRED_FEATURES = (
    'textSizeAdjustment',
    'highContrast',
    'keyboardNavigation',
    'focusIndicators',
    'skipLinks',
)
WCAG_TOTAL_FEATURES = 20

ISRAELI_STANDARD_REQUIRED_FEATURES = (
    'rtlSupport',
    'textSizeAdjustment',
    'highContrast',
    'keyboardNavigation',
)
ISRAELI_STANDARD_TOTAL_FEATURES = 15


async def _run_init_hook(target: Any) -> None:
    init_hook = getattr(target, 'init', None)
    if not callable(init_hook):
        return

    if inspect.iscoroutinefunction(init_hook):
        await init_hook()
    else:
        result = init_hook()
        if inspect.isawaitable(result):
            await result


def _score(enabled: int, total: int) -> int:
    return min(100, round(enabled / total * 100))


class Accessify:
    """
    Accessibility toolkit orchestrator.

    Args:
        options: Configuration deep-merged over the defaults
        components: Ordered ``{name: factory}`` feature modules; each
            factory is called with the orchestrator
        plugins: ``{name: factory}`` plugins to register
        plugin_source: Resolver used by ``load_external_plugin``
        location: Page or document location recorded with errors
    """

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        components: Optional[Mapping[str, ComponentFactory]] = None,
        plugins: Optional[Mapping[str, Callable[..., Any]]] = None,
        plugin_source: Optional[IPluginSource] = None,
        location: Optional[str] = None
    ):
        self.version = VERSION
        self.is_initialized = False

        # Core systems
        self.event_bus = EventBus()
        self.state_manager = ChangeTrackedStore()
        self.config_manager = ConfigurationManager(options)
        self.error_handler = ErrorHandler(emitter=self.event_bus, location=location)
        self.plugin_registry = PluginRegistry(self, plugin_source)

        self.event_bus.error_handler = self.error_handler
        self.state_manager.error_handler = self.error_handler

        # Feature modules, in initialization order
        self._components: Dict[str, Any] = {}
        for name, factory in (components or {}).items():
            self._components[name] = factory(self)

        for name, factory in (plugins or {}).items():
            self.plugin_registry.register(name, factory)

    async def init(self) -> 'Accessify':
        """
        Initialize feature modules in order, then the enabled plugins.

        A failure is recorded and re-raised. Plugins and feature modules
        started before the failure are torn down again.
        """
        if self.is_initialized:
            logger.warning("Accessify is already initialized")
            return self

        started = []
        try:
            for name, component in self._components.items():
                logger.debug(f"Initializing component {name}")
                await _run_init_hook(component)
                started.append(name)

            await self.plugin_registry.init()

        except Exception as e:
            self.error_handler.handle(e, 'Initialization failed', ErrorKind.INITIALIZATION)
            self.plugin_registry.destroy()
            self._destroy_components(started)
            raise

        self.is_initialized = True
        self.emit('initialized')

        logger.info("Accessify initialized successfully")
        return self

    def destroy(self) -> 'Accessify':
        """Tear down plugins, then feature modules in reverse order."""
        if not self.is_initialized:
            return self

        self.plugin_registry.destroy()
        self._destroy_components(list(self._components))

        self.is_initialized = False
        self.emit('destroyed')

        self.event_bus.remove_all_listeners()
        self.state_manager.clear()

        logger.info("Accessify destroyed")
        return self

    # Configuration and state

    def update_config(self, partial: Mapping[str, Any]) -> None:
        self.config_manager.update(partial)
        self.emit('configUpdated', partial)

    def get_state(self) -> Dict[str, Any]:
        return self.state_manager.get_state()

    def set_state(self, partial: Mapping[str, Any]) -> None:
        self.state_manager.set_state(partial)
        self.emit('stateChanged', partial)

    # Events

    def on(self, event: str, callback: Callable) -> 'Accessify':
        self.event_bus.on(event, callback)
        return self

    def off(self, event: str, callback: Callable) -> 'Accessify':
        self.event_bus.off(event, callback)
        return self

    def once(self, event: str, callback: Callable) -> 'Accessify':
        self.event_bus.once(event, callback)
        return self

    def emit(self, event: str, *args: Any) -> 'Accessify':
        self.event_bus.emit(event, *args)
        return self

    # Components and features

    def get_component(self, name: str) -> Any:
        return self._components.get(name)

    @property
    def components(self) -> Dict[str, Any]:
        return dict(self._components)

    def is_feature_enabled(self, feature: str) -> bool:
        return self.config_manager.is_feature_enabled(feature)

    def enable_feature(self, feature: str) -> None:
        self.config_manager.enable_feature(feature)
        self.emit('featureEnabled', feature)

    def disable_feature(self, feature: str) -> None:
        self.config_manager.disable_feature(feature)
        self.emit('featureDisabled', feature)

    async def load_external_plugin(
        self,
        ref: str,
        name: str,
        config: Optional[Mapping[str, Any]] = None
    ) -> Any:
        return await self.plugin_registry.load_external_plugin(ref, name, config)

    # Compliance

    def get_compliance_status(self) -> Dict[str, Any]:
        """
        Summarize WCAG 2.1 AA and Israeli Standard 5568 coverage.

        Coverage is derived from the enabled feature flags, plus each
        feature module's own ``get_compliance_status()`` when it has one.
        """
        features = self.config_manager.get_enabled_features()

        return {
            'wcag': {
                'level': 'AA',
                'version': '2.1',
                'compliant': self._has_features(features, WCAG_REQUIRED_FEATURES),
                'score': _score(len(features), WCAG_TOTAL_FEATURES),
            },
            'israeliStandard': {
                'standard': '5568',
                'compliant': self._has_features(features, ISRAELI_STANDARD_REQUIRED_FEATURES),
                'score': _score(len(features), ISRAELI_STANDARD_TOTAL_FEATURES),
            },
            'features': self._get_feature_compliance(),
        }

    def _destroy_components(self, names: List[str]) -> None:
        """Destroy the named feature modules in reverse order, recording failures."""
        for name in reversed(names):
            destroy_hook = getattr(self._components[name], 'destroy', None)
            if not callable(destroy_hook):
                continue
            try:
                destroy_hook()
            except Exception as e:
                self.error_handler.handle(e, f'Failed to destroy component "{name}"', ErrorKind.COMPONENT)

    def _has_features(self, enabled: List[str], required: tuple) -> bool:
        return all(feature in enabled for feature in required)

    def _get_feature_compliance(self) -> Dict[str, Any]:
        status = {}
        for name, component in self._components.items():
            report = getattr(component, 'get_compliance_status', None)
            if callable(report):
                status[name] = report()
        return status

    def __repr__(self) -> str:
        state = "initialized" if self.is_initialized else "idle"
        return f"<Accessify {self.version} {state} components={list(self._components)}>"
