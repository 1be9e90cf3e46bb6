"""
Abstract base classes for feature modules and plugins.

These classes implement the lifecycle contracts from ``interfaces`` using
the Template Method pattern: ``init`` and ``destroy`` handle bookkeeping
and logging, and subclasses customize ``_do_initialize`` and
``_do_destroy``. Event subscriptions made through ``listen`` are removed
automatically on destroy.
"""

import logging
from abc import abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from .exceptions import ComponentError
from .interfaces import IComponent, IPlugin


class BaseComponent(IComponent):
    """
    Abstract base class for feature modules.

    Provides common functionality including:
    - Idempotent lifecycle management
    - Tracked event subscriptions on the host
    - Logging under ``accessify.components.<name>``
    """

    def __init__(self, host: Any, name: Optional[str] = None):
        self.host = host
        self.name = name or type(self).__name__
        self.logger = logging.getLogger(f"accessify.components.{self.name}")
        self._initialized = False
        self._subscriptions: List[Tuple[str, Callable]] = []

    async def init(self) -> None:
        """
        Initialize the component.

        Template method that calls _do_initialize() for custom initialization.
        """
        if self._initialized:
            self.logger.warning(f"Component {self.name} already initialized")
            return

        try:
            self.logger.debug(f"Initializing component: {self.name}")
            await self._do_initialize()
            self._initialized = True
            self.logger.info(f"Component {self.name} initialized")
        except Exception as e:
            self.logger.error(f"Failed to initialize component {self.name}: {e}")
            raise

    def destroy(self) -> None:
        """
        Tear the component down. Safe to call more than once; never raises.
        """
        if not self._initialized:
            return

        self._remove_subscriptions()
        try:
            self._do_destroy()
        except Exception as e:
            self.logger.error(f"Error destroying component {self.name}: {e}")
        finally:
            self._initialized = False

        self.logger.info(f"Component {self.name} destroyed")

    def listen(self, event: str, callback: Callable) -> None:
        """Subscribe to a host event for the lifetime of the component."""
        self.host.on(event, callback)
        self._subscriptions.append((event, callback))

    def get_compliance_status(self) -> Dict[str, Any]:
        """Report the component's compliance contribution. Override if needed."""
        return {'name': self.name, 'initialized': self._initialized}

    def require_host_attribute(self, attribute: str) -> Any:
        """
        Get a collaborator from the host.

        Raises:
            ComponentError: If the host does not provide it
        """
        value = getattr(self.host, attribute, None)
        if value is None:
            raise ComponentError(
                f"Host does not provide {attribute}",
                component_name=self.name
            )
        return value

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # Abstract methods for subclasses

    @abstractmethod
    async def _do_initialize(self) -> None:
        """Custom initialization logic."""
        pass

    def _do_destroy(self) -> None:
        """Custom teardown logic. Override if needed."""
        pass

    def _remove_subscriptions(self) -> None:
        for event, callback in reversed(self._subscriptions):
            self.host.off(event, callback)
        self._subscriptions.clear()


class BasePlugin(BaseComponent, IPlugin):
    """
    Abstract base class for plugins.

    Constructed as ``Plugin(host, config)`` by the plugin registry. The
    registry passes the stored configuration; ``update_config`` receives
    the merged configuration on live reconfiguration.
    """

    plugin_name: Optional[str] = None

    def __init__(self, host: Any, config: Optional[Dict[str, Any]] = None):
        super().__init__(host, self.plugin_name or type(self).__name__)
        self.logger = logging.getLogger(f"accessify.plugins.{self.name}")
        self.config: Dict[str, Any] = dict(config or {})

    def update_config(self, config: Dict[str, Any]) -> None:
        """Replace the plugin configuration and notify the subclass."""
        old_config = self.config
        self.config = dict(config)
        self.logger.debug(f"Plugin {self.name} configuration updated")
        self._on_config_updated(old_config, self.config)

    def _on_config_updated(self, old_config: Dict[str, Any], new_config: Dict[str, Any]) -> None:
        """Handle configuration changes. Override if needed."""
        pass
