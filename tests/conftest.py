"""Pytest configuration and fixtures."""
import pytest

from accessify import Accessify
from accessify.config.manager import ConfigurationManager
from accessify.core.abstractions import BaseComponent, BasePlugin
from accessify.core.events import EventBus
from accessify.core.state import ChangeTrackedStore
from accessify.error_handler import ErrorHandler


class RecordingComponent(BaseComponent):
    """Feature module that records its lifecycle calls into a shared journal."""

    def __init__(self, host, name, journal):
        super().__init__(host, name)
        self.journal = journal

    async def _do_initialize(self):
        self.journal.append(f"init:{self.name}")

    def _do_destroy(self):
        self.journal.append(f"destroy:{self.name}")

    def get_compliance_status(self):
        return {'name': self.name, 'compliant': True}


class SamplePlugin(BasePlugin):
    """Plugin counting its constructions and lifecycle calls."""

    plugin_name = "sample"
    instances = []

    def __init__(self, host, config=None):
        super().__init__(host, config)
        self.init_calls = 0
        self.destroy_calls = 0
        self.received_configs = []
        SamplePlugin.instances.append(self)

    async def _do_initialize(self):
        self.init_calls += 1

    def _do_destroy(self):
        self.destroy_calls += 1

    def _on_config_updated(self, old_config, new_config):
        self.received_configs.append(new_config)


class FailingPlugin:
    """Plugin whose init always fails."""

    def __init__(self, host, config=None):
        self.host = host

    async def init(self):
        raise RuntimeError("speech engine unavailable")

    def destroy(self):
        pass


@pytest.fixture(autouse=True)
def _reset_sample_plugin():
    SamplePlugin.instances = []
    yield
    SamplePlugin.instances = []


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store():
    return ChangeTrackedStore()


@pytest.fixture
def config():
    return ConfigurationManager()


@pytest.fixture
def error_handler():
    return ErrorHandler()


@pytest.fixture
def journal():
    return []


@pytest.fixture
def toolkit():
    return Accessify()


@pytest.fixture
def registry(toolkit):
    return toolkit.plugin_registry


@pytest.fixture
def component_factories(journal):
    return {
        name: (lambda host, name=name: RecordingComponent(host, name, journal))
        for name in ('multilingual', 'visual', 'navigation', 'reading', 'motor')
    }
