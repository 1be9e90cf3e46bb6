"""
Tests for the Accessify orchestrator.

Covers startup and teardown ordering, the re-exposed event, state and
feature surface, and compliance reporting.
"""
import pytest
from unittest.mock import Mock

from accessify import Accessify
from accessify.core.exceptions import ErrorKind
from accessify.core.loaders import MappingPluginSource

from .conftest import FailingPlugin, RecordingComponent, SamplePlugin


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_init_runs_components_then_plugins(self, component_factories, journal):
        class JournalPlugin(SamplePlugin):
            async def _do_initialize(self):
                journal.append('init:plugin')

        toolkit = Accessify(components=component_factories, plugins={'textToSpeech': JournalPlugin})
        initialized = Mock()
        toolkit.on('initialized', initialized)

        assert await toolkit.init() is toolkit

        assert journal == [
            'init:multilingual', 'init:visual', 'init:navigation',
            'init:reading', 'init:motor', 'init:plugin',
        ]
        assert toolkit.is_initialized
        initialized.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_second_init_is_noop(self, component_factories, journal):
        toolkit = Accessify(components=component_factories)
        await toolkit.init()
        journal.clear()

        await toolkit.init()

        assert journal == []

    @pytest.mark.asyncio
    async def test_destroy_reverses_init_order(self, component_factories, journal):
        class JournalPlugin(SamplePlugin):
            def _do_destroy(self):
                journal.append('destroy:plugin')

        toolkit = Accessify(components=component_factories, plugins={'voiceCommands': JournalPlugin})
        await toolkit.init()
        journal.clear()

        toolkit.destroy()

        assert journal == [
            'destroy:plugin', 'destroy:motor', 'destroy:reading',
            'destroy:navigation', 'destroy:visual', 'destroy:multilingual',
        ]
        assert not toolkit.is_initialized

    @pytest.mark.asyncio
    async def test_destroy_emits_then_clears(self, component_factories):
        toolkit = Accessify(components=component_factories)
        destroyed = Mock()
        toolkit.on('destroyed', destroyed)
        await toolkit.init()
        toolkit.set_state({'contrast': 'high'})

        toolkit.destroy()

        destroyed.assert_called_once_with()
        assert toolkit.event_bus.event_names() == []
        assert toolkit.get_state() == {}

    def test_destroy_before_init_is_noop(self, component_factories, journal):
        toolkit = Accessify(components=component_factories)

        toolkit.destroy()

        assert journal == []

    @pytest.mark.asyncio
    async def test_component_teardown_failure_does_not_stop_others(self, journal):
        class Exploding:
            def __init__(self, host):
                pass

            async def init(self):
                pass

            def destroy(self):
                raise RuntimeError("stuck")

        toolkit = Accessify(components={
            'visual': lambda host: RecordingComponent(host, 'visual', journal),
            'aria': Exploding,
        })
        await toolkit.init()

        toolkit.destroy()

        assert 'destroy:visual' in journal
        errors = toolkit.error_handler.get_errors_by_type(ErrorKind.COMPONENT)
        assert errors[0].context == 'Failed to destroy component "aria"'

    @pytest.mark.asyncio
    async def test_component_init_failure_aborts_startup(self, journal):
        class Broken:
            def __init__(self, host):
                pass

            async def init(self):
                raise RuntimeError("no document")

        toolkit = Accessify(components={
            'multilingual': Broken,
            'visual': lambda host: RecordingComponent(host, 'visual', journal),
        })

        with pytest.raises(RuntimeError, match="no document"):
            await toolkit.init()

        assert journal == []
        assert not toolkit.is_initialized
        record = toolkit.error_handler.get_errors()[0]
        assert record.kind == ErrorKind.INITIALIZATION
        assert record.context == 'Initialization failed'

    @pytest.mark.asyncio
    async def test_failed_startup_tears_down_started_components(self, journal):
        class Broken:
            def __init__(self, host):
                pass

            async def init(self):
                raise RuntimeError("no document")

        toolkit = Accessify(
            components={
                'multilingual': lambda host: RecordingComponent(host, 'multilingual', journal),
                'visual': lambda host: RecordingComponent(host, 'visual', journal),
                'aria': Broken,
                'motor': lambda host: RecordingComponent(host, 'motor', journal),
            },
            plugins={'textToSpeech': SamplePlugin},
        )

        with pytest.raises(RuntimeError):
            await toolkit.init()

        assert journal == [
            'init:multilingual', 'init:visual',
            'destroy:visual', 'destroy:multilingual',
        ]
        assert toolkit.plugin_registry.get_initialized_plugins() == []

    @pytest.mark.asyncio
    async def test_failed_plugin_startup_tears_down_earlier_plugins(self, journal):
        toolkit = Accessify(
            components={'visual': lambda host: RecordingComponent(host, 'visual', journal)},
            plugins={'textToSpeech': SamplePlugin, 'voiceCommands': FailingPlugin},
        )

        with pytest.raises(RuntimeError):
            await toolkit.init()

        assert journal == ['init:visual', 'destroy:visual']
        assert SamplePlugin.instances[0].destroy_calls == 1
        assert toolkit.plugin_registry.get_initialized_plugins() == []

    @pytest.mark.asyncio
    async def test_plugin_init_failure_propagates(self):
        toolkit = Accessify(plugins={'textToSpeech': FailingPlugin})

        with pytest.raises(RuntimeError):
            await toolkit.init()

        kinds = [record.kind for record in toolkit.error_handler.get_errors()]
        assert kinds == [ErrorKind.PLUGIN, ErrorKind.INITIALIZATION]

    @pytest.mark.asyncio
    async def test_disabled_plugins_not_started(self):
        toolkit = Accessify(
            options={'plugins': {'builtIn': ['voiceCommands']}},
            plugins={'textToSpeech': SamplePlugin, 'voiceCommands': SamplePlugin},
        )

        await toolkit.init()

        assert toolkit.plugin_registry.get_initialized_plugins() == ['voiceCommands']


class TestSurface:

    def test_component_factories_receive_orchestrator(self, component_factories):
        toolkit = Accessify(components=component_factories)

        visual = toolkit.get_component('visual')
        assert visual.host is toolkit
        assert list(toolkit.components) == list(component_factories)
        assert toolkit.get_component('missing') is None

    def test_event_methods_are_chainable(self, toolkit):
        listener = Mock()

        toolkit.on('a', listener).emit('a', 1).off('a', listener).emit('a', 2)

        listener.assert_called_once_with(1)

    def test_once(self, toolkit):
        listener = Mock()
        toolkit.once('a', listener)

        toolkit.emit('a').emit('a')

        listener.assert_called_once_with()

    def test_set_state_emits_state_changed(self, toolkit):
        listener = Mock()
        toolkit.on('stateChanged', listener)

        toolkit.set_state({'fontSize': 1.2})

        assert toolkit.get_state() == {'fontSize': 1.2}
        listener.assert_called_once_with({'fontSize': 1.2})

    def test_update_config_emits_config_updated(self, toolkit):
        listener = Mock()
        toolkit.on('configUpdated', listener)

        toolkit.update_config({'reading': {'textToSpeech': {'enabled': False}}})

        assert not toolkit.is_feature_enabled('textToSpeech')
        listener.assert_called_once_with({'reading': {'textToSpeech': {'enabled': False}}})

    def test_feature_toggles_emit_events(self, toolkit):
        enabled = Mock()
        disabled = Mock()
        toolkit.on('featureEnabled', enabled).on('featureDisabled', disabled)

        toolkit.disable_feature('highContrast')
        assert not toolkit.is_feature_enabled('highContrast')
        toolkit.enable_feature('highContrast')
        assert toolkit.is_feature_enabled('highContrast')

        disabled.assert_called_once_with('highContrast')
        enabled.assert_called_once_with('highContrast')

    def test_listener_failure_is_recorded(self, toolkit):
        toolkit.on('a', Mock(side_effect=ValueError("bad listener")))

        toolkit.emit('a')

        assert toolkit.error_handler.get_errors()[0].context == 'Event listener for "a"'

    def test_error_event_published_on_bus(self, toolkit):
        listener = Mock()
        toolkit.on('error', listener)

        toolkit.error_handler.handle(ValueError("x"), 'ctx')

        assert listener.call_args[0][0].message == 'x'

    @pytest.mark.asyncio
    async def test_load_external_plugin(self):
        toolkit = Accessify(plugin_source=MappingPluginSource({'sample': SamplePlugin}))

        plugin = await toolkit.load_external_plugin('sample', 'sample')

        assert toolkit.plugin_registry.get_plugin('sample') is plugin


class TestCompliance:

    def test_all_features_enabled(self, component_factories):
        toolkit = Accessify(components=component_factories)

        status = toolkit.get_compliance_status()

        assert status['wcag'] == {'level': 'AA', 'version': '2.1', 'compliant': True, 'score': 95}
        assert status['israeliStandard']['compliant'] is True
        assert status['israeliStandard']['score'] == 100
        assert status['features']['visual'] == {'name': 'visual', 'compliant': True}

    def test_missing_required_feature(self, toolkit):
        toolkit.disable_feature('rtlSupport')
        toolkit.disable_feature('skipLinks')

        status = toolkit.get_compliance_status()

        assert status['wcag']['compliant'] is False
        assert status['israeliStandard']['compliant'] is False
        assert status['wcag']['score'] == 85

    def test_components_without_report_are_skipped(self):
        toolkit = Accessify(components={'aria': lambda host: object()})

        assert toolkit.get_compliance_status()['features'] == {}
