"""
Core runtime module for Accessify.

This module provides the foundational runtime components including:
- Interfaces and template base classes for feature modules and plugins
- Event bus for decoupled communication
- Change-tracked state store with undo history
- Plugin registry, plugin API and external plugin sources
- Exception hierarchy

Feature modules and plugins depend only on these contracts, never on
each other.
"""

from .interfaces import *
from .abstractions import *
from .events import EventBus, call_listeners
from .state import ChangeTrackedStore, HistoryRecord, MISSING, WILDCARD
from .registry import PluginAPI, PluginRecord, PluginRegistry, PluginStatus
from .loaders import EntryPointPluginSource, MappingPluginSource, ModulePluginSource
from .exceptions import *

__version__ = "1.0.0"
__author__ = "Accessify Team"

# Core runtime components
__all__ = [
    # Interfaces
    'IComponent',
    'IPlugin',
    'IPluginSource',
    'ValidationResult',

    # Abstract base classes
    'BaseComponent',
    'BasePlugin',

    # Events and state
    'EventBus',
    'call_listeners',
    'ChangeTrackedStore',
    'HistoryRecord',
    'MISSING',
    'WILDCARD',

    # Plugins
    'PluginAPI',
    'PluginRecord',
    'PluginRegistry',
    'PluginStatus',
    'EntryPointPluginSource',
    'MappingPluginSource',
    'ModulePluginSource',

    # Exceptions
    'AccessifyError',
    'ErrorKind',
    'ErrorSeverity',
    'InvalidArgumentError',
    'ConfigurationError',
    'PluginError',
    'PluginNotFoundError',
    'PluginLoadError',
    'ComponentError',
]
