"""
Accessify - accessibility toolkit runtime.

Provides the orchestrator that hosts accessibility feature modules and
plugins on top of an event bus, a change-tracked state store, a
hierarchical configuration with feature flags, a plugin registry and a
classifying error handler.
"""

from .core import *
from .config import ConfigurationManager, FEATURE_FLAGS, AccessifyConfiguration
from .error_handler import ErrorBoundary, ErrorHandler, ErrorRecord, configure_logging
from .toolkit import Accessify

__version__ = "1.0.0"
__author__ = "Accessify Team"

__all__ = [
    'Accessify',
    'ErrorHandler',
    'ErrorRecord',
    'ErrorBoundary',
    'configure_logging',
    'ConfigurationManager',
    'AccessifyConfiguration',
    'FEATURE_FLAGS',
    'EventBus',
    'ChangeTrackedStore',
    'PluginRegistry',
    'BaseComponent',
    'BasePlugin',
    'AccessifyError',
    'ErrorKind',
    'ErrorSeverity',
]
