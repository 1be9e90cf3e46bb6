"""
Configuration system for Accessify.

This module provides hierarchical configuration management with:
- Schema defaults using Pydantic models
- Dotted-path access and deep-merge updates
- Feature flags mirrored from the configuration tree
- Change notifications per section
- JSON, YAML and TOML files with environment variable substitution
- Advisory validation rules
"""

from .schema import *
from .manager import ConfigurationManager, deep_merge
from .validator import ConfigurationValidator, ValidationRule

__version__ = "1.0.0"
__author__ = "Accessify Team"

# Main configuration components
__all__ = [
    # Schema models
    'AccessifyConfiguration',
    'VisualSettings',
    'NavigationSettings',
    'ReadingSettings',
    'MotorSettings',
    'MultilingualSettings',
    'PluginSettings',
    'ComplianceTestingSettings',

    # Manager and utilities
    'ConfigurationManager',
    'ConfigurationValidator',
    'ValidationRule',
    'deep_merge',
    'default_configuration',

    # Enums and constants
    'ConfigurationFormat',
    'FEATURE_FLAGS',
    'SUPPORTED_LANGUAGES',
]
