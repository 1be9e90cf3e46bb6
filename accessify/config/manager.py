"""
Configuration Manager for Accessify.

This module provides hierarchical configuration management with:
- Dotted-path reads and writes (``"visual.textSize.current"``)
- Deep-merge updates over the built-in default tree
- Feature flags derived from the ``enabled`` switches of the flag table
- Change notifications per top-level section
- JSON, YAML and TOML configuration files with environment substitution
- Advisory validation and a typed view through the Pydantic schema
"""

import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Union

import toml
import yaml

from ..core.exceptions import ConfigurationError, InvalidArgumentError
from ..core.interfaces import ValidationResult
from .schema import AccessifyConfiguration, ConfigurationFormat, FEATURE_FLAGS, default_configuration
from .validator import ConfigurationValidator

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, Any, Any], None]

_ENV_PATTERN = re.compile(r'\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)')


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge ``source`` into a copy of ``target``.

    Mappings merge key by key; lists and scalars from ``source`` replace
    whatever ``target`` holds.
    """
    result = dict(target)
    for key, value in source.items():
        if isinstance(value, Mapping):
            current = result.get(key)
            result[key] = deep_merge(current if isinstance(current, Mapping) else {}, value)
        else:
            result[key] = value
    return result


class ConfigurationManager:
    """
    Hierarchical configuration with feature flags.

    The tree always starts from the built-in defaults; ``options`` given at
    construction are deep-merged over them.
    """

    def __init__(self, options: Optional[Mapping[str, Any]] = None):
        if options is not None and not isinstance(options, Mapping):
            raise InvalidArgumentError(
                "Configuration must be a mapping",
                argument='options',
                expected_type='mapping'
            )

        self.env_prefix = "ACCESSIFY_"
        self._validator = ConfigurationValidator()
        self._change_callbacks: Dict[str, List[ChangeCallback]] = {}
        self._config: Dict[str, Any] = deep_merge(default_configuration(), options or {})
        self._feature_flags: Set[str] = set()
        self._initialize_feature_flags()

        self._format_handlers = {
            ConfigurationFormat.JSON: self._load_json,
            ConfigurationFormat.YAML: self._load_yaml,
            ConfigurationFormat.TOML: self._load_toml,
        }

        self._format_writers = {
            ConfigurationFormat.JSON: self._save_json,
            ConfigurationFormat.YAML: self._save_yaml,
            ConfigurationFormat.TOML: self._save_toml,
        }

    # Tree access

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            path: Dot-separated path (e.g., 'motor.targets.minSize')
            default: Returned when any segment is missing or the value is None

        Returns:
            Configuration value or default
        """
        value: Any = self._config
        for key in path.split('.'):
            if isinstance(value, Mapping) and key in value:
                value = value[key]
            else:
                return default

        return default if value is None else value

    def set(self, path: str, value: Any) -> 'ConfigurationManager':
        """
        Set configuration value using dot notation.

        Intermediate mappings are created as needed; a non-mapping value
        found along the path is replaced by a mapping.
        """
        keys = path.split('.')
        current = self._config

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        old_value = current.get(keys[-1])
        current[keys[-1]] = value

        self._initialize_feature_flags()
        logger.debug(f"Configuration {path} = {value!r}")
        self._notify_change_callbacks(path, value, old_value)
        return self

    def update(self, partial: Mapping[str, Any]) -> None:
        """
        Deep-merge ``partial`` into the configuration and recompute flags.

        Raises:
            InvalidArgumentError: If partial is not a mapping
        """
        if not isinstance(partial, Mapping):
            raise InvalidArgumentError(
                "Configuration must be a mapping",
                argument='partial',
                expected_type='mapping'
            )

        self._config = deep_merge(self._config, partial)
        self._initialize_feature_flags()
        self._notify_change_callbacks("*", dict(partial), None)

    def get_all(self) -> Dict[str, Any]:
        """Get a shallow copy of the configuration tree."""
        return dict(self._config)

    def as_model(self) -> AccessifyConfiguration:
        """
        Get the configuration as a typed model.

        Raises:
            pydantic.ValidationError: If the tree does not fit the schema
        """
        return AccessifyConfiguration.model_validate(copy.deepcopy(self._config))

    def reset(self) -> None:
        """Restore the built-in defaults, discarding every change."""
        self._config = default_configuration()
        self._initialize_feature_flags()
        logger.info("Configuration reset to defaults")
        self._notify_change_callbacks("*", self.get_all(), None)

    def validate(self) -> ValidationResult:
        """Validate the current configuration. Never raises."""
        return self._validator.validate(self._config)

    @property
    def validator(self) -> ConfigurationValidator:
        return self._validator

    # Feature flags

    def is_feature_enabled(self, feature: str) -> bool:
        return feature in self._feature_flags

    def enable_feature(self, feature: str) -> None:
        """Enable a known feature flag and write it back to the tree."""
        self._set_feature(feature, True)

    def disable_feature(self, feature: str) -> None:
        """Disable a known feature flag and write it back to the tree."""
        self._set_feature(feature, False)

    def toggle_feature(self, feature: str) -> None:
        if self.is_feature_enabled(feature):
            self.disable_feature(feature)
        else:
            self.enable_feature(feature)

    def get_enabled_features(self) -> List[str]:
        return [name for name in FEATURE_FLAGS if name in self._feature_flags]

    def get_disabled_features(self) -> List[str]:
        return [name for name in FEATURE_FLAGS if name not in self._feature_flags]

    def get_all_features(self) -> List[str]:
        return list(FEATURE_FLAGS)

    # Change notification

    def register_change_callback(self, section: str, callback: ChangeCallback) -> None:
        """
        Register callback for configuration changes.

        Args:
            section: First path segment to monitor, or "*" for every change
            callback: Callback function (path, new_value, old_value)
        """
        if not callable(callback):
            raise InvalidArgumentError(
                "Callback must be callable",
                argument='callback',
                expected_type='callable'
            )
        self._change_callbacks.setdefault(section, []).append(callback)

    def unregister_change_callback(self, section: str, callback: ChangeCallback) -> None:
        callbacks = self._change_callbacks.get(section)
        if callbacks is None:
            return

        try:
            callbacks.remove(callback)
        except ValueError:
            pass

        if not callbacks:
            del self._change_callbacks[section]

    # Files

    def load_file(self, file_path: Union[str, Path]) -> None:
        """
        Load a configuration file and merge it into the tree.

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        path = Path(file_path)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                config_file=str(path)
            )

        handler = self._format_handlers[self._detect_format(path)]
        try:
            data = handler(path)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(
                f"Failed to read {path}: {e}",
                config_file=str(path),
                cause=e
            )

        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Configuration file must contain a mapping: {path}",
                config_file=str(path)
            )

        data = self._substitute_environment_variables(data)
        self.update(data)
        logger.info(f"Configuration loaded from {path}")

    def save_file(
        self,
        file_path: Union[str, Path],
        format: Optional[ConfigurationFormat] = None
    ) -> None:
        """
        Save the configuration tree to a file.

        Raises:
            ConfigurationError: If writing fails
        """
        path = Path(file_path)
        writer = self._format_writers[format or self._detect_format(path)]

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            writer(path, self._config)
        except OSError as e:
            raise ConfigurationError(
                f"Failed to write {path}: {e}",
                config_file=str(path),
                cause=e
            )

        logger.info(f"Configuration saved to {path}")

    # Private methods

    def _initialize_feature_flags(self) -> None:
        """Recompute every flag from the configuration tree."""
        self._feature_flags = {
            name for name, path in FEATURE_FLAGS.items()
            if self.get(path, False)
        }

    def _set_feature(self, feature: str, enabled: bool) -> None:
        path = FEATURE_FLAGS.get(feature)
        if path is None:
            logger.debug(f"Ignoring unknown feature flag: {feature}")
            return

        self.set(path, enabled)

    def _notify_change_callbacks(self, path: str, new_value: Any, old_value: Any) -> None:
        """Notify callbacks of the path's section, then wildcard callbacks."""
        section = path.split('.', 1)[0]
        callbacks = list(self._change_callbacks.get(section, []))
        if section != "*":
            callbacks.extend(self._change_callbacks.get("*", []))

        for callback in callbacks:
            try:
                callback(path, new_value, old_value)
            except Exception as e:
                logger.error(f"Error in configuration change callback for {path}: {e}")

    def _detect_format(self, path: Path) -> ConfigurationFormat:
        format_map = {
            '.json': ConfigurationFormat.JSON,
            '.yaml': ConfigurationFormat.YAML,
            '.yml': ConfigurationFormat.YAML,
            '.toml': ConfigurationFormat.TOML,
        }

        try:
            return format_map[path.suffix.lower()]
        except KeyError:
            raise ConfigurationError(
                f"Unsupported configuration format: {path.suffix or path.name}",
                config_file=str(path)
            )

    def _load_json(self, file_path: Path) -> Any:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {file_path}: {e}", config_file=str(file_path), cause=e)

    def _load_yaml(self, file_path: Path) -> Any:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {file_path}: {e}", config_file=str(file_path), cause=e)

    def _load_toml(self, file_path: Path) -> Any:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return toml.load(f)
        except toml.TomlDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {file_path}: {e}", config_file=str(file_path), cause=e)

    def _save_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, default=str, ensure_ascii=False)

    def _save_yaml(self, file_path: Path, data: Dict[str, Any]) -> None:
        with open(file_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    def _save_toml(self, file_path: Path, data: Dict[str, Any]) -> None:
        with open(file_path, 'w', encoding='utf-8') as f:
            toml.dump(data, f)

    def _substitute_environment_variables(self, data: Any) -> Any:
        """Recursively substitute ${VAR} and $VAR in string values."""
        if isinstance(data, Mapping):
            return {k: self._substitute_environment_variables(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [self._substitute_environment_variables(item) for item in data]
        elif isinstance(data, str):
            def replace_var(match):
                var_name = match.group(1) or match.group(2)
                value = os.getenv(f"{self.env_prefix}{var_name}")
                if value is None:
                    value = os.getenv(var_name)
                return value if value is not None else match.group(0)

            return _ENV_PATTERN.sub(replace_var, data)
        else:
            return data
