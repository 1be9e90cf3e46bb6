"""
Exception hierarchy for the Accessify runtime.

This module defines the structured exceptions raised by the core systems:
- Error kinds mirroring the classification used by the error handler
- Severity levels derived from those kinds
- Rich error context and recovery suggestions
- Exception chaining for root cause analysis

Errors raised by the core carry enough metadata for the error handler to
classify them without string matching.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum


class ErrorSeverity(Enum):
    """Enumeration of error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorKind(Enum):
    """Enumeration of error kinds understood by the error handler."""
    INITIALIZATION = "initialization"
    RUNTIME = "runtime"
    CONFIGURATION = "configuration"
    PLUGIN = "plugin"
    COMPONENT = "component"
    NETWORK = "network"
    PERMISSION = "permission"
    COMPATIBILITY = "compatibility"


class AccessifyError(Exception):
    """
    Base exception class for all Accessify exceptions.

    Provides error context, categorization and recovery guidance.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.RUNTIME,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        recoverable: bool = True,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.severity = severity
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.suggestions = suggestions or []
        self.recoverable = recoverable
        self.cause = cause
        self.timestamp = datetime.now()

        if cause:
            self.__cause__ = cause

    def _generate_error_code(self) -> str:
        """Generate an error code from the exception type and kind."""
        kind_code = self.kind.value.upper()[:3]
        return f"{kind_code}_{self.__class__.__name__.upper()}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and serialization."""
        return {
            'error_code': self.error_code,
            'message': self.message,
            'kind': self.kind.value,
            'severity': self.severity.value,
            'context': self.context,
            'suggestions': self.suggestions,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'exception_type': self.__class__.__name__,
            'cause': str(self.cause) if self.cause else None
        }

    def add_context(self, key: str, value: Any) -> 'AccessifyError':
        """Add context information to the exception."""
        self.context[key] = value
        return self

    def add_suggestion(self, suggestion: str) -> 'AccessifyError':
        """Add a recovery suggestion to the exception."""
        if suggestion not in self.suggestions:
            self.suggestions.append(suggestion)
        return self

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")

        return " | ".join(parts)


class InvalidArgumentError(AccessifyError, TypeError):
    """
    Raised when a core API receives an argument of the wrong shape.

    Examples are a non-callable listener or a bulk update that is not a
    mapping.
    """

    def __init__(
        self,
        message: str,
        argument: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, kind=ErrorKind.RUNTIME, **kwargs)

        if argument:
            self.add_context('argument', argument)
        if expected_type:
            self.add_context('expected_type', expected_type)


class ConfigurationError(AccessifyError):
    """
    Raised for configuration loading and persistence failures.

    Validation problems are reported through ``ValidationResult`` instead.
    """

    def __init__(
        self,
        message: str,
        config_path: Optional[str] = None,
        config_file: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, kind=ErrorKind.CONFIGURATION, **kwargs)

        if config_path:
            self.add_context('config_path', config_path)
        if config_file:
            self.add_context('config_file', config_file)

        self.add_suggestion("Check configuration file syntax and values")


class PluginError(AccessifyError):
    """Raised for plugin registration and lifecycle failures."""

    def __init__(
        self,
        message: str,
        plugin_name: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault('kind', ErrorKind.PLUGIN)
        super().__init__(message, **kwargs)

        if plugin_name:
            self.add_context('plugin_name', plugin_name)


class PluginNotFoundError(PluginError, LookupError):
    """Raised when an operation names a plugin that was never registered."""

    def __init__(self, plugin_name: str, **kwargs):
        super().__init__(
            f'Plugin "{plugin_name}" is not registered',
            plugin_name=plugin_name,
            **kwargs
        )
        self.add_suggestion("Register the plugin before initializing or configuring it")


class PluginLoadError(PluginError):
    """Raised when an external plugin reference cannot be resolved."""

    def __init__(
        self,
        message: str,
        plugin_ref: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)

        if plugin_ref:
            self.add_context('plugin_ref', plugin_ref)

        self.add_suggestion("Verify the plugin module is installed and importable")


class ComponentError(AccessifyError):
    """Raised by feature modules for failures inside their own lifecycle."""

    def __init__(
        self,
        message: str,
        component_name: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, kind=ErrorKind.COMPONENT, **kwargs)

        if component_name:
            self.add_context('component_name', component_name)
