"""
ErrorHandler - error classification, recording and reporting
"""
import asyncio
import functools
import json
import logging
import platform
import sys
import threading
import time
import traceback
import uuid
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, Union

from .core.exceptions import AccessifyError, ErrorKind, ErrorSeverity

logger = logging.getLogger(__name__)

DEFAULT_MAX_ERRORS = 100

SEVERITY_BY_KIND = {
    ErrorKind.INITIALIZATION: ErrorSeverity.HIGH,
    ErrorKind.CONFIGURATION: ErrorSeverity.MEDIUM,
    ErrorKind.PLUGIN: ErrorSeverity.MEDIUM,
    ErrorKind.COMPONENT: ErrorSeverity.MEDIUM,
    ErrorKind.NETWORK: ErrorSeverity.LOW,
    ErrorKind.PERMISSION: ErrorSeverity.HIGH,
    ErrorKind.COMPATIBILITY: ErrorSeverity.HIGH,
    ErrorKind.RUNTIME: ErrorSeverity.MEDIUM,
}

RECOVERABLE_KINDS = frozenset({
    ErrorKind.NETWORK,
    ErrorKind.PLUGIN,
    ErrorKind.COMPONENT,
})

LOG_LEVEL_BY_SEVERITY = {
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.LOW: logging.INFO,
}

RECOMMENDATIONS = {
    ErrorKind.COMPATIBILITY: "Consider updating the host environment to a supported version",
    ErrorKind.PERMISSION: "Check permissions for microphone, camera and storage access",
    ErrorKind.NETWORK: "Check your network connection and try again",
    ErrorKind.PLUGIN: "Some accessibility plugins may not be working correctly",
}


def _user_agent() -> str:
    return (
        f"{platform.python_implementation()}/{platform.python_version()} "
        f"({platform.system()} {platform.release()})"
    )


@dataclass
class ErrorRecord:
    """Detailed error record for logging and analysis"""
    id: str
    timestamp: str
    kind: ErrorKind
    context: str
    message: str
    stack: Optional[str]
    user_agent: str
    url: Optional[str]
    severity: ErrorSeverity
    recoverable: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        data = asdict(self)
        data['kind'] = self.kind.value
        data['severity'] = self.severity.value
        return data


class ErrorBoundary:
    """Error handling helpers pre-bound to one component"""

    def __init__(self, handler: 'ErrorHandler', component_name: str):
        self.handler = handler
        self.component_name = component_name

    def catch(self, error: BaseException, context: str = '') -> 'ErrorRecord':
        return self.handler.handle(error, f"{self.component_name}: {context}", ErrorKind.COMPONENT)

    def wrap(self, fn: Callable) -> Callable:
        return self.handler.wrap_function(fn, self.component_name, ErrorKind.COMPONENT)

    def wrap_async(self, fn: Callable) -> Callable:
        return self.handler.wrap_async_function(fn, self.component_name, ErrorKind.COMPONENT)


class ErrorHandler:
    """
    Central error classification and recording.

    Every handled error becomes an ``ErrorRecord`` kept in a bounded FIFO,
    logged at a level derived from its severity and, when an emitter is
    attached, published as an ``"error"`` event. ``handle`` never raises.
    """

    def __init__(
        self,
        emitter: Optional[Any] = None,
        max_errors: int = DEFAULT_MAX_ERRORS,
        location: Optional[str] = None
    ):
        self.emitter = emitter
        self.max_errors = max_errors
        self.location = location
        self._errors: Deque[ErrorRecord] = deque(maxlen=max_errors)
        self._emitting = False
        self._previous_hooks: Optional[Dict[str, Any]] = None

    def handle(
        self,
        error: Any,
        context: str = '',
        kind: Optional[Union[ErrorKind, str]] = None
    ) -> Optional[ErrorRecord]:
        """Handle an error: classify, record, log and publish it"""
        try:
            error_kind = self._resolve_kind(error, kind)
            record = self._create_record(error, context, error_kind)

            self._errors.append(record)
            self._log_error(record, error)
            self._emit_error(record)

            return record

        except Exception as e:
            logger.critical(f"Error handler failed: {e}")
            logger.critical(f"Original error: {error}")
            return None

    def wrap_function(
        self,
        fn: Callable,
        context: str = '',
        kind: Union[ErrorKind, str] = ErrorKind.RUNTIME
    ) -> Callable:
        """Wrap a function so failures are recorded, then re-raised"""
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                self.handle(e, context, kind)
                raise
        return wrapper

    def wrap_async_function(
        self,
        fn: Callable,
        context: str = '',
        kind: Union[ErrorKind, str] = ErrorKind.RUNTIME
    ) -> Callable:
        """Wrap a coroutine function so failures are recorded, then re-raised"""
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except Exception as e:
                self.handle(e, context, kind)
                raise
        return wrapper

    def create_error_boundary(self, component_name: str) -> ErrorBoundary:
        return ErrorBoundary(self, component_name)

    # Queries

    def get_errors(self) -> List[ErrorRecord]:
        return list(self._errors)

    def get_errors_by_type(self, kind: Union[ErrorKind, str]) -> List[ErrorRecord]:
        error_kind = ErrorKind(kind)
        return [record for record in self._errors if record.kind == error_kind]

    def get_errors_by_severity(self, severity: Union[ErrorSeverity, str]) -> List[ErrorRecord]:
        error_severity = ErrorSeverity(severity)
        return [record for record in self._errors if record.severity == error_severity]

    def get_recent_errors(self, count: int = 10) -> List[ErrorRecord]:
        if count <= 0:
            return []
        return list(self._errors)[-count:]

    def get_critical_errors(self) -> List[ErrorRecord]:
        return self.get_errors_by_severity(ErrorSeverity.HIGH)

    def has_critical_errors(self) -> bool:
        return any(record.severity == ErrorSeverity.HIGH for record in self._errors)

    def clear_errors(self) -> None:
        self._errors.clear()

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics"""
        by_type: Dict[str, int] = {}
        by_severity: Dict[str, int] = {}

        for record in self._errors:
            by_type[record.kind.value] = by_type.get(record.kind.value, 0) + 1
            by_severity[record.severity.value] = by_severity.get(record.severity.value, 0) + 1

        return {
            'total': len(self._errors),
            'by_type': by_type,
            'by_severity': by_severity,
            'recent': len(self.get_recent_errors(5)),
        }

    def create_error_report(self) -> Dict[str, Any]:
        """Build a report of recorded errors with recommendations"""
        stats = self.get_error_stats()

        return {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'user_agent': _user_agent(),
            'url': self.location,
            'stats': stats,
            'critical_errors': [record.to_dict() for record in self.get_critical_errors()],
            'all_errors': [record.to_dict() for record in self._errors],
            'recommendations': self._get_recommendations(stats),
        }

    def export_error_report(self, file_path: Union[str, Path]) -> bool:
        """Export the error report as JSON"""
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(self.create_error_report(), f, indent=2, ensure_ascii=False)

            logger.info(f"Error report exported to {file_path}")
            return True

        except OSError as e:
            logger.error(f"Failed to export error report: {e}")
            return False

    # Global hooks

    def install_global_handlers(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Route uncaught exceptions into this handler"""
        if self._previous_hooks is not None:
            logger.warning("Global error handlers already installed")
            return

        previous_excepthook = sys.excepthook
        previous_threading_hook = threading.excepthook
        self._previous_hooks = {
            'excepthook': previous_excepthook,
            'threading_excepthook': previous_threading_hook,
            'loop': loop,
            'loop_handler': loop.get_exception_handler() if loop else None,
        }

        def excepthook(exc_type, exc_value, exc_traceback):
            self.handle(exc_value, 'Uncaught exception', ErrorKind.RUNTIME)
            previous_excepthook(exc_type, exc_value, exc_traceback)

        def threading_excepthook(args):
            self.handle(args.exc_value, f'Uncaught exception in thread {args.thread}', ErrorKind.RUNTIME)
            previous_threading_hook(args)

        sys.excepthook = excepthook
        threading.excepthook = threading_excepthook

        if loop is not None:
            def loop_exception_handler(event_loop, loop_context):
                error = loop_context.get('exception') or loop_context.get('message', 'Unknown error')
                self.handle(error, 'Unhandled exception in event loop', ErrorKind.RUNTIME)

            loop.set_exception_handler(loop_exception_handler)

    def remove_global_handlers(self) -> None:
        """Restore the hooks replaced by install_global_handlers"""
        if self._previous_hooks is None:
            return

        sys.excepthook = self._previous_hooks['excepthook']
        threading.excepthook = self._previous_hooks['threading_excepthook']

        loop = self._previous_hooks['loop']
        if loop is not None:
            loop.set_exception_handler(self._previous_hooks['loop_handler'])

        self._previous_hooks = None

    # Private methods

    def _resolve_kind(self, error: Any, kind: Optional[Union[ErrorKind, str]]) -> ErrorKind:
        if kind is not None:
            try:
                return ErrorKind(kind)
            except ValueError:
                logger.debug(f"Unknown error kind {kind!r}, using runtime")
                return ErrorKind.RUNTIME
        if isinstance(error, AccessifyError):
            return error.kind
        return ErrorKind.RUNTIME

    def _create_record(self, error: Any, context: str, kind: ErrorKind) -> ErrorRecord:
        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
            stack = ''.join(traceback.format_exception(type(error), error, error.__traceback__))
        else:
            message = str(error)
            stack = None

        return ErrorRecord(
            id=f"error_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
            timestamp=datetime.now(timezone.utc).isoformat(),
            kind=kind,
            context=context,
            message=message,
            stack=stack,
            user_agent=_user_agent(),
            url=self.location,
            severity=SEVERITY_BY_KIND.get(kind, ErrorSeverity.MEDIUM),
            recoverable=kind in RECOVERABLE_KINDS,
        )

    def _log_error(self, record: ErrorRecord, error: Any) -> None:
        """Log error with a level derived from its severity"""
        level = LOG_LEVEL_BY_SEVERITY.get(record.severity, logging.INFO)
        message = f"[Accessify {record.kind.value.upper()}] {record.context}: {record.message}"
        logger.log(level, message)

        if record.stack:
            logger.debug(f"[{record.id}] {record.stack}")

    def _emit_error(self, record: ErrorRecord) -> None:
        """Publish the record, unless already inside an error listener"""
        if self.emitter is None or self._emitting:
            return

        self._emitting = True
        try:
            self.emitter.emit('error', record)
        finally:
            self._emitting = False

    def _get_recommendations(self, stats: Dict[str, Any]) -> List[str]:
        return [
            recommendation
            for kind, recommendation in RECOMMENDATIONS.items()
            if stats['by_type'].get(kind.value, 0) > 0
        ]


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """Configure the accessify logger with console and optional file handlers"""
    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    simple_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )

    package_logger = logging.getLogger('accessify')
    package_logger.setLevel(logging.DEBUG)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(simple_formatter)
    package_logger.addHandler(console_handler)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        error_file_handler = logging.FileHandler(log_path / "errors.log", encoding='utf-8')
        error_file_handler.setLevel(logging.ERROR)
        error_file_handler.setFormatter(detailed_formatter)
        package_logger.addHandler(error_file_handler)

        debug_file_handler = logging.FileHandler(log_path / "debug.log", encoding='utf-8')
        debug_file_handler.setLevel(logging.DEBUG)
        debug_file_handler.setFormatter(detailed_formatter)
        package_logger.addHandler(debug_file_handler)

    return package_logger
