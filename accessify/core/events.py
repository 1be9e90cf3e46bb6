"""
Event bus for communication between the core, feature modules and plugins.

Delivery is synchronous and happens on the caller's stack: ``emit`` returns
only after every listener has run. A failing listener is isolated from its
siblings and from the emitter.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .exceptions import ErrorKind, InvalidArgumentError

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]
ErrorCallback = Callable[[Listener, Exception], None]


def call_listeners(
    listeners: Sequence[Listener],
    args: Sequence[Any],
    on_error: ErrorCallback
) -> List[Exception]:
    """
    Call each listener in order, isolating failures.

    Args:
        listeners: Snapshot of listeners to call
        args: Positional arguments passed to every listener
        on_error: Called with ``(listener, exception)`` for each failure

    Returns:
        Exceptions raised by listeners, in call order
    """
    failures = []
    for listener in listeners:
        try:
            listener(*args)
        except Exception as e:
            failures.append(e)
            on_error(listener, e)
    return failures


class EventBus:
    """
    Publish/subscribe hub keyed by event name.

    Listeners run in registration order. Removing the last listener of an
    event drops the event entry entirely.
    """

    def __init__(self, error_handler: Optional[Any] = None):
        self._events: Dict[str, List[Listener]] = {}
        self.error_handler = error_handler

    def on(self, event: str, callback: Listener) -> 'EventBus':
        """
        Register a listener.

        Raises:
            InvalidArgumentError: If callback is not callable
        """
        if not callable(callback):
            raise InvalidArgumentError(
                "Callback must be callable",
                argument='callback',
                expected_type='callable'
            )

        self._events.setdefault(event, []).append(callback)
        return self

    def off(self, event: str, callback: Listener) -> 'EventBus':
        """Remove one registration of a listener, or of its ``once`` wrapper."""
        callbacks = self._events.get(event)
        if callbacks is None:
            return self

        for index, registered in enumerate(callbacks):
            if registered is callback or getattr(registered, 'listener', None) is callback:
                del callbacks[index]
                break

        if not callbacks:
            del self._events[event]

        return self

    def emit(self, event: str, *args: Any) -> 'EventBus':
        """Call every listener of ``event`` with ``args``."""
        callbacks = self._events.get(event)
        if not callbacks:
            return self

        def report(listener: Listener, error: Exception) -> None:
            self._report_listener_error(event, error)

        call_listeners(list(callbacks), args, report)
        return self

    def once(self, event: str, callback: Listener) -> 'EventBus':
        """Register a listener that unsubscribes itself before its first call."""
        if not callable(callback):
            raise InvalidArgumentError(
                "Callback must be callable",
                argument='callback',
                expected_type='callable'
            )

        def once_callback(*args: Any) -> Any:
            # A re-entrant emit may reach this wrapper through an older snapshot
            if once_callback.fired:
                return None
            once_callback.fired = True
            self.off(event, once_callback)
            return callback(*args)

        once_callback.fired = False
        once_callback.listener = callback
        return self.on(event, once_callback)

    def remove_all_listeners(self, event: Optional[str] = None) -> 'EventBus':
        """Remove listeners of one event, or of every event."""
        if event is None:
            self._events.clear()
        else:
            self._events.pop(event, None)
        return self

    def event_names(self) -> List[str]:
        return list(self._events.keys())

    def listener_count(self, event: str) -> int:
        return len(self._events.get(event, ()))

    def has_listeners(self, event: str) -> bool:
        return self.listener_count(event) > 0

    def _report_listener_error(self, event: str, error: Exception) -> None:
        if self.error_handler is not None:
            self.error_handler.handle(
                error, f'Event listener for "{event}"', ErrorKind.RUNTIME
            )
        else:
            logger.error(f'Error in event listener for "{event}": {error}', exc_info=error)
