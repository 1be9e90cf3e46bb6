"""
Change-tracked key/value state for the Accessify runtime.

The store records every effective mutation in a bounded history so the
last changes can be undone, and notifies per-key and wildcard (``"*"``)
subscribers after each change.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Tuple

from .events import call_listeners
from .exceptions import ErrorKind, InvalidArgumentError

logger = logging.getLogger(__name__)

WILDCARD = "*"
DEFAULT_MAX_HISTORY = 50

_SCALAR_TYPES = (str, int, float, bool, bytes, type(None))


class _Missing:
    """Marker for an absent value in history records."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "<MISSING>"


MISSING = _Missing()


def is_same_value(old: Any, new: Any) -> bool:
    """
    Return True when writing ``new`` over ``old`` is not a change.

    Scalars compare by type and value, everything else by identity.
    """
    if old is new:
        return True
    if type(old) is not type(new) or not isinstance(old, _SCALAR_TYPES):
        return False
    return old == new


@dataclass
class HistoryRecord:
    """One effective mutation of the store."""
    key: str
    old_value: Any
    new_value: Any
    timestamp: float


class ChangeTrackedStore:
    """
    Key/value state container with bounded undo history.

    Setting a key to the value it already holds is a no-op: no history
    record and no notification.
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY, error_handler: Optional[Any] = None):
        if max_history < 1:
            raise InvalidArgumentError(
                "max_history must be at least 1",
                argument='max_history'
            )

        self.max_history = max_history
        self.error_handler = error_handler
        self._state: Dict[str, Any] = {}
        self._history: Deque[HistoryRecord] = deque(maxlen=max_history)
        self._listeners: Dict[str, List[Callable]] = {}
        self._version = 0

    # Reads

    def get(self, key: str) -> Any:
        return self._state.get(key)

    def has(self, key: str) -> bool:
        return key in self._state

    def size(self) -> int:
        return len(self._state)

    def keys(self) -> List[str]:
        return list(self._state.keys())

    def values(self) -> List[Any]:
        return list(self._state.values())

    def entries(self) -> List[Tuple[str, Any]]:
        return list(self._state.items())

    def get_state(self) -> Dict[str, Any]:
        """Get a snapshot of the whole store."""
        return dict(self._state)

    def __len__(self) -> int:
        return len(self._state)

    def __contains__(self, key: object) -> bool:
        return key in self._state

    # Writes

    def set(self, key: str, value: Any) -> 'ChangeTrackedStore':
        """Set a value, recording history and notifying if it changed."""
        old_value = self._state.get(key, MISSING)

        if not is_same_value(old_value, value):
            self._add_to_history(key, old_value, value)
            self._state[key] = value
            self._version += 1
            self._notify_listeners(key, value, old_value)

        return self

    def set_state(self, partial: Mapping[str, Any]) -> 'ChangeTrackedStore':
        """
        Set several values at once.

        Each key follows the same changed-value rule as ``set``. Wildcard
        subscribers receive a single notification carrying the diff
        ``{key: {'old': ..., 'new': ...}}`` when anything changed.

        Raises:
            InvalidArgumentError: If partial is not a mapping
        """
        if not isinstance(partial, Mapping):
            raise InvalidArgumentError(
                "State must be a mapping",
                argument='partial',
                expected_type='mapping'
            )

        changes = {}
        for key, value in partial.items():
            old_value = self._state.get(key, MISSING)
            if not is_same_value(old_value, value):
                changes[key] = {'old': None if old_value is MISSING else old_value, 'new': value}
                self._add_to_history(key, old_value, value)
                self._state[key] = value

        if changes:
            self._version += 1
            self._notify_listeners(WILDCARD, changes, None)

        return self

    def delete(self, key: str) -> 'ChangeTrackedStore':
        """Remove a present key."""
        if key in self._state:
            old_value = self._state.pop(key)
            self._add_to_history(key, old_value, MISSING)
            self._version += 1
            self._notify_listeners(key, None, old_value)
        return self

    def clear(self) -> 'ChangeTrackedStore':
        """Empty the store as a single undoable step."""
        old_state = self.get_state()
        self._add_to_history(WILDCARD, old_state, {})
        self._state.clear()
        self._version += 1
        self._notify_listeners(WILDCARD, {}, old_state)
        return self

    # Subscriptions

    def subscribe(self, key: str, callback: Callable) -> Callable[[], None]:
        """
        Subscribe to changes of ``key`` (or ``"*"`` for every change).

        Callbacks receive ``(new_value, old_value, key)``.

        Returns:
            Function that removes the subscription
        """
        if not callable(callback):
            raise InvalidArgumentError(
                "Callback must be callable",
                argument='callback',
                expected_type='callable'
            )

        self._listeners.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(key, callback)

        return unsubscribe

    def unsubscribe(self, key: str, callback: Callable) -> None:
        callbacks = self._listeners.get(key)
        if callbacks is None:
            return

        try:
            callbacks.remove(callback)
        except ValueError:
            pass

        if not callbacks:
            del self._listeners[key]

    # History

    def get_history(self) -> List[HistoryRecord]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def undo(self) -> bool:
        """
        Reverse the most recent history record.

        Returns:
            False if there was nothing to undo
        """
        if not self._history:
            return False

        record = self._history.pop()
        self._version += 1

        if record.key == WILDCARD:
            self._state.clear()
            if isinstance(record.old_value, Mapping) and record.old_value:
                self._state.update(record.old_value)
            self._notify_listeners(WILDCARD, self.get_state(), record.new_value)
        else:
            if record.old_value is MISSING:
                self._state.pop(record.key, None)
                restored = None
            else:
                self._state[record.key] = record.old_value
                restored = record.old_value
            new_value = None if record.new_value is MISSING else record.new_value
            self._notify_listeners(record.key, restored, new_value)

        return True

    # Derived state

    def create_selector(self, selector: Callable[[Dict[str, Any]], Any]) -> Callable[[], Any]:
        """
        Create a memoized accessor for derived state.

        The selector is recomputed only when the store has changed since
        the previous call.
        """
        if not callable(selector):
            raise InvalidArgumentError(
                "Selector must be callable",
                argument='selector',
                expected_type='callable'
            )

        last_version = None
        last_result = None

        def select() -> Any:
            nonlocal last_version, last_result
            if last_version != self._version:
                last_version = self._version
                last_result = selector(self.get_state())
            return last_result

        return select

    # Private methods

    def _add_to_history(self, key: str, old_value: Any, new_value: Any) -> None:
        self._history.append(HistoryRecord(
            key=key,
            old_value=old_value,
            new_value=new_value,
            timestamp=time.time() * 1000
        ))

    def _notify_listeners(self, key: str, new_value: Any, old_value: Any) -> None:
        """Notify subscribers of ``key``, then wildcard subscribers."""
        if old_value is MISSING:
            old_value = None

        keys = [key] if key == WILDCARD else [key, WILDCARD]
        for listener_key in keys:
            callbacks = self._listeners.get(listener_key)
            if not callbacks:
                continue

            def report(listener: Callable, error: Exception, listener_key: str = listener_key) -> None:
                self._report_listener_error(listener_key, error)

            call_listeners(list(callbacks), (new_value, old_value, key), report)

    def _report_listener_error(self, key: str, error: Exception) -> None:
        if self.error_handler is not None:
            self.error_handler.handle(
                error, f'State listener for "{key}"', ErrorKind.RUNTIME
            )
        else:
            logger.error(f'Error in state listener for "{key}": {error}', exc_info=error)
