import itertools
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from sshpane.utils import log_error

Listener = Callable[[str, Any], None]

_handle_ids = itertools.count(1)


@dataclass(frozen=True)
class Subscription:
    id: int
    emitter: "EventEmitter"

    def cancel(self) -> None:
        self.emitter.unsubscribe(self)


class EventEmitter:
    """Observer list keyed by the handle returned from subscribe()."""

    def __init__(self):
        self._listeners: Dict[int, Listener] = {}
        self.lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Subscription:
        handle = Subscription(next(_handle_ids), self)
        with self.lock:
            self._listeners[handle.id] = listener
        return handle

    def unsubscribe(self, handle: Subscription) -> bool:
        with self.lock:
            return self._listeners.pop(handle.id, None) is not None

    def clear(self) -> None:
        with self.lock:
            self._listeners.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self._listeners)

    def emit(self, event: str, payload: Any = None) -> None:
        with self.lock:
            listeners: List[Listener] = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(event, payload)
            except Exception as exc:
                log_error(f"listener error ({event}): {exc}")
