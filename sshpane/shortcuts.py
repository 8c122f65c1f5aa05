import itertools
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

_handle_ids = itertools.count(1)


@dataclass
class KeyEvent:
    key: str
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    meta: bool = False
    default_prevented: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyEvent":
        return cls(
            key=str(data.get("key", "")),
            ctrl=bool(data.get("ctrl", False)),
            shift=bool(data.get("shift", False)),
            alt=bool(data.get("alt", False)),
            meta=bool(data.get("meta", False)),
        )

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass(frozen=True)
class ShortcutHandle:
    id: int
    key: str
    ctrl: bool
    shift: bool
    alt: bool
    meta: bool
    prevent_default: bool

    def matches(self, event: KeyEvent) -> bool:
        # ctrl is satisfied by either ctrl or cmd/meta
        ctrl_pressed = event.ctrl or event.meta
        return (
            self.ctrl == ctrl_pressed
            and self.shift == event.shift
            and self.alt == event.alt
            and (self.meta == event.meta or (self.ctrl and event.meta))
            and self.key.lower() == event.key.lower()
        )


class ShortcutRegistry:
    def __init__(self):
        self._handlers: Dict[int, Callable[[KeyEvent], Any]] = {}
        self._handles: Dict[int, ShortcutHandle] = {}
        self.lock = threading.Lock()

    def register(self, key: str, handler: Callable[[KeyEvent], Any], ctrl: bool = False,
                 shift: bool = False, alt: bool = False, meta: bool = False,
                 prevent_default: bool = True) -> ShortcutHandle:
        handle = ShortcutHandle(next(_handle_ids), key, ctrl, shift, alt, meta, prevent_default)
        with self.lock:
            self._handles[handle.id] = handle
            self._handlers[handle.id] = handler
        return handle

    def unregister(self, handle: ShortcutHandle) -> bool:
        with self.lock:
            self._handlers.pop(handle.id, None)
            return self._handles.pop(handle.id, None) is not None

    def unregister_all(self) -> None:
        with self.lock:
            self._handles.clear()
            self._handlers.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self._handles)

    def dispatch(self, event: KeyEvent) -> List[Any]:
        """Run every matching handler; returns their results in registration order."""
        with self.lock:
            matched = [(h, self._handlers[h.id]) for h in self._handles.values() if h.matches(event)]
        results = []
        for handle, handler in matched:
            if handle.prevent_default:
                event.prevent_default()
            results.append(handler(event))
        return results
