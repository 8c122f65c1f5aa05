import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from sshpane.config import OUTPUT_MAX_LINES


class OutputKind(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    ERROR = "error"


@dataclass(frozen=True)
class OutputLine:
    kind: OutputKind
    content: str
    prompt_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "content": self.content, "prompt_text": self.prompt_text}


class OutputBuffer:
    """Ordered scrollback. Oldest lines are dropped once max_lines is exceeded
    (max_lines <= 0 keeps everything)."""

    def __init__(self, max_lines: int = OUTPUT_MAX_LINES):
        self.max_lines = max_lines
        self.lock = threading.Lock()
        self._lines: List[OutputLine] = []
        self.dropped = 0

    def append(self, kind: OutputKind, content: str, prompt_text: str = "") -> OutputLine:
        line = OutputLine(kind, content, prompt_text)
        with self.lock:
            self._lines.append(line)
            if self.max_lines > 0:
                overflow = len(self._lines) - self.max_lines
                if overflow > 0:
                    del self._lines[:overflow]
                    self.dropped += overflow
        return line

    def clear(self) -> None:
        with self.lock:
            self._lines.clear()

    def lines(self) -> List[OutputLine]:
        with self.lock:
            return list(self._lines)

    def tail(self, count: int) -> List[OutputLine]:
        with self.lock:
            if count <= 0:
                return []
            return list(self._lines[-count:])

    def __len__(self) -> int:
        with self.lock:
            return len(self._lines)

    def __iter__(self):
        return iter(self.lines())
