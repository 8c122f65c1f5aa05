import os
from datetime import datetime
from typing import Any, Dict

from sshpane.utils import iso_now, json_line, safe_name


class SessionRecorder:
    """Appends a pane's input/output events to a JSON-lines log file."""

    def __init__(self, pane_id: str, name: str, cache_dirs: Dict[str, str], project_tag: str):
        self.pane_id = pane_id
        self.name = name
        self.cache_dirs = cache_dirs
        self.project_tag = project_tag
        self.path = self._build_log_path()
        self._write("SYS", {"event": "recording_started", "name": self.name})

    def _build_log_path(self) -> str:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"{self.project_tag}__{safe_name(self.pane_id)}__{safe_name(self.name)}__{stamp}.log"
        return os.path.join(self.cache_dirs["sessions_dir"], filename)

    def _write(self, direction: str, payload: Dict[str, Any]) -> None:
        data = {"ts": iso_now(), "dir": direction, "pane_id": self.pane_id}
        data.update(payload)
        json_line(self.path, data)

    def __call__(self, event: Dict[str, str]) -> None:
        direction = "IN" if event.get("type") == "input" else "OUT"
        self._write(direction, {"type": event.get("type"), "content": event.get("content", "")})
