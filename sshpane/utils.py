import os
import re
import sys
import json
import shlex
import hashlib
from datetime import datetime
from typing import Any, Dict, Optional, List
from sshpane.config import ANSI_ESCAPE, CONTROL_CHARS, DEFAULT_ERROR_MESSAGE

def log_error(message: str) -> None:
    print(f"[SSH-PANE] {message}", file=sys.stderr, flush=True)

def clamp_int(value: Any, default: int, min_value: int, max_value: int) -> int:
    try:
        numeric = int(value)
    except Exception:
        numeric = default
    if numeric < min_value:
        return min_value
    if numeric > max_value:
        return max_value
    return numeric

def to_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    s = str(value).lower().strip()
    if s in ("true", "1", "yes", "on"):
        return True
    if s in ("false", "0", "no", "off"):
        return False
    return default

def iso_now() -> str:
    return datetime.now().isoformat(timespec="milliseconds")

def safe_name(text: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9._-]+", "_", text.strip())
    return cleaned[:80] if cleaned else "unnamed"

def error_message(error: Any, default: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Best-effort human message for anything raised or returned as an error."""
    if isinstance(error, BaseException):
        text = str(error)
        if text:
            return text
        return default
    if isinstance(error, str):
        return error
    if error is None:
        return default
    try:
        text = str(error)
    except Exception:
        return default
    return text or default

def strip_terminal_codes(text: str) -> str:
    if not text:
        return ""
    text = ANSI_ESCAPE.sub("", text)
    text = CONTROL_CHARS.sub("", text)
    return text.replace("\r\n", "\n").replace("\r", "\n")

def split_output_lines(output: str) -> List[str]:
    lines = output.splitlines()
    # A trailing blank line is noise unless it is the only line
    if len(lines) > 1 and lines[-1] == "":
        lines = lines[:-1]
    if not lines:
        lines = [""]
    return lines

def longest_common_prefix(items: List[str]) -> str:
    if not items:
        return ""
    prefix = items[0]
    for item in items[1:]:
        size = 0
        for a, b in zip(prefix, item):
            if a != b:
                break
            size += 1
        prefix = prefix[:size]
        if not prefix:
            break
    return prefix

def quote_path(path: str) -> str:
    # Keep a leading ~ outside the quotes so the remote shell still expands it
    if path == "~":
        return "~"
    if path.startswith("~/"):
        rest = path[2:]
        return "~/" + shlex.quote(rest) if rest else "~/"
    return shlex.quote(path)

def json_line(path: str, payload: Dict[str, Any]) -> None:
    try:
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False) + "\n")
    except Exception as exc:
        log_error(f"log write failed ({path}): {exc}")

def make_cache_dirs(cache_root: str) -> Dict[str, str]:
    sessions_dir = os.path.join(cache_root, "sessions")
    os.makedirs(sessions_dir, exist_ok=True)
    return {
        "cache_root": cache_root,
        "sessions_dir": sessions_dir,
    }

def resolve_runtime_paths(
    project_root_arg: Optional[str],
    cache_dir_arg: Optional[str],
) -> Dict[str, str]:
    project_root = os.path.abspath(project_root_arg or os.getcwd())
    project_tag = safe_name(os.path.basename(project_root))
    project_hash = hashlib.sha1(project_root.encode("utf-8")).hexdigest()[:8]
    project_ns = f"{project_tag}-{project_hash}"
    cache_override = cache_dir_arg or os.environ.get("SSH_PANE_CACHE_DIR")
    if cache_override:
        cache_root = os.path.join(os.path.abspath(cache_override), project_ns)
    else:
        cache_root = os.path.join(project_root, ".ssh-pane-cache")
    return {
        "project_root": project_root,
        "project_tag": project_tag,
        "cache_root": cache_root,
    }
