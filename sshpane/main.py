import sys
import io
import json
import asyncio
import argparse
import threading
from typing import Any, Dict
from sshpane.config import config
from sshpane.utils import (
    log_error, resolve_runtime_paths, make_cache_dirs
)
from sshpane.server import handle_request, make_notification, make_error, ERROR_INTERNAL

# Force UTF-8 I/O so remote output with non-ASCII text survives on any console
_stdin = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="replace")
_stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", line_buffering=True)
_stdout_lock = threading.Lock()


def _write_message(message: Dict[str, Any]) -> None:
    """Write one JSON-RPC message to stdout as UTF-8."""
    with _stdout_lock:
        try:
            _stdout.write(json.dumps(message, ensure_ascii=False) + "\n")
            _stdout.flush()
        except Exception as exc:
            log_error(f"response write error: {exc}")
            try:
                _stdout.write(json.dumps(message, ensure_ascii=True) + "\n")
                _stdout.flush()
            except Exception as exc2:
                log_error(f"response write fallback error: {exc2}")


def _on_change(pane_id: str, event: str, payload: Any) -> None:
    _write_message(make_notification("pane/changed", {"pane_id": pane_id, "event": event, "payload": payload}))


def _on_toast(toast: Dict[str, Any]) -> None:
    _write_message(make_notification("toast", toast))


def _start_loop() -> asyncio.AbstractEventLoop:
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    return loop


def _schedule(loop: asyncio.AbstractEventLoop, request: Dict[str, Any], manager) -> None:
    future = asyncio.run_coroutine_threadsafe(handle_request(request, manager), loop)

    def _done(fut) -> None:
        try:
            response = fut.result()
        except Exception as exc:
            log_error(f"unexpected error: {exc}")
            response = make_error(request.get("id"), ERROR_INTERNAL, f"Internal error: {exc}")
        if response is not None:
            _write_message(response)

    future.add_done_callback(_done)


def main() -> None:
    from sshpane.ssh import SSHBackend
    from sshpane.notify import Notifier
    from sshpane.panes import PaneManager

    config.load_from_env()

    parser = argparse.ArgumentParser(
        description="SSH pane controller (JSON-RPC over stdin/stdout for a terminal panel)"
    )
    parser.add_argument("--host", help="Default SSH host for new panes (overrides SSH_HOST env)")
    parser.add_argument("--user", help="Default SSH username (overrides SSH_USER env)")
    parser.add_argument("--password", help="Default SSH password (overrides SSH_PASSWORD env)")
    parser.add_argument("--key", help="Path to SSH private key (overrides SSH_KEY_PATH env)")
    parser.add_argument("--passphrase", help="Passphrase for SSH private key (overrides SSH_KEY_PASSPHRASE env)")
    parser.add_argument("--port", type=int, help="SSH port (overrides SSH_PORT env)")
    parser.add_argument("--no-verify-host", action="store_true", help="Disable SSH host key verification")
    parser.add_argument("--name", help="Default pane display name (overrides SSH_PANE_NAME env)")
    parser.add_argument("--max-lines", type=int, help="Scrollback cap per pane, 0 for unbounded")
    parser.add_argument("--record", action="store_true", help="Record pane input/output to the cache dir")
    parser.add_argument("--project-root", help="Project root for local state")
    parser.add_argument("--cache-dir", help="Optional cache root override")

    args = parser.parse_args()

    if args.host: config.SSH_HOST = args.host
    if args.user: config.SSH_USER = args.user
    if args.password: config.SSH_PASSWORD = args.password
    if args.key: config.SSH_KEY_PATH = args.key
    if args.passphrase: config.SSH_KEY_PASSPHRASE = args.passphrase
    if args.port: config.SSH_PORT = args.port
    if args.name: config.PANE_NAME = args.name
    if args.max_lines is not None: config.MAX_LINES = args.max_lines
    if args.record: config.RECORD = True
    if args.no_verify_host: config.SSH_VERIFY_HOST_KEY = False

    runtime_paths = resolve_runtime_paths(project_root_arg=args.project_root, cache_dir_arg=args.cache_dir)
    config.PROJECT_ROOT = runtime_paths["project_root"]
    config.PROJECT_TAG = runtime_paths["project_tag"]
    if config.RECORD:
        config.CACHE_DIRS = make_cache_dirs(runtime_paths["cache_root"])

    backend = SSHBackend()
    manager = PaneManager(backend, notifier=Notifier(_on_toast), on_change=_on_change)
    loop = _start_loop()

    log_error(
        f"SSH pane started. default_host={config.SSH_HOST}:{config.SSH_PORT} "
        f"max_lines={config.MAX_LINES} record={config.RECORD} verify_host={config.SSH_VERIFY_HOST_KEY}"
    )

    for line in _stdin:
        line = line.strip()
        if not line:
            continue
        try:
            request = json.loads(line)
        except json.JSONDecodeError as exc:
            log_error(f"invalid json: {exc}")
            continue
        if not isinstance(request, dict):
            log_error("invalid request: expected a JSON object")
            continue
        _schedule(loop, request, manager)

    log_error("shutting down...")
    asyncio.run_coroutine_threadsafe(manager.close_all(), loop).result()
    loop.call_soon_threadsafe(loop.stop)
    backend.close_all()

if __name__ == "__main__":
    main()
