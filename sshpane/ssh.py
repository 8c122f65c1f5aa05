import os
import time
import shlex
import socket
import asyncio
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, List, Tuple
import paramiko

from sshpane.config import (
    CONNECT_TIMEOUT, KEEPALIVE_INTERVAL, BUFFER_SIZE, HEARTBEAT_INTERVAL,
    CONNECTION_TIMEOUT, COMPLETION_LIMIT, INTERACTIVE_COMMANDS,
    FILE_OPERATION_COMMANDS, config
)
from sshpane.errors import SSHConnectionError, ExecutionError, CompletionError
from sshpane.models import ExecutionResult, CompletionResult
from sshpane.utils import (
    log_error, strip_terminal_codes, split_output_lines, longest_common_prefix,
    quote_path
)

_INTERACTIVE_HINTS = {
    ("vim", "vi"): [
        "use cat/head to view a file: cat <file>",
        "create or overwrite a file with echo: echo \"text\" > <file>",
        "edit in place with sed: sed -i 's/old/new/g' <file>",
    ],
    ("nano",): [
        "use cat/head to view a file: cat <file>",
        "create or overwrite a file with echo: echo \"text\" > <file>",
    ],
    ("htop", "top"): [
        "list processes with ps: ps aux",
        "show the first few processes: ps aux | head",
    ],
    ("less", "more"): [
        "print the file with cat: cat <file>",
        "print part of it with head/tail",
    ],
    ("man",): [
        "print the manual without a pager: man -P cat <command>",
        "use the command's --help option",
    ],
    ("screen", "tmux", "byobu"): [
        "run the command in the background with nohup",
        "append & to run it in the background",
    ],
}


def is_interactive_command(command: str) -> bool:
    parts = command.strip().split()
    return bool(parts) and parts[0] in INTERACTIVE_COMMANDS


def interactive_message(command_name: str) -> str:
    for names, hints in _INTERACTIVE_HINTS.items():
        if command_name in names:
            label = "/".join(names)
            kind = "terminal multiplexers" if command_name in ("screen", "tmux", "byobu") else "interactive programs"
            lines = [f"Warning: {label} are {kind}; this terminal does not support interactive sessions."]
            lines.append("Hint: try one of these instead:")
            lines.extend(f"  - {hint}" for hint in hints)
            return "\n".join(lines)
    return f"Warning: {command_name} is an interactive program; this terminal does not support interactive sessions."


def build_cd_command(command: str, current_dir: str) -> str:
    trimmed = command.strip()
    target = trimmed[2:].strip() or "~"
    base = current_dir or "~"
    return f"cd {quote_path(base)} && cd {quote_path(target)} && pwd"


def build_normal_command(command: str, current_dir: Optional[str]) -> str:
    if not current_dir or current_dir == "~":
        return command
    return f"cd {quote_path(current_dir)} && {command}"


def is_cd_command(command: str) -> bool:
    trimmed = command.strip()
    return trimmed == "cd" or trimmed.startswith("cd ")


def parse_completion_input(text: str, current_dir: str) -> Tuple[bool, str, str, str]:
    """Split input into (is_path, remote_dir, typed_dir, prefix).

    typed_dir is the directory part exactly as the user typed it, so the
    completed input keeps relative paths relative.
    """
    parts = text.strip().split()
    if not parts:
        return False, "", "", ""
    last = parts[-1]
    is_file_op = parts[0] in FILE_OPERATION_COMMANDS
    is_path = "/" in last or last.startswith(".") or last.startswith("~") or (is_file_op and len(parts) > 1)
    if not is_path:
        return False, "", "", last

    if "/" not in last:
        return True, current_dir, "", last

    cut = last.rfind("/") + 1
    typed_dir, prefix = last[:cut], last[cut:]
    if typed_dir.startswith("/") or typed_dir.startswith("~"):
        remote_dir = typed_dir
    elif typed_dir.startswith("./"):
        remote_dir = f"{current_dir.rstrip('/')}/{typed_dir[2:]}"
    else:
        remote_dir = f"{current_dir.rstrip('/')}/{typed_dir}"
    return True, remote_dir, typed_dir, prefix


def build_completed_input(text: str, typed_dir: str, common_prefix: str) -> str:
    parts = text.strip().split()
    if not parts:
        return text
    parts[-1] = typed_dir + common_prefix
    return " ".join(parts)


def _completion_command(is_path: bool, remote_dir: str, prefix: str) -> str:
    if is_path:
        script = f"cd {quote_path(remote_dir or '~')} && ls -1d {shlex.quote(prefix)}* 2>/dev/null | head -{COMPLETION_LIMIT}"
    else:
        script = f"compgen -c {shlex.quote(prefix)} | head -{COMPLETION_LIMIT}"
    return f"bash -c {shlex.quote(script)}"


def _connect_failure_message(exc: Exception, host: str, port: int) -> str:
    text = str(exc)
    if isinstance(exc, paramiko.AuthenticationException) or "Authentication failed" in text:
        return "authentication failed, check the username, password or key"
    if isinstance(exc, ConnectionRefusedError) or "Connection refused" in text:
        return f"cannot connect to {host}:{port}, check the host address and port"
    if isinstance(exc, socket.timeout) or "timed out" in text or "timeout" in text:
        return f"connection to {host}:{port} timed out"
    if "No route to host" in text:
        return f"cannot reach {host}:{port}, check the network connection"
    return f"connection failed: {text}"


@dataclass
class SSHConnection:
    server_id: str
    host: str
    port: int
    username: str
    password: Optional[str] = None
    key_path: Optional[str] = None
    passphrase: Optional[str] = None

    client: Optional[paramiko.SSHClient] = None
    lock: threading.Lock = field(default_factory=threading.Lock)
    last_heartbeat: float = field(default_factory=time.time)

    def touch(self) -> None:
        self.last_heartbeat = time.time()

    def is_alive(self) -> bool:
        if not self.client:
            return False
        try:
            transport = self.client.get_transport()
            return bool(transport and transport.is_active())
        except Exception:
            return False

    def open(self) -> None:
        if not self.password and not self.key_path:
            raise SSHConnectionError("a password or a key path is required")

        client = paramiko.SSHClient()
        if config.SSH_VERIFY_HOST_KEY:
            client.load_system_host_keys()
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        connect_kwargs: Dict[str, Any] = {
            "hostname": self.host,
            "port": self.port,
            "username": self.username,
            "timeout": CONNECT_TIMEOUT,
            "allow_agent": True,
            "look_for_keys": True,
        }
        if self.password:
            connect_kwargs["password"] = self.password
        if self.key_path:
            if not os.path.isfile(os.path.expanduser(self.key_path)):
                client.close()
                raise SSHConnectionError(f"failed to load key file {self.key_path}, check the key path")
            connect_kwargs["key_filename"] = os.path.expanduser(self.key_path)
            if self.passphrase:
                connect_kwargs["passphrase"] = self.passphrase

        try:
            client.connect(**connect_kwargs)
        except Exception as exc:
            client.close()
            raise SSHConnectionError(_connect_failure_message(exc, self.host, self.port)) from exc

        transport = client.get_transport()
        if transport:
            transport.set_keepalive(KEEPALIVE_INTERVAL)
        self.client = client
        self.touch()

    def run(self, command: str) -> Tuple[str, int]:
        if not self.client:
            raise ExecutionError("server is not connected")
        transport = self.client.get_transport()
        if not transport or not transport.is_active():
            raise ExecutionError("failed to open channel, the connection may be closed")
        try:
            channel = transport.open_session(timeout=CONNECT_TIMEOUT)
        except Exception as exc:
            raise ExecutionError(f"failed to open channel: {exc}, the connection may be closed") from exc

        try:
            channel.set_combine_stderr(True)
            channel.exec_command(command)
            chunks: List[bytes] = []
            while True:
                chunk = channel.recv(BUFFER_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
            exit_code = channel.recv_exit_status()
        except ExecutionError:
            raise
        except Exception as exc:
            raise ExecutionError(f"failed to run command: {exc}") from exc
        finally:
            try:
                channel.close()
            except Exception:
                pass

        self.touch()
        return b"".join(chunks).decode("utf-8", errors="replace"), exit_code

    def close(self) -> None:
        try:
            if self.client:
                self.client.close()
        except Exception:
            pass
        self.client = None


class SSHBackend:
    """Connection pool keyed by server id; implements the execution,
    completion and connection services over paramiko."""

    def __init__(self, heartbeat_interval: float = HEARTBEAT_INTERVAL):
        self.connections: Dict[str, SSHConnection] = {}
        self.known: Dict[str, SSHConnection] = {}
        self.lock = threading.Lock()
        self.heartbeat_interval = heartbeat_interval

        self.health_thread_stop = threading.Event()
        self.health_thread = threading.Thread(target=self._health_loop, daemon=True)
        self.health_thread.start()

    # ---- connection service ----

    async def connect(self, server_id: str, host: str, port: int, username: str,
                      password: Optional[str] = None, key_path: Optional[str] = None,
                      passphrase: Optional[str] = None) -> Dict[str, Any]:
        return await asyncio.to_thread(
            self.connect_blocking, server_id, host, port, username, password, key_path, passphrase
        )

    async def disconnect(self, server_id: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self.disconnect_blocking, server_id)

    async def reconnect(self, server_id: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self.reconnect_blocking, server_id)

    def connect_blocking(self, server_id: str, host: str, port: int, username: str,
                         password: Optional[str] = None, key_path: Optional[str] = None,
                         passphrase: Optional[str] = None) -> Dict[str, Any]:
        with self.lock:
            if server_id in self.connections:
                raise SSHConnectionError("server is already connected")

        conn = SSHConnection(server_id, host, int(port), username, password, key_path, passphrase)
        conn.open()
        with self.lock:
            self.connections[server_id] = conn
            self.known[server_id] = conn
        log_error(f"connected {server_id} ({username}@{host}:{port})")
        return {"success": True, "connection_id": server_id, "message": "connected"}

    def disconnect_blocking(self, server_id: str) -> Dict[str, Any]:
        conn = self._drop(server_id)
        if conn is None:
            return {"success": True, "message": "already disconnected"}
        log_error(f"disconnected {server_id}")
        return {"success": True, "message": "disconnected"}

    def reconnect_blocking(self, server_id: str) -> Dict[str, Any]:
        with self.lock:
            previous = self.known.get(server_id)
        if previous is None:
            raise SSHConnectionError(f"server {server_id} was never connected")
        self._drop(server_id)
        self.connect_blocking(
            server_id, previous.host, previous.port, previous.username,
            previous.password, previous.key_path, previous.passphrase,
        )
        return {"success": True, "message": "reconnected"}

    def is_connected(self, server_id: str) -> bool:
        with self.lock:
            conn = self.connections.get(server_id)
        return bool(conn and conn.is_alive())

    def _get(self, server_id: str) -> Optional[SSHConnection]:
        with self.lock:
            return self.connections.get(server_id)

    def _drop(self, server_id: str) -> Optional[SSHConnection]:
        with self.lock:
            conn = self.connections.pop(server_id, None)
        if conn is not None:
            conn.close()
        return conn

    # ---- execution service ----

    async def execute(self, server_id: str, command: str, current_dir: Optional[str] = None) -> ExecutionResult:
        return await asyncio.to_thread(self.execute_blocking, server_id, command, current_dir)

    def execute_blocking(self, server_id: str, command: str, current_dir: Optional[str] = None) -> ExecutionResult:
        trimmed = command.strip()
        current_dir = current_dir or "~"

        if is_interactive_command(trimmed):
            message = interactive_message(trimmed.split()[0])
            return ExecutionResult(
                output="",
                exit_code=0,
                output_lines=split_output_lines(message),
                is_interactive=True,
                interactive_message=message,
            )

        is_cd = is_cd_command(trimmed)
        script = build_cd_command(trimmed, current_dir) if is_cd else build_normal_command(trimmed, current_dir)

        conn = self._get(server_id)
        if conn is None:
            raise ExecutionError("server is not connected")
        try:
            with conn.lock:
                raw, exit_code = conn.run(f"bash -c {shlex.quote(script)}")
        except ExecutionError:
            if not conn.is_alive():
                self._drop(server_id)
            raise

        output = strip_terminal_codes(raw)
        new_dir = None
        if is_cd and exit_code == 0:
            # cd - and CDPATH hits print the target before pwd does
            printed = [line.strip() for line in output.splitlines() if line.strip()]
            new_dir = printed[-1] if printed else None
        return ExecutionResult(
            output=output,
            exit_code=exit_code,
            output_lines=split_output_lines(output),
            new_dir=new_dir or None,
        )

    # ---- completion service ----

    async def complete(self, server_id: str, input: str, current_dir: str) -> CompletionResult:
        return await asyncio.to_thread(self.complete_blocking, server_id, input, current_dir)

    def complete_blocking(self, server_id: str, text: str, current_dir: str) -> CompletionResult:
        is_path, remote_dir, typed_dir, prefix = parse_completion_input(text, current_dir or "~")
        if not prefix:
            return CompletionResult()

        conn = self._get(server_id)
        if conn is None:
            raise CompletionError("server is not connected")
        try:
            with conn.lock:
                raw, exit_code = conn.run(_completion_command(is_path, remote_dir, prefix))
        except ExecutionError as exc:
            raise CompletionError(str(exc)) from exc
        if exit_code != 0:
            return CompletionResult()

        candidates = [line.strip() for line in strip_terminal_codes(raw).splitlines() if line.strip()]
        if is_path:
            candidates = [c.rstrip("/").rsplit("/", 1)[-1] for c in candidates]
        matches = sorted({c for c in candidates if c.startswith(prefix)})
        if not matches:
            return CompletionResult()

        common = longest_common_prefix(matches)
        if len(matches) == 1 or len(common) > len(prefix):
            return CompletionResult(completed_input=build_completed_input(text, typed_dir, common))
        return CompletionResult(matches=matches, should_show_matches=True)

    # ---- heartbeat ----

    def _heartbeat(self, conn: SSHConnection) -> bool:
        try:
            with conn.lock:
                conn.run("echo -n")
            return True
        except Exception:
            return False

    def check_connections(self) -> List[str]:
        with self.lock:
            snapshot = list(self.connections.values())
        dropped = []
        for conn in snapshot:
            if conn.lock.locked():
                # a command is running on it right now
                continue
            if time.time() - conn.last_heartbeat > CONNECTION_TIMEOUT:
                log_error(f"connection {conn.server_id} timed out, closing")
            elif self._heartbeat(conn):
                continue
            else:
                log_error(f"heartbeat failed for {conn.server_id}, closing")
            self._drop(conn.server_id)
            dropped.append(conn.server_id)
        return dropped

    def _health_loop(self) -> None:
        while not self.health_thread_stop.wait(self.heartbeat_interval):
            try:
                self.check_connections()
            except Exception as exc:
                log_error(f"health loop error: {exc}")

    def close_all(self) -> None:
        self.health_thread_stop.set()
        with self.lock:
            server_ids = list(self.connections.keys())
        for server_id in server_ids:
            self._drop(server_id)
