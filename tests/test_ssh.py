from unittest.mock import MagicMock

import pytest

from sshpane.errors import CompletionError, ExecutionError, SSHConnectionError
from sshpane.ssh import (
    SSHBackend,
    SSHConnection,
    build_cd_command,
    build_completed_input,
    build_normal_command,
    interactive_message,
    is_cd_command,
    is_interactive_command,
    parse_completion_input,
)


@pytest.fixture
def backend():
    backend = SSHBackend(heartbeat_interval=3600)
    yield backend
    backend.close_all()


def fake_connection(backend, server_id="srv", outputs=None):
    conn = SSHConnection(server_id, "host", 22, "alice", password="pw")
    conn.run = MagicMock(side_effect=outputs or [("", 0)])
    conn.is_alive = MagicMock(return_value=True)
    backend.connections[server_id] = conn
    backend.known[server_id] = conn
    return conn


@pytest.mark.parametrize("command,expected", [
    ("vim notes.txt", True),
    ("  top", True),
    ("tmux attach", True),
    ("ls -la", False),
    ("vimdiff a b", False),
    ("", False),
])
def test_interactive_detection(command, expected):
    assert is_interactive_command(command) is expected


def test_interactive_message_starts_with_warning():
    lines = interactive_message("vim").split("\n")
    assert lines[0].startswith("Warning:")
    assert "vim/vi" in lines[0]
    assert lines[1].startswith("Hint:")
    assert interactive_message("fzf").startswith("Warning: fzf ")


def test_cd_commands():
    assert is_cd_command("cd")
    assert is_cd_command("cd /tmp")
    assert not is_cd_command("cdrecord")
    assert build_cd_command("cd", "/srv") == "cd /srv && cd ~ && pwd"
    assert build_cd_command("cd ~/my dir", "~") == "cd ~ && cd ~/'my dir' && pwd"
    assert build_cd_command("cd ..", "/var/log") == "cd /var/log && cd .. && pwd"


def test_normal_commands_run_in_current_dir():
    assert build_normal_command("ls", "~") == "ls"
    assert build_normal_command("ls", "") == "ls"
    assert build_normal_command("ls", "/opt/my app") == "cd '/opt/my app' && ls"


def test_parse_completion_input():
    assert parse_completion_input("gi", "/w") == (False, "", "", "gi")
    assert parse_completion_input("cat REA", "/w") == (True, "/w", "", "REA")
    assert parse_completion_input("vim ./src/ma", "/w") == (True, "/w/src/", "./src/", "ma")
    assert parse_completion_input("ls src/ma", "/w/") == (True, "/w/src/", "src/", "ma")
    assert parse_completion_input("ls /etc/ho", "/w") == (True, "/etc/", "/etc/", "ho")
    assert parse_completion_input("   ", "/w") == (False, "", "", "")


def test_build_completed_input_keeps_typed_dir():
    assert build_completed_input("vim ./src/ma", "./src/", "main.py") == "vim ./src/main.py"
    assert build_completed_input("gi", "", "git") == "git"


def test_execute_interactive_skips_remote(backend):
    result = backend.execute_blocking("missing", "nano file", "/tmp")
    assert result.is_interactive
    assert result.interactive_message.startswith("Warning:")
    assert result.output_lines == result.interactive_message.split("\n")
    assert result.new_dir is None


def test_execute_without_connection_raises(backend):
    with pytest.raises(ExecutionError, match="not connected"):
        backend.execute_blocking("missing", "ls", "~")


def test_execute_cd_reports_new_dir(backend):
    conn = fake_connection(backend, outputs=[("/tmp\n", 0)])
    result = backend.execute_blocking("srv", "cd /tmp", "/home/alice")
    assert result.new_dir == "/tmp"
    sent = conn.run.call_args[0][0]
    assert sent.startswith("bash -c ")
    assert "cd /home/alice && cd /tmp && pwd" in sent


def test_execute_cd_dash_takes_pwd_line_as_new_dir(backend):
    fake_connection(backend, outputs=[("/home/alice\n/home/alice\n", 0)])
    result = backend.execute_blocking("srv", "cd -", "/tmp")
    assert result.new_dir == "/home/alice"


def test_execute_failed_cd_has_no_new_dir(backend):
    fake_connection(backend, outputs=[("bash: cd: /nope: No such file or directory\n", 1)])
    result = backend.execute_blocking("srv", "cd /nope", "~")
    assert result.new_dir is None
    assert result.exit_code == 1
    assert result.output_lines == ["bash: cd: /nope: No such file or directory"]


def test_execute_strips_ansi_and_trailing_blank(backend):
    fake_connection(backend, outputs=[("\x1b[32mok\x1b[0m\r\nnext\n", 0)])
    result = backend.execute_blocking("srv", "ls", "~")
    assert result.output_lines == ["ok", "next"]
    assert result.new_dir is None


def test_execute_empty_output_is_single_blank_line(backend):
    fake_connection(backend, outputs=[("", 0)])
    assert backend.execute_blocking("srv", "true", "~").output_lines == [""]


def test_execute_drops_dead_connection(backend):
    conn = fake_connection(backend)
    conn.run.side_effect = ExecutionError("failed to open channel")
    conn.is_alive.return_value = False
    with pytest.raises(ExecutionError):
        backend.execute_blocking("srv", "ls", "~")
    assert "srv" not in backend.connections


def test_complete_unique_command(backend):
    fake_connection(backend, outputs=[("git\n", 0)])
    result = backend.complete_blocking("srv", "gi", "~")
    assert result.completed_input == "git"
    assert result.matches == []


def test_complete_common_prefix(backend):
    fake_connection(backend, outputs=[("README.md\nREADME.rst\n", 0)])
    result = backend.complete_blocking("srv", "cat RE", "/w")
    assert result.completed_input == "cat README."


def test_complete_lists_ambiguous_matches(backend):
    fake_connection(backend, outputs=[("gzip\ngit\ngit\ngitk\n", 0)])
    result = backend.complete_blocking("srv", "g", "~")
    assert result.completed_input is None
    assert result.matches == ["git", "gitk", "gzip"]
    assert result.should_show_matches


def test_complete_path_strips_directories(backend):
    fake_connection(backend, outputs=[("/etc/hostname\n/etc/hosts\n", 0)])
    result = backend.complete_blocking("srv", "cat /etc/ho", "~")
    assert result.completed_input == "cat /etc/host"


def test_complete_nonzero_exit_is_empty(backend):
    fake_connection(backend, outputs=[("", 1)])
    result = backend.complete_blocking("srv", "zz", "~")
    assert result.completed_input is None and result.matches == []


def test_complete_without_connection_raises(backend):
    with pytest.raises(CompletionError):
        backend.complete_blocking("missing", "ls", "~")


def test_connect_twice_is_rejected(backend):
    fake_connection(backend)
    with pytest.raises(SSHConnectionError, match="already connected"):
        backend.connect_blocking("srv", "host", 22, "alice", password="pw")


def test_connect_requires_credentials(backend):
    with pytest.raises(SSHConnectionError, match="password or a key"):
        backend.connect_blocking("new", "host", 22, "alice")
    assert "new" not in backend.connections


def test_disconnect_is_idempotent(backend):
    fake_connection(backend)
    assert backend.disconnect_blocking("srv")["message"] == "disconnected"
    assert backend.disconnect_blocking("srv")["message"] == "already disconnected"


def test_reconnect_unknown_server(backend):
    with pytest.raises(SSHConnectionError, match="never connected"):
        backend.reconnect_blocking("ghost")


def test_heartbeat_failure_drops_connection(backend):
    conn = fake_connection(backend)
    conn.run.side_effect = ExecutionError("gone")
    assert backend.check_connections() == ["srv"]
    assert "srv" not in backend.connections


def test_heartbeat_success_keeps_connection(backend):
    fake_connection(backend, outputs=[("", 0)])
    assert backend.check_connections() == []
    assert "srv" in backend.connections
