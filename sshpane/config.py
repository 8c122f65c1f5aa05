import os
import re
from typing import Optional, Dict

# ========= Static config =========
CONNECT_TIMEOUT = 10
KEEPALIVE_INTERVAL = 30
BUFFER_SIZE = 4096
HEARTBEAT_INTERVAL = 30
CONNECTION_TIMEOUT = 300

OUTPUT_MAX_LINES = 5000
COMPLETION_LIMIT = 50

WARNING_MARKER = "Warning:"
DEFAULT_ERROR_MESSAGE = "command execution failed"

# First word of commands that need a real tty; never executed, answered with a hint
INTERACTIVE_COMMANDS = frozenset({
    "vim", "vi", "nano", "emacs", "htop", "top", "less", "more", "man",
    "screen", "tmux", "byobu", "mc", "ranger", "ncdu", "glances",
    "watch", "dialog", "whiptail", "fzf", "lesspipe",
})

# Arguments of these commands complete as paths
FILE_OPERATION_COMMANDS = frozenset({
    "cd", "ls", "cat", "less", "more", "head", "tail", "grep", "find",
    "rm", "rmdir", "mkdir", "touch", "cp", "mv", "chmod", "chown",
    "vi", "vim", "nano", "pwd", "open", "file", "stat", "readlink",
})

# ========= Output cleanup =========
ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

# ========= Runtime Configuration =========
class PaneConfig:
    def __init__(self):
        self.SSH_HOST: Optional[str] = None
        self.SSH_USER: Optional[str] = None
        self.SSH_PASSWORD: Optional[str] = None
        self.SSH_PORT: int = 22
        self.SSH_KEY_PATH: Optional[str] = None
        self.SSH_KEY_PASSPHRASE: Optional[str] = None
        self.SSH_VERIFY_HOST_KEY: bool = True
        self.PANE_NAME: str = ""
        self.MAX_LINES: int = OUTPUT_MAX_LINES
        self.RECORD: bool = False
        self.PROJECT_ROOT: str = ""
        self.PROJECT_TAG: str = ""
        self.CACHE_DIRS: Dict[str, str] = {}

    def load_from_env(self):
        self.SSH_HOST = os.environ.get("SSH_HOST", self.SSH_HOST)
        self.SSH_USER = os.environ.get("SSH_USER", self.SSH_USER)
        self.SSH_PASSWORD = os.environ.get("SSH_PASSWORD", self.SSH_PASSWORD)
        self.SSH_PORT = int(os.environ.get("SSH_PORT", self.SSH_PORT))
        self.SSH_KEY_PATH = os.environ.get("SSH_KEY_PATH", self.SSH_KEY_PATH)
        self.SSH_KEY_PASSPHRASE = os.environ.get("SSH_KEY_PASSPHRASE", self.SSH_KEY_PASSPHRASE)
        self.PANE_NAME = os.environ.get("SSH_PANE_NAME", self.PANE_NAME)
        self.MAX_LINES = int(os.environ.get("SSH_PANE_MAX_LINES", self.MAX_LINES))

        verify_host_env = os.environ.get("SSH_VERIFY_HOST_KEY")
        if verify_host_env is not None:
            self.SSH_VERIFY_HOST_KEY = verify_host_env.lower() in ("true", "1", "yes")

        record_env = os.environ.get("SSH_PANE_RECORD")
        if record_env is not None:
            self.RECORD = record_env.lower() in ("true", "1", "yes")

# Global instance
config = PaneConfig()
