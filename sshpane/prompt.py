from typing import Awaitable, Callable, Optional

from sshpane.directory import normalize_directory
from sshpane.errors import PromptInfoError
from sshpane.models import ExecutionResult, SessionContext
from sshpane.utils import log_error, error_message

Execute = Callable[[str, str, Optional[str]], Awaitable[ExecutionResult]]


class PromptState:
    def __init__(self):
        self.username = ""
        self.hostname = ""
        self.is_root = False
        self.full_dir = "~"
        self.display_dir = "~"

    @property
    def symbol(self) -> str:
        return "#" if self.is_root else "$"

    def render(self) -> str:
        # No user means no identity yet, even if host and dir are known
        if not self.username:
            return f"{self.symbol} "
        return f"{self.username}@{self.hostname}:{self.display_dir}{self.symbol} "

    def update_location(self, full_path: str) -> None:
        self.full_dir = (full_path or "").strip() or "~"
        self.display_dir = normalize_directory(self.full_dir, self.username, self.is_root)

    def reset(self) -> None:
        self.username = ""
        self.hostname = ""
        self.is_root = False
        self.full_dir = "~"
        self.display_dir = "~"

    async def refresh_identity(self, execute: Execute, context: SessionContext) -> None:
        """Probe user, host, root flag and working directory, in that order.

        Every probe falls back to a context-derived default on failure, so the
        prompt is always renderable afterwards.
        """
        self.username = await _probe(execute, context, "whoami") or context.username
        self.hostname = await _probe(execute, context, "hostname") or context.host

        uid = await _probe(execute, context, "id -u")
        self.is_root = uid == "0" or self.username == "root"

        self.update_location(await _probe(execute, context, "pwd") or "~")

    def to_dict(self):
        return {
            "username": self.username,
            "hostname": self.hostname,
            "is_root": self.is_root,
            "full_dir": self.full_dir,
            "display_dir": self.display_dir,
            "prompt": self.render(),
        }


async def _probe(execute: Execute, context: SessionContext, command: str) -> str:
    try:
        result = await execute(context.server_id, command, None)
        value = (result.output or "").strip()
        if result.exit_code != 0 or not value:
            raise PromptInfoError(f"{command} returned exit code {result.exit_code} and output {value!r}")
        return value.splitlines()[0].strip()
    except Exception as exc:
        log_error(f"prompt probe '{command}' failed on {context.display_name}: {error_message(exc)}")
        return ""
