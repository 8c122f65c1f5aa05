from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


@dataclass
class SessionContext:
    server_id: str
    host: str
    port: int = 22
    username: str = ""
    name: str = ""
    connected: bool = False

    @property
    def display_name(self) -> str:
        return self.name or f"{self.host}:{self.port}"


@dataclass
class ExecutionResult:
    output: str = ""
    exit_code: int = 0
    output_lines: List[str] = field(default_factory=list)
    is_interactive: bool = False
    interactive_message: Optional[str] = None
    new_dir: Optional[str] = None


@dataclass
class CompletionResult:
    completed_input: Optional[str] = None
    matches: List[str] = field(default_factory=list)
    should_show_matches: bool = False


class ExecutionService(Protocol):
    async def execute(self, server_id: str, command: str, current_dir: Optional[str]) -> ExecutionResult:
        ...


class CompletionService(Protocol):
    async def complete(self, server_id: str, input: str, current_dir: str) -> CompletionResult:
        ...


class ConnectionService(Protocol):
    async def connect(self, server_id: str, host: str, port: int, username: str,
                      password: Optional[str] = None, key_path: Optional[str] = None,
                      passphrase: Optional[str] = None) -> Dict[str, Any]:
        ...

    async def disconnect(self, server_id: str) -> Dict[str, Any]:
        ...

    async def reconnect(self, server_id: str) -> Dict[str, Any]:
        ...


class PaneBackend(ConnectionService, ExecutionService, CompletionService, Protocol):
    """Everything a pane needs from one backend."""
