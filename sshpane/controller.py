from enum import Enum
from typing import Any, Callable, Dict, Optional

from sshpane.completion import CompletionDispatcher
from sshpane.config import OUTPUT_MAX_LINES, WARNING_MARKER, DEFAULT_ERROR_MESSAGE
from sshpane.events import EventEmitter, Listener, Subscription
from sshpane.history import HistoryNavigator
from sshpane.models import CompletionService, ExecutionResult, ExecutionService, SessionContext
from sshpane.output import OutputBuffer, OutputKind
from sshpane.prompt import PromptState
from sshpane.utils import log_error, error_message

Recorder = Callable[[Dict[str, str]], None]


class DispatchState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"


class SessionController:
    """State machine between one pane's keystrokes and the execution service.

    Owns the pane's prompt, history and scrollback; the rendering layer reads
    them and listens through subscribe(). One command is in flight at a time.
    """

    def __init__(
        self,
        context: SessionContext,
        execution: ExecutionService,
        completion: Optional[CompletionService] = None,
        recorder: Optional[Recorder] = None,
        max_lines: int = OUTPUT_MAX_LINES,
    ):
        self.context = context
        self.execution = execution
        self.recorder = recorder

        self.prompt = PromptState()
        self.history = HistoryNavigator()
        self.output = OutputBuffer(max_lines)
        self.completion = CompletionDispatcher(completion, self.set_input, self._show_matches)

        self.state = DispatchState.IDLE
        self.input = ""
        self._events = EventEmitter()

    # ---- observation ----

    def subscribe(self, listener: Listener) -> Subscription:
        return self._events.subscribe(listener)

    @property
    def prompt_text(self) -> str:
        return self.prompt.render()

    @property
    def busy(self) -> bool:
        return self.state is DispatchState.DISPATCHING

    def snapshot(self) -> Dict[str, Any]:
        return {
            "server_id": self.context.server_id,
            "name": self.context.display_name,
            "connected": self.context.connected,
            "state": self.state.value,
            "input": self.input,
            "prompt": self.prompt.to_dict(),
            "history_size": len(self.history),
            "dropped_lines": self.output.dropped,
            "lines": [line.to_dict() for line in self.output.lines()],
        }

    # ---- connection lifecycle ----

    async def on_connected(self) -> None:
        # Submissions wait out the probes so pwd cannot clobber a fresh cd
        self._set_state(DispatchState.DISPATCHING)
        try:
            await self.prompt.refresh_identity(self.execution.execute, self.context)
        finally:
            self._set_state(DispatchState.IDLE)
        self._events.emit("prompt", self.prompt.to_dict())

    def on_disconnected(self) -> None:
        self.prompt.reset()
        self._events.emit("prompt", self.prompt.to_dict())

    # ---- edit buffer ----

    def set_input(self, text: str) -> None:
        self.input = text or ""
        self._events.emit("input", self.input)

    def history_up(self) -> str:
        self.set_input(self.history.up(self.input))
        return self.input

    def history_down(self) -> str:
        self.set_input(self.history.down())
        return self.input

    async def complete(self) -> None:
        await self.completion.request(self.context.server_id, self.input, self.prompt.full_dir)

    def clear(self) -> None:
        self.output.clear()
        self._events.emit("clear")

    # ---- dispatch ----

    async def submit(self, text: Optional[str] = None) -> bool:
        """Dispatch the edit buffer (or text). Returns False when ignored
        because another command is still in flight."""
        if self.busy:
            log_error(f"{self.context.display_name}: submission ignored, command still running")
            return False

        command = (self.input if text is None else text).strip()
        prompt_text = self.prompt_text
        if not command:
            self._append(OutputKind.INPUT, "", prompt_text)
            self.set_input("")
            return True

        self._record("input", command)
        self.history.submit(command)
        self._append(OutputKind.INPUT, command, prompt_text)
        self.set_input("")
        self._set_state(DispatchState.DISPATCHING)
        try:
            result = await self.execution.execute(self.context.server_id, command, self.prompt.full_dir)
            self._apply_result(result)
        except Exception as exc:
            self._show_failure(exc)
        finally:
            self._set_state(DispatchState.IDLE)
        return True

    def _apply_result(self, result: ExecutionResult) -> None:
        if result.is_interactive and result.interactive_message:
            for line in result.output_lines:
                kind = OutputKind.ERROR if line.startswith(WARNING_MARKER) else OutputKind.OUTPUT
                self._append(kind, line)
            return

        if result.new_dir:
            self.prompt.update_location(result.new_dir)
            self._events.emit("prompt", self.prompt.to_dict())
            # The pwd probe behind cd stays hidden
            self._append(OutputKind.OUTPUT, "")
            return

        self._record("output", result.output)
        kind = OutputKind.ERROR if result.exit_code != 0 else OutputKind.OUTPUT
        for line in result.output_lines:
            self._append(kind, line)

    def _show_failure(self, exc: BaseException) -> None:
        message = error_message(exc, DEFAULT_ERROR_MESSAGE)
        name = self.context.display_name
        log_error(f"{name}: execution failed: {message}")
        for segment in message.split("\n"):
            if segment:
                self._append(OutputKind.ERROR, f"{name}: {segment}")
            else:
                self._append(OutputKind.ERROR, "")

    def _show_matches(self, text: str) -> None:
        self._append(OutputKind.OUTPUT, text)

    def _append(self, kind: OutputKind, content: str, prompt_text: str = "") -> None:
        line = self.output.append(kind, content, prompt_text)
        self._events.emit("output", line.to_dict())

    def _set_state(self, state: DispatchState) -> None:
        self.state = state
        self._events.emit("state", state.value)

    def _record(self, event_type: str, content: str) -> None:
        if self.recorder is None:
            return
        try:
            self.recorder({"type": event_type, "content": content})
        except Exception as exc:
            log_error(f"{self.context.display_name}: recorder error: {exc}")
