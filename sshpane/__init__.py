from sshpane.controller import SessionController, DispatchState
from sshpane.models import SessionContext, ExecutionResult, CompletionResult
from sshpane.output import OutputKind, OutputLine, OutputBuffer

__all__ = [
    "SessionController",
    "DispatchState",
    "SessionContext",
    "ExecutionResult",
    "CompletionResult",
    "OutputKind",
    "OutputLine",
    "OutputBuffer",
]
