import pytest

from sshpane.controller import SessionController
from sshpane.models import SessionContext
from tests.fakes import FakeExecution


@pytest.fixture
def context() -> SessionContext:
    return SessionContext(server_id="srv-1", host="10.0.0.5", port=22, username="alice", connected=True)


@pytest.fixture
def make_controller(context):
    def _make(responses=None, completion=None, recorder=None, max_lines=5000, ctx=None):
        execution = FakeExecution(responses)
        controller = SessionController(
            ctx or context, execution, completion=completion, recorder=recorder, max_lines=max_lines,
        )
        return controller, execution
    return _make
