from unittest.mock import AsyncMock

import pytest

from sshpane.errors import CompletionError
from sshpane.models import CompletionResult
from sshpane.output import OutputKind
from tests.fakes import FakeCompletion


@pytest.mark.asyncio
async def test_blank_input_is_a_noop(make_controller):
    completion = FakeCompletion(CompletionResult(completed_input="ls"))
    controller, _ = make_controller(completion=completion)
    controller.set_input("  ")
    await controller.complete()
    assert completion.calls == []
    assert controller.input == "  "


@pytest.mark.asyncio
async def test_completed_input_wins_over_matches(make_controller):
    completion = FakeCompletion(
        CompletionResult(completed_input="cat README.md", matches=["README.md", "README.rst"], should_show_matches=True)
    )
    controller, _ = make_controller(completion=completion)
    controller.prompt.update_location("/home/alice/repo")
    controller.set_input("cat READ")

    await controller.complete()

    assert controller.input == "cat README.md"
    assert len(controller.output) == 0
    assert completion.calls == [("srv-1", "cat READ", "/home/alice/repo")]


@pytest.mark.asyncio
async def test_empty_completed_input_still_replaces_buffer(make_controller):
    controller, _ = make_controller(completion=FakeCompletion(CompletionResult(completed_input="")))
    controller.set_input("xyz")
    await controller.complete()
    assert controller.input == ""


@pytest.mark.asyncio
async def test_matches_are_listed_on_one_line(make_controller):
    completion = FakeCompletion(CompletionResult(matches=["git", "gitk", "gzip"], should_show_matches=True))
    controller, _ = make_controller(completion=completion)
    controller.set_input("g")

    await controller.complete()

    lines = controller.output.lines()
    assert [(line.kind, line.content) for line in lines] == [(OutputKind.OUTPUT, "git  gitk  gzip")]
    assert controller.input == "g"


@pytest.mark.asyncio
async def test_matches_hidden_when_not_requested(make_controller):
    completion = FakeCompletion(CompletionResult(matches=["a", "b"], should_show_matches=False))
    controller, _ = make_controller(completion=completion)
    controller.set_input("x")
    await controller.complete()
    assert len(controller.output) == 0
    assert controller.input == "x"


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [CompletionError("not connected"), RuntimeError("socket closed")])
async def test_errors_are_swallowed(make_controller, error):
    controller, _ = make_controller(completion=FakeCompletion(error))
    controller.set_input("ls /et")
    await controller.complete()
    assert controller.input == "ls /et"
    assert len(controller.output) == 0


@pytest.mark.asyncio
async def test_dispatcher_returns_result(make_controller):
    service = AsyncMock()
    service.complete.return_value = CompletionResult(completed_input="echo")
    controller, _ = make_controller(completion=service)
    result = await controller.completion.request("srv-1", "ec", "~")
    assert result.completed_input == "echo"
    service.complete.assert_awaited_once_with("srv-1", "ec", "~")


@pytest.mark.asyncio
async def test_without_service_nothing_happens(make_controller):
    controller, _ = make_controller()
    controller.set_input("ls")
    await controller.complete()
    assert controller.input == "ls"
