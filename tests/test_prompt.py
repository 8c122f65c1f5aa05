import pytest

from sshpane.errors import ExecutionError
from sshpane.models import SessionContext
from sshpane.prompt import PromptState
from tests.fakes import FakeExecution, identity, ok


def test_idle_prompt():
    prompt = PromptState()
    assert prompt.render() == "$ "
    assert prompt.display_dir == "~"


def test_update_location_keeps_display_in_sync():
    prompt = PromptState()
    prompt.username, prompt.hostname = "alice", "box"
    prompt.update_location("  /home/alice/src \n")
    assert prompt.full_dir == "/home/alice/src"
    assert prompt.display_dir == "~/src"
    assert prompt.render() == "alice@box:~/src$ "

    prompt.update_location("")
    assert prompt.full_dir == "~"
    assert prompt.display_dir == "~"


def test_root_prompt_uses_hash_and_full_path():
    prompt = PromptState()
    prompt.username, prompt.hostname, prompt.is_root = "root", "box", True
    prompt.update_location("/root")
    assert prompt.render() == "root@box:/root# "


def test_reset_restores_idle_defaults():
    prompt = PromptState()
    prompt.username, prompt.hostname, prompt.is_root = "root", "box", True
    prompt.update_location("/etc")
    prompt.reset()
    assert (prompt.username, prompt.hostname, prompt.is_root) == ("", "", False)
    assert prompt.display_dir == "~"
    assert prompt.render() == "$ "


@pytest.mark.asyncio
async def test_refresh_identity_probes_in_order(context):
    execution = FakeExecution(identity("alice", "web-01", "1000", "/home/alice/app"))
    prompt = PromptState()
    await prompt.refresh_identity(execution.execute, context)

    assert [call[1] for call in execution.calls] == ["whoami", "hostname", "id -u", "pwd"]
    assert prompt.render() == "alice@web-01:~/app$ "
    assert prompt.is_root is False


@pytest.mark.asyncio
async def test_refresh_identity_detects_root_by_uid(context):
    execution = FakeExecution(identity("toor", "db", "0", "/srv"))
    prompt = PromptState()
    await prompt.refresh_identity(execution.execute, context)
    assert prompt.is_root is True
    assert prompt.render() == "toor@db:/srv# "


@pytest.mark.asyncio
async def test_refresh_identity_detects_root_by_name_when_uid_fails(context):
    responses = identity("root", "db", "0", "/root")
    responses["id -u"] = ExecutionError("channel closed")
    execution = FakeExecution(responses)
    prompt = PromptState()
    await prompt.refresh_identity(execution.execute, context)
    assert prompt.is_root is True
    assert prompt.display_dir == "/root"


@pytest.mark.asyncio
async def test_refresh_identity_falls_back_to_context(context):
    execution = FakeExecution({
        "whoami": ExecutionError("timeout"),
        "hostname": ok("", exit_code=1),
        "id -u": RuntimeError("boom"),
    })
    prompt = PromptState()
    await prompt.refresh_identity(execution.execute, context)

    assert prompt.username == "alice"
    assert prompt.hostname == "10.0.0.5"
    assert prompt.is_root is False
    assert prompt.full_dir == "~"
    assert prompt.render() == "alice@10.0.0.5:~$ "


@pytest.mark.asyncio
async def test_refresh_identity_without_context_username():
    ctx = SessionContext(server_id="s", host="h")
    prompt = PromptState()
    await prompt.refresh_identity(FakeExecution().execute, ctx)
    assert prompt.render() == "$ "
    assert prompt.hostname == "h"
    assert prompt.full_dir == "~"


@pytest.mark.asyncio
async def test_known_host_and_dir_without_user_still_render_idle_prompt():
    ctx = SessionContext(server_id="s", host="h")
    responses = identity("", "web", "1000", "/srv/app")
    prompt = PromptState()
    await prompt.refresh_identity(FakeExecution(responses).execute, ctx)
    assert prompt.hostname == "web"
    assert prompt.full_dir == "/srv/app"
    assert prompt.render() == "$ "
