from typing import Any, Dict, Optional
from sshpane.config import config
from sshpane.errors import SSHConnectionError
from sshpane.panes import PaneManager
from sshpane.shortcuts import KeyEvent
from sshpane.utils import log_error, to_bool, clamp_int, error_message

SERVER_INFO = {"name": "ssh-pane", "version": "1.0.0"}

ERROR_CONNECTION = -32000
ERROR_INVALID_PARAMS = -32602
ERROR_UNKNOWN_METHOD = -32601
ERROR_INTERNAL = -32603

def make_response(req_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": req_id, "result": result}

def make_error(req_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}}

def make_notification(method: str, params: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "method": method, "params": params}

def _pane_id(params: Dict[str, Any]) -> str:
    pane_id = params.get("pane_id")
    if not pane_id:
        raise ValueError("pane_id is required")
    return str(pane_id)

def open_dispatch(params: Dict[str, Any], manager: PaneManager) -> Dict[str, Any]:
    host = params.get("host") or config.SSH_HOST
    if not host:
        raise ValueError("host is required")
    pane = manager.open_pane(
        pane_id=_pane_id(params),
        host=host,
        port=clamp_int(params.get("port", config.SSH_PORT), 22, 1, 65535),
        username=params.get("username") or config.SSH_USER or "",
        name=params.get("name") or config.PANE_NAME,
        password=params.get("password") or config.SSH_PASSWORD,
        key_path=params.get("key_path") or config.SSH_KEY_PATH,
        passphrase=params.get("passphrase") or config.SSH_KEY_PASSPHRASE,
        record=to_bool(params["record"]) if "record" in params else None,
    )
    return {"success": True, "pane": pane.info(), "state": pane.controller.snapshot()}

async def key_dispatch(params: Dict[str, Any], manager: PaneManager) -> Dict[str, Any]:
    pane_id = _pane_id(params)
    if "input" in params:
        manager.get(pane_id).controller.set_input(str(params.get("input") or ""))
    event = KeyEvent.from_dict(params)
    if not event.key:
        raise ValueError("key is required")
    handled = await manager.key(pane_id, event)
    return {
        "success": True,
        "handled": handled,
        "prevent_default": event.default_prevented,
        "state": manager.get(pane_id).controller.snapshot(),
    }

async def submit_dispatch(params: Dict[str, Any], manager: PaneManager) -> Dict[str, Any]:
    controller = manager.get(_pane_id(params)).controller
    text = params.get("text")
    accepted = await controller.submit(None if text is None else str(text))
    return {"success": True, "accepted": accepted, "state": controller.snapshot()}

def history_dispatch(params: Dict[str, Any], manager: PaneManager) -> Dict[str, Any]:
    controller = manager.get(_pane_id(params)).controller
    direction = (params.get("direction") or "up").strip().lower()
    if direction == "up":
        controller.history_up()
    elif direction == "down":
        controller.history_down()
    else:
        raise ValueError("direction must be one of: up, down")
    return {"success": True, "input": controller.input}

async def handle_request(request: Dict[str, Any], manager: PaneManager) -> Optional[Dict[str, Any]]:
    method = request.get("method")
    params = request.get("params", {}) or {}
    req_id = request.get("id", 1)

    if method == "initialize":
        return make_response(req_id, {"serverInfo": SERVER_INFO, "panes": manager.list_panes()})
    if method == "notifications/initialized":
        return None

    try:
        if method == "pane/open":
            result = open_dispatch(params, manager)
        elif method == "pane/close":
            await manager.close_pane(_pane_id(params))
            result = {"success": True, "message": "pane closed"}
        elif method == "pane/list":
            result = {"success": True, "panes": manager.list_panes()}
        elif method == "pane/connect":
            result = await manager.connect(_pane_id(params))
        elif method == "pane/disconnect":
            result = await manager.disconnect(_pane_id(params))
        elif method == "pane/reconnect":
            result = await manager.reconnect(_pane_id(params))
        elif method == "pane/input":
            controller = manager.get(_pane_id(params)).controller
            controller.set_input(str(params.get("text") or ""))
            result = {"success": True, "input": controller.input}
        elif method == "pane/key":
            result = await key_dispatch(params, manager)
        elif method == "pane/submit":
            result = await submit_dispatch(params, manager)
        elif method == "pane/complete":
            controller = manager.get(_pane_id(params)).controller
            if "text" in params:
                controller.set_input(str(params.get("text") or ""))
            await controller.complete()
            result = {"success": True, "input": controller.input}
        elif method == "pane/history":
            result = history_dispatch(params, manager)
        elif method == "pane/clear":
            manager.get(_pane_id(params)).controller.clear()
            result = {"success": True}
        elif method == "pane/state":
            result = {"success": True, "state": manager.get(_pane_id(params)).controller.snapshot()}
        else:
            return make_error(req_id, ERROR_UNKNOWN_METHOD, f"Unknown method: {method}")
        return make_response(req_id, result)
    except SSHConnectionError as exc:
        return make_error(req_id, ERROR_CONNECTION, error_message(exc, "connection failed"))
    except (KeyError, ValueError) as exc:
        message = exc.args[0] if exc.args else str(exc)
        return make_error(req_id, ERROR_INVALID_PARAMS, str(message))
    except Exception as exc:
        log_error(f"request error ({method}): {exc}")
        return make_error(req_id, ERROR_INTERNAL, f"Internal error: {exc}")
