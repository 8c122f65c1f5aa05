import inspect
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sshpane.config import config
from sshpane.controller import SessionController
from sshpane.errors import SSHConnectionError
from sshpane.events import Subscription
from sshpane.models import PaneBackend, SessionContext
from sshpane.notify import Notifier
from sshpane.recorder import SessionRecorder
from sshpane.shortcuts import KeyEvent, ShortcutHandle, ShortcutRegistry
from sshpane.utils import log_error, error_message

ChangeSink = Callable[[str, str, Any], None]


@dataclass
class Credentials:
    password: Optional[str] = None
    key_path: Optional[str] = None
    passphrase: Optional[str] = None


@dataclass
class Pane:
    id: str
    controller: SessionController
    credentials: Credentials
    shortcuts: ShortcutRegistry = field(default_factory=ShortcutRegistry)
    handles: List[ShortcutHandle] = field(default_factory=list)
    subscription: Optional[Subscription] = None
    recorder: Optional[SessionRecorder] = None

    @property
    def context(self) -> SessionContext:
        return self.controller.context

    def info(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.context.display_name,
            "host": self.context.host,
            "port": self.context.port,
            "connected": self.context.connected,
            "state": self.controller.state.value,
            "recording": self.recorder.path if self.recorder else None,
        }


class PaneManager:
    """Owns every open pane and drives its connection lifecycle.

    backend must provide the connection, execution and completion services.
    """

    def __init__(self, backend: PaneBackend, notifier: Optional[Notifier] = None,
                 on_change: Optional[ChangeSink] = None):
        self.backend = backend
        self.notifier = notifier or Notifier()
        self.on_change = on_change
        self.panes: Dict[str, Pane] = {}
        self.lock = threading.Lock()

    def open_pane(self, pane_id: str, host: str, port: int = 22, username: str = "",
                  name: str = "", password: Optional[str] = None, key_path: Optional[str] = None,
                  passphrase: Optional[str] = None, record: Optional[bool] = None) -> Pane:
        with self.lock:
            if pane_id in self.panes:
                raise ValueError(f"pane {pane_id} already exists")

        context = SessionContext(server_id=pane_id, host=host, port=int(port), username=username, name=name)
        recorder = None
        if (config.RECORD if record is None else record) and config.CACHE_DIRS:
            recorder = SessionRecorder(pane_id, context.display_name, config.CACHE_DIRS, config.PROJECT_TAG)

        controller = SessionController(
            context, self.backend, completion=self.backend, recorder=recorder, max_lines=config.MAX_LINES,
        )
        pane = Pane(pane_id, controller, Credentials(password, key_path, passphrase), recorder=recorder)
        pane.subscription = controller.subscribe(lambda event, payload: self._changed(pane_id, event, payload))
        self._bind_keys(pane)

        with self.lock:
            self.panes[pane_id] = pane
        return pane

    def _bind_keys(self, pane: Pane) -> None:
        controller = pane.controller
        bindings = [
            ("Enter", lambda event: controller.submit(), {}),
            ("ArrowUp", lambda event: controller.history_up(), {}),
            ("ArrowDown", lambda event: controller.history_down(), {}),
            ("Tab", lambda event: controller.complete(), {}),
            ("l", lambda event: controller.clear(), {"ctrl": True}),
        ]
        for key, handler, mods in bindings:
            pane.handles.append(pane.shortcuts.register(key, handler, **mods))

    def _changed(self, pane_id: str, event: str, payload: Any) -> None:
        if self.on_change is not None:
            self.on_change(pane_id, event, payload)

    def get(self, pane_id: str) -> Pane:
        with self.lock:
            pane = self.panes.get(pane_id)
        if pane is None:
            raise KeyError(f"pane {pane_id} not found")
        return pane

    def list_panes(self) -> List[Dict[str, Any]]:
        with self.lock:
            panes = [self.panes[pid] for pid in sorted(self.panes.keys())]
        return [pane.info() for pane in panes]

    async def connect(self, pane_id: str) -> Dict[str, Any]:
        pane = self.get(pane_id)
        ctx = pane.context
        creds = pane.credentials
        try:
            result = await self.backend.connect(
                ctx.server_id, ctx.host, ctx.port, ctx.username,
                creds.password, creds.key_path, creds.passphrase,
            )
        except Exception as exc:
            message = error_message(exc, "failed to connect to server")
            self.notifier.error(f"{ctx.display_name}: {message}")
            if isinstance(exc, SSHConnectionError):
                raise
            raise SSHConnectionError(message) from exc

        ctx.connected = True
        self.notifier.success(f"connected to {ctx.display_name}")
        await pane.controller.on_connected()
        return result

    async def disconnect(self, pane_id: str) -> Dict[str, Any]:
        pane = self.get(pane_id)
        ctx = pane.context
        try:
            result = await self.backend.disconnect(ctx.server_id)
        except Exception as exc:
            message = error_message(exc, "failed to disconnect")
            self.notifier.error(f"{ctx.display_name}: {message}")
            if isinstance(exc, SSHConnectionError):
                raise
            raise SSHConnectionError(message) from exc
        ctx.connected = False
        pane.controller.on_disconnected()
        return result

    async def reconnect(self, pane_id: str) -> Dict[str, Any]:
        pane = self.get(pane_id)
        ctx = pane.context
        try:
            result = await self.backend.reconnect(ctx.server_id)
        except Exception as exc:
            message = error_message(exc, "failed to reconnect")
            ctx.connected = False
            pane.controller.on_disconnected()
            self.notifier.error(f"{ctx.display_name}: {message}")
            if isinstance(exc, SSHConnectionError):
                raise
            raise SSHConnectionError(message) from exc
        ctx.connected = True
        self.notifier.info(f"reconnected to {ctx.display_name}")
        await pane.controller.on_connected()
        return result

    async def key(self, pane_id: str, event: KeyEvent) -> bool:
        pane = self.get(pane_id)
        outcomes = []
        for result in pane.shortcuts.dispatch(event):
            if inspect.isawaitable(result):
                result = await result
            outcomes.append(result)
        # A handler returning False (e.g. submit while busy) declined the key
        return bool(outcomes) and all(outcome is not False for outcome in outcomes)

    async def close_pane(self, pane_id: str) -> None:
        pane = self.get(pane_id)
        if pane.context.connected:
            try:
                await self.disconnect(pane_id)
            except SSHConnectionError as exc:
                log_error(f"disconnect on close failed for {pane_id}: {exc}")
        if pane.subscription is not None:
            pane.subscription.cancel()
        pane.shortcuts.unregister_all()
        pane.handles.clear()
        with self.lock:
            self.panes.pop(pane_id, None)

    async def close_all(self) -> None:
        with self.lock:
            pane_ids = list(self.panes.keys())
        for pane_id in pane_ids:
            await self.close_pane(pane_id)
