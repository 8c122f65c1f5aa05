from typing import Any, Callable, Dict, Optional

from sshpane.utils import log_error, iso_now

ToastSink = Callable[[Dict[str, Any]], Any]


class Notifier:
    """Toast context handed to whoever needs to notify the user.

    Without a sink the message goes to the error log instead.
    """

    def __init__(self, sink: Optional[ToastSink] = None):
        self.sink = sink

    def set_sink(self, sink: Optional[ToastSink]) -> None:
        self.sink = sink

    def show(self, message: str, type: str = "info", duration: int = 3000) -> Any:
        toast = {"message": message, "type": type, "duration": duration, "ts": iso_now()}
        if self.sink is None:
            log_error(f"toast ({type}): {message}")
            return None
        return self.sink(toast)

    def success(self, message: str, duration: int = 3000) -> Any:
        return self.show(message, "success", duration)

    def error(self, message: str, duration: int = 5000) -> Any:
        return self.show(message, "error", duration)

    def warning(self, message: str, duration: int = 4000) -> Any:
        return self.show(message, "warning", duration)

    def info(self, message: str, duration: int = 3000) -> Any:
        return self.show(message, "info", duration)
