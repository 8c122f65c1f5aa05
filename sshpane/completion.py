from typing import Callable, Optional

from sshpane.errors import CompletionError
from sshpane.models import CompletionResult, CompletionService
from sshpane.utils import log_error, error_message


class CompletionDispatcher:
    """Requests tab completion and applies the result to the pane.

    A completed input always wins over the match list; failures are logged
    and never reach the user.
    """

    def __init__(
        self,
        service: Optional[CompletionService],
        set_input: Callable[[str], None],
        show_matches: Callable[[str], None],
    ):
        self.service = service
        self._set_input = set_input
        self._show_matches = show_matches

    async def request(self, server_id: str, text: str, current_dir: str) -> Optional[CompletionResult]:
        if not text or not text.strip() or self.service is None:
            return None
        try:
            result = await self._call(server_id, text, current_dir)
        except CompletionError as exc:
            log_error(f"completion failed for {server_id}: {error_message(exc)}")
            return None

        if result.completed_input is not None:
            self._set_input(result.completed_input)
        elif result.should_show_matches and result.matches:
            self._show_matches("  ".join(result.matches))
        return result

    async def _call(self, server_id: str, text: str, current_dir: str) -> CompletionResult:
        try:
            return await self.service.complete(server_id, text, current_dir)
        except CompletionError:
            raise
        except Exception as exc:
            raise CompletionError(error_message(exc, "completion failed")) from exc
