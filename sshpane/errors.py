class PaneError(Exception):
    pass


class SSHConnectionError(PaneError):
    """Connect, disconnect or reconnect failed; raised to the caller."""


class ExecutionError(PaneError):
    """Transport or remote failure while running a submitted command."""


class CompletionError(PaneError):
    pass


class PromptInfoError(PaneError):
    """One of the identity/location probes failed."""
