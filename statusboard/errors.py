class StatusBoardError(Exception):
    """Base class for every error raised by statusboard."""


class RosterError(StatusBoardError):
    """The static domain roster is missing or malformed."""


class FatalProbeError(StatusBoardError):
    """
    Raised when no meaningful snapshot can be produced.

    Nothing inside the package catches this. It is meant to reach the
    process entry point and terminate it so a supervisor can restart it.
    """


class DegenerateNetworkError(FatalProbeError):
    """Every probe of every attempted round failed at the transport level."""

    def __init__(self, attempts: int):
        super().__init__(f"connection failed: all {attempts} probing rounds were degenerate")
        self.attempts = attempts


class RefreshChannelClosed(FatalProbeError):
    """A background refresh was signalled after the refresh channel was closed."""

    def __init__(self):
        super().__init__("background refresh channel closed unexpectedly")
