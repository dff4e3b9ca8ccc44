"""Error taxonomy for the feed pipeline."""


class LpScoutError(Exception):
    """Base class for scout errors."""


class ConnectError(LpScoutError):
    """The transport could not be created or the handshake failed."""


class DecodeError(LpScoutError):
    """A frame expected to carry a token batch was not valid structured data."""


class NotConnectedError(LpScoutError):
    """A send was attempted while the connection was not open."""


class MaxRetriesExceeded(LpScoutError):
    """Reconnect attempts are exhausted; the connection will not recover."""

    def __init__(self, attempts: int, last_error: str | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        message = f"Gave up after {attempts} reconnect attempts"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
