"""Exception hierarchy shared by the services, routes and session controller."""


class FanCredError(Exception):
    """Base class for all FanCred errors."""


class InvalidInput(FanCredError):
    """Missing or malformed account identifier or action tag."""


class InvalidAction(InvalidInput):
    """Action tag is not one of the supported fan actions."""


class InvalidAccount(InvalidInput):
    """Account identifier is not a well-formed wallet address."""


class LedgerUnavailable(FanCredError):
    """The external ledger could not be read."""


class ConnectionRejected(FanCredError):
    """The wallet provider refused the connection request."""

    def __init__(self, message: str, user_cancelled: bool = False):
        super().__init__(message)
        self.user_cancelled = user_cancelled


class GenerationFailure(FanCredError):
    """An AI generation call failed or timed out."""


class ScoreApiError(FanCredError):
    """The score API answered with an error status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
