"""Exception types raised by the HUP ladder."""

from typing import Optional


class LadderError(Exception):
    """Base class for ladder errors."""


class ConfigError(LadderError, ValueError):
    """Required environment configuration is missing or invalid."""


class AuthenticationError(LadderError):
    """The API token did not yield a logged-in session."""


class BalenaAPIError(LadderError):
    """A device-management API call failed.

    Attributes:
        status_code: HTTP status code if the server answered, None for
            transport failures
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
