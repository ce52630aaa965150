"""Exceptions raised by pydtheme."""

from typing import Optional


class ThemeError(Exception):
    """Base exception for all known, user-facing errors."""


class ThemeConfigError(ThemeError):
    """Raised when the site URL or API key is missing."""


class ThemeLocalPreconditionError(ThemeError):
    """Raised when the local directory or settings are not in the expected state."""


class ThemeExtractionError(ThemeError):
    """Raised when a downloaded theme archive cannot be unpacked."""


class ThemeRemoteError(ThemeError):
    """Base exception for errors raised while talking to the server.

    These are the only errors the watch loop recovers from.
    """


class ThemeConnectionError(ThemeRemoteError):
    """Raised when the server cannot be reached."""


class ThemeAuthOrUrlError(ThemeRemoteError):
    """Raised on a 404 from an endpoint that always exists.

    This means the site URL is wrong or the API key lacks privileges.
    """


class ThemeAPIError(ThemeRemoteError):
    """Raised for any other unsuccessful or malformed server response."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        messages: Optional[list[str]] = None,
        path: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.messages = messages or []
        self.path = path
