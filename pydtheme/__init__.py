"""PyDTheme - sync a local theme directory with a Discourse site."""

from .api import ThemeClient
from .config import Config, PathSettings, SyncOptions
from .exceptions import (
    ThemeAPIError,
    ThemeAuthOrUrlError,
    ThemeConfigError,
    ThemeConnectionError,
    ThemeError,
    ThemeExtractionError,
    ThemeLocalPreconditionError,
    ThemeRemoteError,
)
from .models import FieldDiagnostic, RemoteTheme, ThemeField, UploadOutcome
from .session import Session, resolve_session
from .utils import has_needed_version

__all__ = [
    "ThemeClient",
    "Config",
    "PathSettings",
    "SyncOptions",
    "Session",
    "resolve_session",
    "RemoteTheme",
    "ThemeField",
    "FieldDiagnostic",
    "UploadOutcome",
    "ThemeError",
    "ThemeAPIError",
    "ThemeAuthOrUrlError",
    "ThemeConfigError",
    "ThemeConnectionError",
    "ThemeExtractionError",
    "ThemeLocalPreconditionError",
    "ThemeRemoteError",
    "has_needed_version",
]
