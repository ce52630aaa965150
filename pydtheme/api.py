"""API client for the Discourse theme endpoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Any

import httpx

from .config import SyncOptions
from .exceptions import (
    ThemeAPIError,
    ThemeAuthOrUrlError,
    ThemeConnectionError,
)
from .models import RemoteTheme, ThemeField
from .output import OutputFormatter
from .session import Session
from .utils import filename_from_content_disposition, has_needed_version

logger = logging.getLogger(__name__)

# Standard (admin API key) and alternate (user API key) endpoint paths
STANDARD_PATHS = {
    "themes": "/admin/customize/themes.json",
    "export": "/admin/customize/themes/{id}/export",
    "update": "/admin/themes/{id}",
    "import": "/admin/themes/import.json",
}
ALTERNATE_PATHS = {
    "themes": "/user_themes.json",
    "export": "/user_themes/{id}/export",
    "update": "/user_themes/{id}",
    "import": "/user_themes/import.json",
}
ABOUT_PATH = "/about.json"


class ThemeClient:
    """Client for the theme management API of one site."""

    def __init__(
        self,
        session: Session,
        options: SyncOptions | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the theme API client.

        Args:
            session: Resolved site URL, API key and auth mode
            options: Runtime options (timeout, minimum server version)
            transport: Optional httpx transport (used by tests)
        """
        self.session = session
        self.options = options or SyncOptions()
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def root(self) -> str:
        """Site URL with credentials removed."""
        return self.session.base_url

    @property
    def is_alternate_auth_mode(self) -> bool:
        return self.session.is_alternate_auth_mode

    def _path(self, name: str, **kwargs: Any) -> str:
        paths = ALTERNATE_PATHS if self.is_alternate_auth_mode else STANDARD_PATHS
        return paths[name].format(**kwargs)

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            auth = self.session.basic_auth
            timeout = (
                httpx.Timeout(self.options.timeout)
                if self.options.timeout is not None
                else httpx.Timeout(5.0)
            )
            self._client = httpx.Client(
                headers={self.session.api_key_header: self.session.api_key},
                auth=httpx.BasicAuth(*auth) if auth else None,
                timeout=timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> ThemeClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self, method: str, path: str, never_404: bool = False, **kwargs: Any
    ) -> httpx.Response:
        """Make an API request and translate failures.

        Args:
            method: HTTP method
            path: Endpoint path starting with a slash
            never_404: Treat a 404 as a wrong URL or an underprivileged key
            **kwargs: Additional arguments passed to httpx

        Returns:
            The successful response

        Raises:
            ThemeConnectionError: If the server cannot be reached
            ThemeAuthOrUrlError: On a 404 when never_404 is set
            ThemeAPIError: On any status other than 200 or 201
        """
        url = f"{self.root}{path}"
        logger.debug(f"{method} {url}")

        try:
            response = self._get_client().request(method, url, **kwargs)
        except httpx.ConnectError as e:
            raise ThemeConnectionError(f"Connection refused for {path}") from e
        except httpx.TransportError as e:
            raise ThemeConnectionError(f"Network error for {path}: {e}") from e

        status_code = response.status_code
        logger.debug(f"{method} {path} -> {status_code}")

        if status_code == 404 and never_404:
            raise ThemeAuthOrUrlError(
                "Error: Incorrect site URL, or API key does not have "
                "the correct privileges"
            )
        if status_code not in (200, 201):
            messages = self._error_messages(response)
            message = f"Error {status_code} for {path}"
            if messages:
                message = f"{message}: {', '.join(messages)}"
            raise ThemeAPIError(
                message, status_code=status_code, messages=messages, path=path
            )

        return response

    @staticmethod
    def _error_messages(response: httpx.Response) -> list[str]:
        """Extract the "errors" list of an error response, if present."""
        try:
            errors = response.json().get("errors")
        except (ValueError, AttributeError):
            return []
        if isinstance(errors, list):
            return [str(error) for error in errors]
        return []

    @staticmethod
    def _json(response: httpx.Response, path: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ThemeAPIError(
                f"Invalid JSON response for {path}",
                status_code=response.status_code,
                path=path,
            ) from e
        if not isinstance(data, dict):
            raise ThemeAPIError(
                f"Unexpected response for {path}",
                status_code=response.status_code,
                path=path,
            )
        return data

    @staticmethod
    def _theme_payload(data: dict[str, Any], path: str) -> dict[str, Any]:
        theme = data.get("theme")
        if not isinstance(theme, dict):
            raise ThemeAPIError(f"Response for {path} has no theme", path=path)
        return theme

    # =========================
    # Site information
    # =========================

    def get_version(self) -> str:
        """Get the version of the remote site.

        Raises:
            ThemeAuthOrUrlError: If the about endpoint answers 404
        """
        response = self._request("GET", ABOUT_PATH, never_404=True)
        data = self._json(response, ABOUT_PATH)
        about = data.get("about")
        if not isinstance(about, dict) or not about.get("version"):
            raise ThemeAPIError(f"Response for {ABOUT_PATH} has no version")
        return str(about["version"])

    def check_version(self, output: OutputFormatter | None = None) -> bool:
        """Warn if the site is older than the configured minimum version.

        An old site is not an error: uploads and watching keep working,
        only downloading is known to misbehave.

        Returns:
            True if the site version is recent enough
        """
        version = self.get_version()
        needed = self.options.minimum_version
        if has_needed_version(version, needed):
            return True

        logger.debug(f"Site version {version} is below {needed}")
        if output is not None:
            output.info(f"pydtheme is designed for Discourse {needed} or above")
            output.info(
                "download will not function, and syncing destination "
                "will be unpredictable"
            )
        return False

    # =========================
    # Theme operations
    # =========================

    def get_themes_list(self) -> list[RemoteTheme]:
        """List the themes of the site.

        This is the first call of every command, so a 404 here is reported
        as a wrong URL or an underprivileged key.
        """
        path = self._path("themes")
        response = self._request("GET", path, never_404=True)
        data = self._json(response, path)

        key = "user_themes" if self.is_alternate_auth_mode else "themes"
        themes = data.get(key)
        if not isinstance(themes, list):
            raise ThemeAPIError(f"Response for {path} has no '{key}' list", path=path)
        return [RemoteTheme.from_api_response(theme) for theme in themes]

    def get_raw_theme_export(self, theme_id: int) -> tuple[bytes, str]:
        """Download the export archive of a theme.

        Returns:
            Tuple of (archive bytes, filename suggested by the server)
        """
        path = self._path("export", id=theme_id)
        response = self._request("GET", path)

        if response.status_code != 200:
            raise ThemeAPIError(
                f"Error downloading theme: {response.status_code}",
                status_code=response.status_code,
                path=path,
            )
        filename = filename_from_content_disposition(
            response.headers.get("content-disposition")
        )
        if not filename:
            raise ThemeAPIError(
                "Error downloading theme: no content disposition", path=path
            )
        return response.content, filename

    def update_theme_field(self, theme_id: int, field: ThemeField) -> list[ThemeField]:
        """Update a single field of a theme.

        Returns:
            All fields of the theme as returned by the server, carrying
            any compile errors
        """
        path = self._path("update", id=theme_id)
        body = {"theme": {"theme_fields": [field.to_payload()]}}
        response = self._request("PUT", path, json=body)
        theme = self._theme_payload(self._json(response, path), path)
        return RemoteTheme.from_api_response(theme).fields

    def import_bundle(
        self,
        bundle: IO[bytes] | Path,
        theme_id: int | None = None,
        components: str | None = None,
        skip_migrations: bool = False,
    ) -> RemoteTheme:
        """Upload a gzipped tar bundle of a theme.

        Args:
            bundle: Open binary file or path of the bundle
            theme_id: Theme to replace, or None to create a new theme
            components: Whether child components are synced ("sync"/"none")
            skip_migrations: Ask the server not to run pending migrations

        Returns:
            The imported theme, including its (possibly new) id and fields
        """
        path = self._path("import")

        data: dict[str, str] = {}
        if theme_id is not None:
            data["theme_id"] = str(theme_id)
        if components:
            data["components"] = components
        if skip_migrations:
            data["skip_migrations"] = "true"

        if isinstance(bundle, Path):
            with open(bundle, "rb") as f:
                return self.import_bundle(f, theme_id, components, skip_migrations)

        files = {"bundle": ("bundle.tar.gz", bundle, "application/tar+gzip")}
        response = self._request("POST", path, data=data, files=files)
        theme = self._theme_payload(self._json(response, path), path)
        return RemoteTheme.from_api_response(theme)
