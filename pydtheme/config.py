"""Settings persistence and runtime options for pydtheme.

Settings are stored in a single JSON document keyed by the absolute path of
each theme directory, so every local theme remembers its own site, API key
and remote theme id.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = Path.home() / ".pydtheme.json"

# Oldest server release the download command is known to work with
DEFAULT_MINIMUM_VERSION = "2.3.0.beta1"

# Hosts that use user API keys and the /user_themes endpoints
DEFAULT_ALTERNATE_AUTH_PATTERNS = (
    r"^https://(theme-creator\.discourse\.org|discourse\.theme-creator\.io)$",
)


@dataclass
class SyncOptions:
    """Runtime options shared by the client, uploader and CLI."""

    settings_file: Path = DEFAULT_SETTINGS_FILE
    """JSON file holding per-directory settings"""

    minimum_version: str = DEFAULT_MINIMUM_VERSION
    """Server version below which an advisory is shown"""

    alternate_auth_patterns: tuple[str, ...] = DEFAULT_ALTERNATE_AUTH_PATTERNS
    """Regexes matched against the site URL to enable user API key mode"""

    url_env_var: str = "DISCOURSE_URL"
    api_key_env_var: str = "DISCOURSE_API_KEY"

    timeout: Optional[float] = None
    """Request timeout in seconds (None keeps the httpx default)"""

    _compiled: list = field(default_factory=list, init=False, repr=False)

    def is_alternate_auth_url(self, url: str) -> bool:
        """Check whether a site URL should use the alternate auth mode."""
        if not self._compiled:
            self._compiled = [
                re.compile(pattern, re.IGNORECASE)
                for pattern in self.alternate_auth_patterns
            ]
        return any(regex.search(url) for regex in self._compiled)


class PathSettings:
    """Settings of a single theme directory.

    Reading a missing value returns None; assigning a value saves the
    settings file immediately.
    """

    def __init__(self, config: "Config", path: str):
        self._config = config
        self.path = path

    @property
    def url(self) -> Optional[str]:
        return self._safe_config().get("url")

    @url.setter
    def url(self, value: Optional[str]) -> None:
        self._set("url", value)

    @property
    def api_key(self) -> Optional[str]:
        """API key stored for the current URL, else for this directory."""
        api_keys = self._config.raw_config.get("api_keys")
        url = self.url
        if isinstance(api_keys, dict) and url and api_keys.get(url):
            return api_keys[url]
        return self._safe_config().get("api_key")

    @api_key.setter
    def api_key(self, value: Optional[str]) -> None:
        url = self.url
        if url:
            api_keys = self._config.raw_config.get("api_keys")
            if not isinstance(api_keys, dict):
                api_keys = self._config.raw_config["api_keys"] = {}
            api_keys[url] = value
            self._config.save()
        else:
            self._set("api_key", value)

    @property
    def theme_id(self) -> Optional[int]:
        value = self._safe_config().get("theme_id")
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid theme_id {value!r} for {self.path}")
            return None

    @theme_id.setter
    def theme_id(self, value: Optional[int]) -> None:
        self._set("theme_id", int(value) if value is not None else None)

    @property
    def components(self) -> Optional[str]:
        return self._safe_config().get("components")

    @components.setter
    def components(self, value: Optional[str]) -> None:
        self._set("components", value)

    @property
    def local_repo_path(self) -> Optional[str]:
        return self._safe_config().get("local_repo_path")

    @local_repo_path.setter
    def local_repo_path(self, value: Optional[str]) -> None:
        self._set("local_repo_path", value)

    def _safe_config(self) -> dict[str, Any]:
        entry = self._config.raw_config.get(self.path)
        return entry if isinstance(entry, dict) else {}

    def _set(self, name: str, value: Any) -> None:
        entry = self._config.raw_config.get(self.path)
        if not isinstance(entry, dict):
            entry = self._config.raw_config[self.path] = {}
        entry[name] = value
        self._config.save()


class Config:
    """Keyed settings store backed by a JSON file.

    Examples:
        >>> config = Config(Path("/tmp/settings.json"))
        >>> settings = config["/home/me/my-theme"]
        >>> settings.theme_id = 12
    """

    def __init__(self, filename: Union[str, Path]):
        self.filename = Path(filename)
        self.raw_config: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.filename.exists():
            return {}

        try:
            with open(self.filename, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.error(f"{self.filename} contains invalid config, resetting: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"{self.filename} contains invalid config, resetting")
            return {}
        return data

    def save(self) -> None:
        """Write the settings file."""
        with open(self.filename, "w", encoding="utf-8") as f:
            json.dump(self.raw_config, f, indent=2, sort_keys=True)
        logger.debug(f"Saved settings to {self.filename}")

    def __getitem__(self, path: Union[str, Path]) -> PathSettings:
        return PathSettings(self, str(path))
