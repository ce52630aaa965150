"""Resolution of the site URL and API key a theme syncs with."""

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

import httpx

from .config import PathSettings, SyncOptions
from .exceptions import ThemeConfigError
from .output import OutputFormatter
from .prompt import Prompt
from .utils import normalize_url, strip_credentials, url_credentials

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Connection parameters for one remote site."""

    url: str
    """Site URL as configured, possibly with user:password@"""

    api_key: str

    is_alternate_auth_mode: bool = False
    """Use User-Api-Key and the /user_themes endpoints"""

    def __post_init__(self) -> None:
        if not self.url:
            raise ThemeConfigError("Missing site to synchronize with!")
        if not self.api_key:
            raise ThemeConfigError("Missing api key!")

    @property
    def base_url(self) -> str:
        """Site URL without credentials, used to build request URLs."""
        return strip_credentials(self.url)

    @property
    def basic_auth(self) -> Optional[tuple[str, str]]:
        return url_credentials(self.url)

    @property
    def api_key_header(self) -> str:
        return "User-Api-Key" if self.is_alternate_auth_mode else "Api-Key"


def is_https_redirect(
    url: str, transport: Optional[httpx.BaseTransport] = None
) -> bool:
    """Check whether the root of a plain HTTP site redirects to HTTPS.

    Connection failures count as "no redirect"; the real request made
    later reports them properly.
    """
    root = strip_credentials(url).rstrip("/") + "/"
    try:
        with httpx.Client(transport=transport, follow_redirects=False) as client:
            response = client.get(root)
    except httpx.HTTPError as e:
        logger.debug(f"HTTPS redirect check for {root} failed: {e}")
        return False

    location = response.headers.get("location", "")
    return response.is_redirect and location.lower().startswith("https")


def _uses_default_http_port(url: str) -> bool:
    parts = urlsplit(url)
    return parts.scheme == "http" and parts.port in (None, 80)


def resolve_session(
    settings: PathSettings,
    prompt: Prompt,
    output: Optional[OutputFormatter] = None,
    options: Optional[SyncOptions] = None,
    environ: Optional[Mapping[str, str]] = None,
    reset: bool = False,
    transport: Optional[httpx.BaseTransport] = None,
) -> Session:
    """Work out the site URL and API key for a theme directory.

    Each value is taken from the environment, then the stored settings,
    then asked for interactively. With ``reset`` the user is always asked,
    using the previous value as the default. Newly entered values are
    stored only if the user agrees.

    Args:
        settings: Stored settings of the theme directory
        prompt: Interactive prompt capability
        output: Output formatter for status lines
        options: Runtime options (env var names, auth mode patterns)
        environ: Environment mapping (defaults to os.environ)
        reset: Always ask for the values again
        transport: Optional httpx transport used by the HTTPS check

    Returns:
        A validated Session

    Raises:
        ThemeConfigError: If no URL or API key could be determined
    """
    output = output or OutputFormatter()
    options = options or SyncOptions()
    environ = os.environ if environ is None else environ

    url = _resolve_url(settings, prompt, output, options, environ, reset, transport)
    api_key = _resolve_api_key(settings, prompt, output, options, environ, reset)

    alternate = bool(url) and options.is_alternate_auth_url(strip_credentials(url))
    logger.debug(f"Resolved session for {url} (alternate auth mode: {alternate})")
    return Session(
        url=url or "", api_key=api_key or "", is_alternate_auth_mode=alternate
    )


def _resolve_url(
    settings: PathSettings,
    prompt: Prompt,
    output: OutputFormatter,
    options: SyncOptions,
    environ: Mapping[str, str],
    reset: bool,
    transport: Optional[httpx.BaseTransport],
) -> Optional[str]:
    url = normalize_url(environ.get(options.url_env_var))
    if url:
        output.progress(f"Using {url} from {options.url_env_var}")

    if not url and settings.url:
        url = normalize_url(settings.url)
        output.progress(f"Using {url} from {options.settings_file}")

    if not url or reset:
        answer = prompt.ask("What is the root URL of your Discourse site?", default=url)
        url = normalize_url(answer)
        if not url:
            return None
        if not re.match(r"^https?://", url, re.IGNORECASE):
            url = f"http://{url}"

        if _uses_default_http_port(url) and is_https_redirect(url, transport):
            output.info(f"Detected that {url} should be accessed over https")
            url = "https" + url[len("http"):]

        if prompt.confirm(
            f"Would you like this site name stored in {options.settings_file}?"
        ):
            settings.url = url
        else:
            settings.url = None

    return url


def _resolve_api_key(
    settings: PathSettings,
    prompt: Prompt,
    output: OutputFormatter,
    options: SyncOptions,
    environ: Mapping[str, str],
    reset: bool,
) -> Optional[str]:
    api_key = environ.get(options.api_key_env_var)
    if api_key:
        output.progress(f"Using api key from {options.api_key_env_var}")

    if not api_key and settings.api_key:
        api_key = settings.api_key
        output.progress(f"Using api key from {options.settings_file}")

    if not api_key or reset:
        api_key = (prompt.ask("What is your API key?", default=api_key) or "").strip()
        if prompt.confirm(
            f"Would you like this API key stored in {options.settings_file}?"
        ):
            settings.api_key = api_key
        else:
            settings.api_key = None

    return api_key
