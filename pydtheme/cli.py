"""CLI interface for syncing Discourse themes."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import ThemeClient
from .config import Config, PathSettings, SyncOptions
from .exceptions import ThemeError, ThemeLocalPreconditionError
from .models import RemoteTheme
from .output import OutputFormatter
from .prompt import ClickPrompt, Prompt
from .session import resolve_session
from .sync import ThemeDownloader, ThemeUploader, ThemeWatcher, find_pending_migrations

logger = logging.getLogger(__name__)

SYNC_EXISTING = "default"
SYNC_CREATE = "create"
SYNC_SELECT = "select"

COMPONENT_ANSWERS = {"Yes": "sync", "No": "none"}


def render_theme_list(themes: list[RemoteTheme]) -> list[str]:
    """Render themes for a selection menu, most recently updated first."""
    ordered = sorted(themes, key=lambda t: t.updated_at or "", reverse=True)
    return [theme.display_name for theme in ordered]


def select_theme(
    prompt: Prompt, message: str, themes: list[RemoteTheme]
) -> RemoteTheme:
    """Let the user pick one of the given themes."""
    if not themes:
        raise ThemeError("There are no themes on this site")
    by_name = {theme.display_name: theme for theme in themes}
    return by_name[prompt.select(message, render_theme_list(themes))]


def find_theme(
    themes: list[RemoteTheme], theme_id: Optional[int]
) -> Optional[RemoteTheme]:
    if theme_id is None:
        return None
    return next((theme for theme in themes if theme.id == theme_id), None)


def read_about_json(directory: Path) -> Optional[dict[str, Any]]:
    """Read the theme's about.json, or None if it is missing or invalid."""
    try:
        data = json.loads((directory / "about.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _connect(ctx: Any, settings: PathSettings, reset: bool) -> ThemeClient:
    """Resolve the session for a directory and check the site version."""
    options: SyncOptions = ctx.obj["options"]
    out: OutputFormatter = ctx.obj["out"]

    session = resolve_session(
        settings, ctx.obj["prompt"], output=out, options=options, reset=reset
    )
    client = ThemeClient(session, options)
    client.check_version(out)
    return client


def _print_links(
    out: OutputFormatter, client: ThemeClient, theme_id: int, tests: bool = False
) -> None:
    out.info(f"Preview: {client.root}/?preview_theme_id={theme_id}")
    if client.is_alternate_auth_mode:
        out.info(f"Manage: {client.root}/my/themes")
    else:
        out.info(f"Manage: {client.root}/admin/customize/themes/{theme_id}")
    if tests:
        out.info(f"Tests: {client.root}/theme-qunit?id={theme_id}")


def _load_settings(ctx: Any, directory: Path) -> PathSettings:
    options: SyncOptions = ctx.obj["options"]
    return Config(options.settings_file)[str(directory)]


directory_argument = click.argument(
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
)
reset_option = click.option(
    "--reset",
    is_flag=True,
    help="Ask again for the site URL and API key of this directory",
)


@click.group()
@click.option(
    "--settings-file",
    envvar="PYDTHEME_SETTINGS_FILE",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (default: ~/.pydtheme.json)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option()
@click.pass_context
def main(
    ctx: Any,
    settings_file: Optional[Path],
    quiet: bool,
    verbose: bool,
) -> None:
    """PyDTheme - Sync a local theme directory with a Discourse site."""
    ctx.ensure_object(dict)
    ctx.obj["options"] = (
        SyncOptions(settings_file=settings_file) if settings_file else SyncOptions()
    )
    ctx.obj["out"] = OutputFormatter(quiet=quiet)
    ctx.obj.setdefault("prompt", ClickPrompt())

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pydtheme").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@directory_argument
@reset_option
@click.pass_context
def watch(ctx: Any, directory: Path, reset: bool) -> None:  # noqa: C901
    """Upload a theme and keep syncing every change.

    DIRECTORY: Theme directory to watch
    """
    out: OutputFormatter = ctx.obj["out"]
    prompt: Prompt = ctx.obj["prompt"]
    directory = directory.absolute()

    try:
        if not directory.is_dir():
            raise ThemeLocalPreconditionError(f"'{directory}' does not exist")

        settings = _load_settings(ctx, directory)
        theme_id = settings.theme_id
        components = settings.components

        with _connect(ctx, settings, reset) as client:
            themes = client.get_themes_list()
            theme = find_theme(themes, theme_id)

            menu: dict[str, str] = {}
            if theme is not None:
                menu[f"Sync with existing theme: '{theme.name}' (id:{theme.id})"] = (
                    SYNC_EXISTING
                )
            menu["Create and sync with a new theme"] = SYNC_CREATE
            if themes:
                menu["Select a different theme"] = SYNC_SELECT

            choice = menu[
                prompt.select("How would you like to sync this theme?", list(menu))
            ]
            if choice == SYNC_CREATE:
                theme_id = None
                theme = None
            elif choice == SYNC_SELECT:
                theme = select_theme(
                    prompt, "Which theme would you like to sync with?", themes
                )
                theme_id = theme.id

            about = read_about_json(directory) or {}
            component_count = len(about.get("components") or [])
            is_component = bool(about.get("component"))
            if theme is None and not is_component and component_count > 0:
                answers = list(COMPONENT_ANSWERS)
                if components:
                    # Previous answer first
                    answers.sort(key=lambda a: COMPONENT_ANSWERS[a] != components)
                answer = prompt.select(
                    "Would you like to update child theme components?", answers
                )
                components = COMPONENT_ANSWERS[answer]
                settings.components = components

            skip_migrations = False
            pending = find_pending_migrations(directory, theme)
            if pending:
                answer = prompt.select(
                    "Would you like to run the following pending theme migration(s): "
                    f"{', '.join(pending)}\n"
                    "  Select 'No' if you are in the midst of adding or modifying "
                    "theme migration(s).\n",
                    ["No", "Yes"],
                )
                skip_migrations = answer == "No"

            uploader = ThemeUploader(
                directory,
                client,
                theme_id=theme_id,
                components=components,
                settings=settings,
                output=out,
            )
            uploader.skip_migrations = skip_migrations

            out.progress(f"Uploading theme from {directory}")
            outcome = uploader.upload_full_theme()
            out.success(f"Theme uploaded (id:{outcome.theme_id})")
            _print_links(out, client, outcome.theme_id, tests=True)

            watcher = ThemeWatcher(directory, uploader, output=out)
            out.progress(f"Watching for changes in {directory}...")
            watcher.watch()

    except ThemeError as e:
        out.error(str(e))
        ctx.exit(1)
    except KeyboardInterrupt:
        out.error("Interrupted")
        ctx.exit(1)

    out.progress("Exiting...")


@main.command()
@directory_argument
@reset_option
@click.pass_context
def upload(ctx: Any, directory: Path, reset: bool) -> None:
    """Upload a theme once to the theme it is synced with.

    DIRECTORY: Theme directory, previously synced with 'watch'
    """
    out: OutputFormatter = ctx.obj["out"]
    directory = directory.absolute()

    try:
        if not directory.is_dir():
            raise ThemeLocalPreconditionError(f"'{directory}' does not exist")

        settings = _load_settings(ctx, directory)
        theme_id = settings.theme_id
        if theme_id is None:
            raise ThemeLocalPreconditionError(
                "No theme_id is set, please sync via the 'watch' command initially"
            )

        with _connect(ctx, settings, reset) as client:
            if find_theme(client.get_themes_list(), theme_id) is None:
                raise ThemeLocalPreconditionError(
                    "theme_id is set, but the theme does not exist in Discourse"
                )

            uploader = ThemeUploader(
                directory,
                client,
                theme_id=theme_id,
                components=settings.components,
                settings=settings,
                output=out,
            )
            out.progress(f"Uploading theme (id:{theme_id}) from {directory}")
            outcome = uploader.upload_full_theme()
            out.success(f"Theme uploaded (id:{outcome.theme_id})")
            _print_links(out, client, outcome.theme_id)

    except ThemeError as e:
        out.error(str(e))
        ctx.exit(1)
    except KeyboardInterrupt:
        out.error("Interrupted")
        ctx.exit(1)


@main.command()
@directory_argument
@reset_option
@click.pass_context
def download(ctx: Any, directory: Path, reset: bool) -> None:
    """Download a theme from the site into an empty directory.

    DIRECTORY: Destination directory (created if missing)
    """
    out: OutputFormatter = ctx.obj["out"]
    prompt: Prompt = ctx.obj["prompt"]
    directory = directory.absolute()

    try:
        settings = _load_settings(ctx, directory)

        with _connect(ctx, settings, reset) as client:
            directory.mkdir(parents=True, exist_ok=True)
            if any(directory.iterdir()):
                raise ThemeLocalPreconditionError(f"'{directory}' is not empty")

            out.progress("Loading theme list...")
            theme = select_theme(
                prompt,
                "Which theme would you like to download?",
                client.get_themes_list(),
            )

            out.progress(f"Downloading theme into {directory}")
            ThemeDownloader(directory, client).download_theme(theme.id)
            settings.theme_id = theme.id
            out.success("Theme downloaded")

    except ThemeError as e:
        out.error(str(e))
        ctx.exit(1)
    except KeyboardInterrupt:
        out.error("Interrupted")
        ctx.exit(1)

    if prompt.confirm("Would you like to start 'watching' this theme?"):
        out.progress(f"Running watch {directory}")
        ctx.invoke(watch, directory=directory, reset=False)


if __name__ == "__main__":
    main()
