"""Detection of theme migrations that have not run on the server yet."""

from pathlib import Path
from typing import Optional, Union

from ..models import RemoteTheme

MIGRATIONS_DIR = "migrations/settings"


def local_migrations(directory: Union[str, Path]) -> list[str]:
    """Return the relative paths of the settings migrations in a theme."""
    migrations_dir = Path(directory) / MIGRATIONS_DIR
    if not migrations_dir.is_dir():
        return []
    return sorted(
        f"{MIGRATIONS_DIR}/{path.name}"
        for path in migrations_dir.glob("*.js")
        if path.is_file()
    )


def find_pending_migrations(
    directory: Union[str, Path], theme: Optional[RemoteTheme]
) -> list[str]:
    """List local migrations the remote theme has not run.

    A migration is known to the server when the theme has a migrations
    field named after the file (without extension) that is marked migrated.
    Without a remote theme nothing is pending: a new theme runs them all.
    """
    if theme is None:
        return []

    migrated = {
        f.name for f in theme.fields if f.target == "migrations" and f.migrated
    }
    return [
        path
        for path in local_migrations(directory)
        if Path(path).stem not in migrated
    ]
