"""Classification of a batch of file changes into a sync action."""

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from ..models import SCSS_TYPE_ID

# Targets whose <target>/<target>.scss file can be updated on its own
FAST_UPDATE_TARGETS = ("common", "desktop", "mobile")


@dataclass(frozen=True)
class FastFieldUpdate:
    """Update a single theme field instead of uploading the whole theme."""

    target: str
    """Theme field target, e.g. common"""

    field_name: str = "scss"

    type_id: int = SCSS_TYPE_ID


@dataclass(frozen=True)
class FullUpload:
    """Package and upload the whole theme directory."""


SyncDecision = Union[FastFieldUpdate, FullUpload]


def resolve_fast_update(
    path: Union[str, Path], root: Union[str, Path]
) -> Optional[FastFieldUpdate]:
    """Map a changed file to a single-field update, if it is a known stylesheet.

    Only ``{common,desktop,mobile}/<same name>.scss`` directly below the theme
    root qualifies.

    Examples:
        >>> resolve_fast_update("/t/common/common.scss", "/t")
        FastFieldUpdate(target='common', field_name='scss', type_id=1)
        >>> resolve_fast_update("/t/common/other.js", "/t") is None
        True
    """
    try:
        relative = Path(path).absolute().relative_to(Path(root).absolute())
    except ValueError:
        return None

    parts = PurePosixPath(relative.as_posix()).parts
    if len(parts) != 2:
        return None

    target, filename = parts
    if target in FAST_UPDATE_TARGETS and filename == f"{target}.scss":
        return FastFieldUpdate(target=target)
    return None


def classify_changes(
    root: Union[str, Path],
    modified: list[str],
    added: list[str],
    removed: list[str],
) -> SyncDecision:
    """Decide how to sync a batch of changes.

    A batch consisting of exactly one modified stylesheet that can be
    resolved by resolve_fast_update is a FastFieldUpdate; anything else
    is a FullUpload.

    Args:
        root: Watched theme directory
        modified: Paths of modified files
        added: Paths of added files
        removed: Paths of removed files

    Returns:
        The decision for this batch
    """
    if len(modified) == 1 and not added and not removed:
        fast = resolve_fast_update(modified[0], root)
        if fast is not None:
            return fast
    return FullUpload()
