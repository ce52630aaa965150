"""Theme bundle packaging and export archive extraction."""

import io
import logging
import os
import shutil
import tarfile
import tempfile
import uuid
import zipfile
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Union

from ..exceptions import ThemeExtractionError
from ..utils import format_size

logger = logging.getLogger(__name__)

# Entries pruned together with their whole subtree
EXCLUDED_NAMES = frozenset({"node_modules", "src"})


def is_excluded(name: str) -> bool:
    """Check whether a file or directory name is left out of bundles."""
    return name in EXCLUDED_NAMES or name.startswith(".")


def iter_bundle_files(source_dir: Path) -> Generator[tuple[Path, str], None, None]:
    """Yield (absolute path, relative posix path) of every bundled file.

    Excluded directories are pruned without being descended into.
    Directories themselves are never yielded, only the files inside them.
    """
    for root, dirnames, filenames in os.walk(source_dir):
        dirnames[:] = sorted(d for d in dirnames if not is_excluded(d))
        root_path = Path(root)
        for filename in sorted(filenames):
            if is_excluded(filename):
                continue
            file_path = root_path / filename
            yield file_path, file_path.relative_to(source_dir).as_posix()


def build_archive(source_dir: Union[str, Path]) -> Path:
    """Package a theme directory into a gzipped tar file.

    All files are stored under a single top-level folder named after the
    theme directory, which is the layout the import endpoint expects.
    The archive is written to a new temporary file that the caller must
    delete.

    Args:
        source_dir: Theme directory to package

    Returns:
        Path of the temporary .tar.gz file
    """
    source_dir = Path(source_dir).resolve()
    fd, name = tempfile.mkstemp(prefix="bundle_", suffix=".tar.gz")
    archive_path = Path(name)

    count = 0
    try:
        with os.fdopen(fd, "wb") as f:
            with tarfile.open(
                fileobj=f, mode="w:gz", format=tarfile.PAX_FORMAT
            ) as tar:
                for file_path, relative_path in iter_bundle_files(source_dir):
                    tar.add(
                        file_path,
                        arcname=f"{source_dir.name}/{relative_path}",
                        recursive=False,
                    )
                    count += 1
    except BaseException:
        archive_path.unlink(missing_ok=True)
        raise

    logger.debug(
        f"Packed {count} file(s) from {source_dir} into {archive_path} "
        f"({format_size(archive_path.stat().st_size)})"
    )
    return archive_path


@contextmanager
def temporary_bundle(source_dir: Union[str, Path]) -> Generator[Path, None, None]:
    """Build a bundle and delete it when the block exits."""
    archive_path = build_archive(source_dir)
    try:
        yield archive_path
    finally:
        archive_path.unlink(missing_ok=True)
        logger.debug(f"Removed {archive_path}")


def extract_archive(
    data: bytes, filename_hint: str, dest_dir: Union[str, Path]
) -> None:
    """Unpack a downloaded theme export into a directory.

    Zip archives are extracted as they are. Tar.gz exports wrap everything
    in one top-level folder, whose contents are moved up into dest_dir.

    Args:
        data: Archive bytes
        filename_hint: Filename suggested by the server, selects the format
        dest_dir: Directory to extract into

    Raises:
        ThemeExtractionError: If the archive is unreadable or a tar.gz export
            does not contain exactly one top-level folder
    """
    dest_dir = Path(dest_dir)

    if filename_hint.lower().endswith(".zip"):
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zip_file:
                zip_file.extractall(dest_dir)
        except zipfile.BadZipFile as e:
            raise ThemeExtractionError(f"Extraction failed: {e}") from e
        return

    # Extraction filters exist from Python 3.10.12 and 3.11.4 on
    extract_kwargs = {"filter": "data"} if hasattr(tarfile, "data_filter") else {}
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
            tar.extractall(dest_dir, **extract_kwargs)
    except (tarfile.TarError, OSError) as e:
        raise ThemeExtractionError(f"Extraction failed: {e}") from e

    _unwrap_single_folder(dest_dir)


def _unwrap_single_folder(dest_dir: Path) -> None:
    folders = [p for p in dest_dir.iterdir() if p.is_dir()]
    if len(folders) != 1:
        raise ThemeExtractionError(
            f"Extraction failed: expected one top-level folder, found {len(folders)}"
        )

    # Renamed first so a child with the same name as the wrapper can move up
    wrapper = folders[0].rename(dest_dir / f".unwrap-{uuid.uuid4().hex}")
    for child in wrapper.iterdir():
        shutil.move(str(child), str(dest_dir / child.name))
    wrapper.rmdir()
    logger.debug(f"Moved contents of {folders[0].name}/ up into {dest_dir}")
