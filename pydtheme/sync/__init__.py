"""Sync engine for pydtheme - packaging, uploading, watching and downloading."""

from .archive import (
    EXCLUDED_NAMES,
    build_archive,
    extract_archive,
    is_excluded,
    iter_bundle_files,
    temporary_bundle,
)
from .decision import (
    FastFieldUpdate,
    FullUpload,
    SyncDecision,
    classify_changes,
    resolve_fast_update,
)
from .downloader import ThemeDownloader
from .migrations import find_pending_migrations, local_migrations
from .uploader import ThemeUploader
from .watcher import ChangeBatch, ThemeEventHandler, ThemeWatcher, is_ignored_path

__all__ = [
    "ThemeUploader",
    "ThemeWatcher",
    "ThemeDownloader",
    "ThemeEventHandler",
    "ChangeBatch",
    "SyncDecision",
    "FastFieldUpdate",
    "FullUpload",
    "classify_changes",
    "resolve_fast_update",
    "is_ignored_path",
    "EXCLUDED_NAMES",
    "build_archive",
    "extract_archive",
    "is_excluded",
    "iter_bundle_files",
    "temporary_bundle",
    "find_pending_migrations",
    "local_migrations",
]
