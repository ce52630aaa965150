"""Download of a remote theme into a local directory."""

import logging
from pathlib import Path
from typing import Optional, Union

from ..api import ThemeClient
from ..exceptions import ThemeLocalPreconditionError
from .archive import extract_archive

logger = logging.getLogger(__name__)


class ThemeDownloader:
    """Materializes a remote theme in an empty local directory."""

    def __init__(self, directory: Union[str, Path], client: ThemeClient):
        self.directory = Path(directory)
        self.client = client
        self.theme_id: Optional[int] = None

    def download_theme(self, theme_id: int) -> int:
        """Download and extract a theme export.

        The downloader's theme_id is only set once extraction succeeded.

        Raises:
            ThemeLocalPreconditionError: If the directory is missing or not empty
            ThemeExtractionError: If the export cannot be unpacked

        Returns:
            The downloaded theme id
        """
        if not self.directory.is_dir():
            raise ThemeLocalPreconditionError(f"'{self.directory}' does not exist")
        if any(self.directory.iterdir()):
            raise ThemeLocalPreconditionError(f"'{self.directory}' is not empty")

        raw, filename = self.client.get_raw_theme_export(theme_id)
        logger.debug(f"Downloaded {filename} ({len(raw)} bytes) for theme {theme_id}")

        extract_archive(raw, filename, self.directory)
        self.theme_id = theme_id
        return theme_id
