"""Upload of theme bundles and single theme fields."""

import logging
from pathlib import Path
from typing import Optional, Union

from ..api import ThemeClient
from ..config import PathSettings
from ..models import ThemeField, UploadOutcome
from ..output import OutputFormatter
from .archive import temporary_bundle

logger = logging.getLogger(__name__)


class ThemeUploader:
    """Uploads a theme directory to the site it is synced with.

    The first full upload without a theme id creates a new remote theme;
    its id is remembered (and written to the settings, if given) so every
    later upload replaces that same theme.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        client: ThemeClient,
        theme_id: Optional[int] = None,
        components: Optional[str] = None,
        settings: Optional[PathSettings] = None,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize the uploader.

        Args:
            directory: Theme directory
            client: Theme API client
            theme_id: Remote theme to update, or None to create one
            components: Child component handling passed to the import
            settings: Settings receiving the theme id after each upload
            output: Output formatter for compile errors
        """
        self.directory = Path(directory)
        self.client = client
        self.theme_id = theme_id
        self.components = components
        self.settings = settings
        self.output = output or OutputFormatter()
        self.skip_migrations = False

    def upload_full_theme(
        self, skip_migrations: Optional[bool] = None
    ) -> UploadOutcome:
        """Package the directory and import it as a whole.

        Args:
            skip_migrations: Override the uploader's skip_migrations flag

        Returns:
            UploadOutcome with the theme id assigned by the server
        """
        if skip_migrations is None:
            skip_migrations = self.skip_migrations

        with temporary_bundle(self.directory) as bundle_path:
            logger.debug(
                f"Importing {bundle_path.name} into theme {self.theme_id or '(new)'}"
            )
            theme = self.client.import_bundle(
                bundle_path,
                theme_id=self.theme_id,
                components=self.components,
                skip_migrations=skip_migrations,
            )

        self._remember_theme_id(theme.id)
        outcome = UploadOutcome.from_fields(theme.id, theme.fields)
        self.diagnose_errors(outcome)
        return outcome

    def upload_theme_field(
        self, target: str, name: str, type_id: int, value: str
    ) -> UploadOutcome:
        """Update a single field of the already uploaded theme.

        Raises:
            RuntimeError: If no full upload has assigned a theme id yet
        """
        if self.theme_id is None:
            raise RuntimeError("expecting theme_id to be set!")

        field = ThemeField(target=target, name=name, type_id=type_id, value=value)
        fields = self.client.update_theme_field(self.theme_id, field)

        outcome = UploadOutcome.from_fields(self.theme_id, fields)
        self.diagnose_errors(outcome)
        return outcome

    def diagnose_errors(self, outcome: UploadOutcome) -> int:
        """Print every compile error of an upload.

        Returns:
            Number of fields with errors
        """
        for diagnostic in outcome.field_errors:
            self.output.error("")
            self.output.error(str(diagnostic))
            self.output.error("")
        if outcome.has_errors:
            self.output.error("(end of errors)")
        return len(outcome.field_errors)

    def _remember_theme_id(self, theme_id: int) -> None:
        if theme_id != self.theme_id:
            logger.debug(f"Server assigned theme id {theme_id}")
        self.theme_id = theme_id
        if self.settings is not None:
            self.settings.theme_id = theme_id
