"""Typed records for theme API responses."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .exceptions import ThemeAPIError

# Theme field type id of a stylesheet
SCSS_TYPE_ID = 1

def _require(data: Any, key: str, what: str) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise ThemeAPIError(f"Invalid {what} in server response: missing '{key}'")
    return data[key]


def _to_int(value: Any, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ThemeAPIError(
            f"Invalid {what} in server response: {value!r} is not an id"
        ) from e


@dataclass
class ThemeField:
    """One named, targeted piece of content of a theme."""

    target: str
    """Target such as common, desktop, mobile, settings or extra_*"""

    name: str
    """Field name, e.g. scss or header"""

    type_id: Optional[int] = None
    value: Optional[str] = None

    error: Optional[str] = None
    """Compile error reported by the server"""

    migrated: bool = False
    """True for migration fields the server has already run"""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ThemeField":
        """Create a ThemeField from an API response dictionary.

        Raises:
            ThemeAPIError: If target or name is missing or type_id is not
                numeric
        """
        type_id = data.get("type_id") if isinstance(data, dict) else None
        return cls(
            target=_require(data, "target", "theme field"),
            name=_require(data, "name", "theme field"),
            type_id=(
                _to_int(type_id, "theme field type id")
                if type_id is not None
                else None
            ),
            value=data.get("value"),
            error=data.get("error"),
            migrated=bool(data.get("migrated", False)),
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize for an update request."""
        return {
            "name": self.name,
            "target": self.target,
            "type_id": self.type_id,
            "value": self.value,
        }

    @property
    def has_error(self) -> bool:
        return bool(self.error)


@dataclass
class RemoteTheme:
    """A theme as known by the server."""

    id: int
    name: str = ""
    is_component: bool = False
    fields: list[ThemeField] = field(default_factory=list)
    updated_at: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RemoteTheme":
        """Create a RemoteTheme from an API response dictionary.

        Raises:
            ThemeAPIError: If the id is missing or not numeric
        """
        theme_id = _to_int(_require(data, "id", "theme"), "theme id")
        raw_fields = data.get("theme_fields") or []
        if not isinstance(raw_fields, list):
            raise ThemeAPIError("Invalid theme in server response: bad theme_fields")

        return cls(
            id=theme_id,
            name=data.get("name") or "",
            is_component=bool(data.get("component", False)),
            fields=[ThemeField.from_api_response(f) for f in raw_fields],
            updated_at=data.get("updated_at"),
        )

    @property
    def display_name(self) -> str:
        """Name as shown in selection menus, e.g. 'Magic (id:1)'."""
        return f"{self.name} (id:{self.id})"


@dataclass
class FieldDiagnostic:
    """A compile error reported for one theme field."""

    target: str
    name: str
    message: str

    def __str__(self) -> str:
        return f"Error in {self.target} {self.name}: {self.message}"


@dataclass
class UploadOutcome:
    """Result of a full upload or a single field update."""

    theme_id: int
    field_errors: list[FieldDiagnostic] = field(default_factory=list)

    @classmethod
    def from_fields(cls, theme_id: int, fields: list[ThemeField]) -> "UploadOutcome":
        return cls(
            theme_id=theme_id,
            field_errors=[
                FieldDiagnostic(f.target, f.name, f.error or "")
                for f in fields
                if f.has_error
            ],
        )

    @property
    def has_errors(self) -> bool:
        return bool(self.field_errors)
