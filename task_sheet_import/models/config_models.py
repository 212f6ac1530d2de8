from __future__ import annotations

from dataclasses import dataclass, field

from .collaborator import Collaborator
from .fields import FieldKey

"""Settings dataclasses for the spreadsheet -> task importer.

These are the typed counterpart of config/import.yml; the loader in
task_sheet_import/config/loader.py builds them after schema validation.
Every field has a default so a session can run without any config file.
"""

DEFAULT_SUBJECT = "Nouvelles tâches assignées - {project}"
DEFAULT_MESSAGE = (
    'Vous avez de nouvelles tâches assignées sur le projet "{project}". '
    "Veuillez consulter les détails ci-dessous."
)
DEFAULT_EXPORT_BASE_URL = "https://docs.google.com/spreadsheets/d"


@dataclass(frozen=True)
class NotificationSettings:
    """Consolidated assignment email settings.

    ``subject`` / ``message`` may contain ``{project}``, replaced by the
    project name when the email is composed.
    """
    enabled: bool = True
    subject: str = DEFAULT_SUBJECT
    message: str = DEFAULT_MESSAGE
    project_name: str = "Projet"
    project_url: str = ""

    def rendered_subject(self) -> str:
        return self.subject.replace("{project}", self.project_name)

    def rendered_message(self) -> str:
        return self.message.replace("{project}", self.project_name)


@dataclass(frozen=True)
class DateSettings:
    """Bounds for reading a bare number as a spreadsheet serial date.

    Numbers outside (serial_min, serial_max) are not treated as serials so
    that plain quantities are not misread as dates.
    """
    serial_min: float = 0
    serial_max: float = 100000


@dataclass(frozen=True)
class RemoteSettings:
    export_base_url: str = DEFAULT_EXPORT_BASE_URL
    timeout_seconds: float | None = None  # None: no timeout imposed


@dataclass(frozen=True)
class ImportSettings:
    """Root settings object for an import session."""
    collaborators: tuple[Collaborator, ...] = ()
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    dates: DateSettings = field(default_factory=DateSettings)
    remote: RemoteSettings = field(default_factory=RemoteSettings)
    # Extra header synonyms per field, appended after the built-in ones
    extra_synonyms: dict[FieldKey, tuple[str, ...]] = field(default_factory=dict)
