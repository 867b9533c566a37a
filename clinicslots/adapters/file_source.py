"""
File-backed schedule source and booking ledger.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List

import yaml
from pendulum import Date
from pydantic import ValidationError

from ..domain.exceptions import DataSourceError, UnknownEntityError
from ..domain.models import Appointment, Clinic
from .schemas import ClinicRecord, DataDocument

logger = logging.getLogger(__name__)


class FileDataSource:
    """
    Serves clinics and appointments from a YAML or JSON document.

    The document is read once on construction; call ``reload()`` to pick up
    changes. Useful for fixtures, demos and offline runs of the CLI.

    Document layout::

        clinics:
          - id: 1
            timezone: Europe/Berlin
            doctors: [...]
            services: [...]
        appointments:
          - {id: 1, clinic_id: 1, doctor_id: 1, start: ..., end: ..., status: confirmed}
    """

    def __init__(self, path: Path, default_timezone: str = "Europe/Berlin"):
        """
        Initialize the file source.

        Args:
            path: Path to a ``.yaml``/``.yml`` or ``.json`` document
            default_timezone: Timezone for clinics that do not declare one

        Raises:
            DataSourceError: If the file is missing, unreadable or malformed
        """
        self.path = Path(path)
        self.default_timezone = default_timezone
        self._clinics: Dict[int, ClinicRecord] = {}
        self._document = DataDocument()
        self.reload()

    def reload(self) -> None:
        """Re-read the document from disk."""
        data = self._read_raw()

        try:
            document = DataDocument.model_validate(data)
        except ValidationError as exc:
            raise DataSourceError(f"Invalid clinic data in {self.path}: {exc}") from exc

        self._document = document
        self._clinics = {record.id: record for record in document.clinics}
        logger.debug(
            "Loaded %d clinic(s) and %d appointment(s) from %s",
            len(document.clinics),
            len(document.appointments),
            self.path,
        )

    def get_clinic(self, clinic_id: int) -> Clinic:
        """
        Return the clinic with its doctors and services.

        Raises:
            UnknownEntityError: If the clinic does not exist
        """
        record = self._clinics.get(clinic_id)
        if record is None:
            raise UnknownEntityError(f"Clinic {clinic_id} not found")
        return record.to_domain(self.default_timezone)

    def get_appointments(self, clinic: Clinic, start_date: Date, end_date: Date) -> List[Appointment]:
        """
        Return the clinic's appointments starting between the two days
        (inclusive, in the clinic's timezone), any status.
        """
        appointments: List[Appointment] = []

        for record in self._document.appointments:
            if record.clinic_id != clinic.id:
                continue

            try:
                appointment = record.to_domain(clinic.timezone)
            except ValueError as exc:
                raise DataSourceError(f"Invalid appointment {record.id} in {self.path}: {exc}") from exc

            if start_date <= appointment.date <= end_date:
                appointments.append(appointment)

        return appointments

    def _read_raw(self) -> dict:
        if not self.path.exists():
            raise DataSourceError(f"Clinic data file not found: {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                if self.path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
            raise DataSourceError(f"Could not read clinic data from {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise DataSourceError("Clinic data file must contain a mapping at the root level.")

        return data
