"""
REST client reading clinic schedules and appointments from the platform backend.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pendulum import Date
from pydantic import ValidationError

from ..domain.exceptions import DataSourceError, UnknownEntityError
from ..domain.models import Appointment, Clinic
from .schemas import AppointmentRecord, ClinicRecord

logger = logging.getLogger(__name__)


class HttpDataSource:
    """
    Client for the clinic platform's REST API.

    Endpoints used:
    - ``GET {base_url}/clinics/{id}/schedule``
    - ``GET {base_url}/clinics/{id}/appointments?start_date=...&end_date=...``

    Responses may be bare JSON or wrapped in the platform's
    ``{"success": true, "data": ...}`` envelope. Failures are never retried
    here; they surface as ``DataSourceError``.
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        default_timezone: str = "Europe/Berlin",
    ):
        """
        Initialize the REST client.

        Args:
            base_url: API root, e.g. ``https://clinic.example.com/api``
            api_token: Optional bearer token
            timeout: Request timeout in seconds
            session: Optional preconfigured session (handy for tests)
            default_timezone: Timezone for clinics that do not declare one
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.default_timezone = default_timezone
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/json"}
        if api_token:
            self.headers["Authorization"] = f"Bearer {api_token}"

    def get_clinic(self, clinic_id: int) -> Clinic:
        """
        Fetch a clinic with its doctors, services and closure days.

        Raises:
            UnknownEntityError: If the backend answers 404
            DataSourceError: On transport errors or malformed payloads
        """
        payload = self._get(f"/clinics/{clinic_id}/schedule", missing=f"Clinic {clinic_id} not found")

        try:
            return ClinicRecord.model_validate(payload).to_domain(self.default_timezone)
        except ValidationError as exc:
            raise DataSourceError(f"Malformed schedule for clinic {clinic_id}: {exc}") from exc

    def get_appointments(self, clinic: Clinic, start_date: Date, end_date: Date) -> List[Appointment]:
        """Fetch the clinic's appointments between two days (inclusive)."""
        payload = self._get(
            f"/clinics/{clinic.id}/appointments",
            params={
                "start_date": start_date.to_date_string(),
                "end_date": end_date.to_date_string(),
            },
            missing=f"Clinic {clinic.id} not found",
        )

        if isinstance(payload, dict):
            payload = payload.get("appointments", [])
        if not isinstance(payload, list):
            raise DataSourceError(f"Expected a list of appointments for clinic {clinic.id}")

        appointments: List[Appointment] = []
        for item in payload:
            try:
                appointments.append(AppointmentRecord.model_validate(item).to_domain(clinic.timezone))
            except ValueError as exc:  # includes pydantic's ValidationError
                raise DataSourceError(f"Malformed appointment for clinic {clinic.id}: {exc}") from exc

        return appointments

    def _get(self, path: str, missing: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s params=%s", url, params)

        try:
            response = self.session.get(url, headers=self.headers, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise DataSourceError(f"Request to {url} failed: {exc}") from exc

        if response.status_code == 404:
            raise UnknownEntityError(missing)

        try:
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as exc:
            raise DataSourceError(f"Request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise DataSourceError(f"Invalid JSON from {url}: {exc}") from exc

        if isinstance(data, dict) and "data" in data:
            if data.get("success") is False:
                raise DataSourceError(f"Backend reported an error for {url}: {data.get('message')}")
            return data["data"]
        return data
