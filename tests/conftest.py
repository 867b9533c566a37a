"""
Shared builders for clinic, doctor and appointment fixtures.
"""

from datetime import time
from typing import Dict, List, Optional, Sequence, Tuple

import pendulum
import pytest

from clinicslots.domain.models import (
    Appointment,
    AppointmentStatus,
    Clinic,
    Doctor,
    TimeRange,
    WorkingHoursTemplate,
    WorkingInterval,
)

TZ = "Europe/Berlin"
MONDAY = pendulum.date(2024, 6, 3)


def _parse_clock(value: str) -> time:
    hour, minute = value.split(":")
    return time(int(hour), int(minute))


@pytest.fixture
def make_doctor():
    """Build a doctor from compact ``{weekday: [("09:00", "11:00")]}`` hours."""

    def _make(
        doctor_id: int,
        hours: Optional[Dict[int, Sequence[Tuple[str, str]]]] = None,
        duration: Optional[int] = 30,
        **kwargs,
    ) -> Doctor:
        if hours is None:
            hours = {0: [("09:00", "11:00")]}
        template = WorkingHoursTemplate(
            intervals={
                weekday: [WorkingInterval(_parse_clock(s), _parse_clock(e)) for s, e in intervals]
                for weekday, intervals in hours.items()
            }
        )
        kwargs.setdefault("name", f"Dr. {doctor_id}")
        return Doctor(id=doctor_id, working_hours=template, default_duration_minutes=duration, **kwargs)

    return _make


@pytest.fixture
def make_appointment():
    """Build an appointment on a day from ``HH:MM`` strings."""
    counter = {"next_id": 1}

    def _make(
        doctor_id: int,
        start: str,
        end: str,
        day=MONDAY,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        clinic_id: int = 1,
    ) -> Appointment:
        appointment_id = counter["next_id"]
        counter["next_id"] += 1
        return Appointment(
            id=appointment_id,
            clinic_id=clinic_id,
            doctor_id=doctor_id,
            time_range=TimeRange(
                start=pendulum.parse(f"{day.to_date_string()} {start}", tz=TZ),
                end=pendulum.parse(f"{day.to_date_string()} {end}", tz=TZ),
            ),
            status=status,
        )

    return _make


@pytest.fixture
def make_clinic():
    def _make(doctors: List[Doctor], **kwargs) -> Clinic:
        kwargs.setdefault("name", "Praxis am Markt")
        return Clinic(id=1, timezone=TZ, doctors=doctors, **kwargs)

    return _make
