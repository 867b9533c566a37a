"""
Pydantic records describing clinic data as it arrives from a data source.

The records validate and normalise raw payloads (YAML/JSON documents, REST
responses) and convert them into domain objects. Schema inconsistencies of
the upstream platform - ``specialty`` vs ``specialization``, ``staff_id`` vs
``doctor_id`` - are resolved here so the domain only sees one spelling.
"""

from datetime import date as date_type, datetime, time
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import Date
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from ..domain.models import (
    Appointment,
    AppointmentStatus,
    Clinic,
    Doctor,
    Holiday,
    Service,
    TimeRange,
    UnavailabilityPeriod,
    WorkingHoursTemplate,
    WorkingInterval,
)

WEEKDAY_KEYS = {
    "monday": 0, "mon": 0, "montag": 0,
    "tuesday": 1, "tue": 1, "dienstag": 1,
    "wednesday": 2, "wed": 2, "mittwoch": 2,
    "thursday": 3, "thu": 3, "donnerstag": 3,
    "friday": 4, "fri": 4, "freitag": 4,
    "saturday": 5, "sat": 5, "samstag": 5,
    "sunday": 6, "sun": 6, "sonntag": 6,
}


def to_pendulum_date(value: date_type) -> Date:
    return pendulum.date(value.year, value.month, value.day)


def _parse_weekday(key: Any) -> int:
    if isinstance(key, int) or (isinstance(key, str) and key.strip().isdigit()):
        weekday = int(key)
    elif isinstance(key, str) and key.strip().lower() in WEEKDAY_KEYS:
        weekday = WEEKDAY_KEYS[key.strip().lower()]
    else:
        raise ValueError(f"Unknown weekday: {key!r}")

    if weekday not in range(7):
        raise ValueError(f"Weekday must be between 0 and 6, got {weekday}")
    return weekday


class IntervalRecord(BaseModel):
    start: time
    end: time

    @classmethod
    def coerce(cls, value: Any) -> Any:
        """Accept the compact ``"09:00-13:00"`` form next to a mapping."""
        if isinstance(value, str):
            start, sep, end = value.partition("-")
            if not sep:
                raise ValueError(f"Interval must look like 'HH:MM-HH:MM', got {value!r}")
            return {"start": start.strip(), "end": end.strip()}
        return value

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_sexagesimal(cls, value: Any) -> Any:
        # YAML 1.1 reads unquoted 14:00 as the base-60 integer 840
        if isinstance(value, int) and not isinstance(value, bool):
            hours, minutes = divmod(value, 60)
            return time(hour=hours, minute=minutes)
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "IntervalRecord":
        if self.start >= self.end:
            raise ValueError(f"Interval start {self.start} must be before end {self.end}")
        return self


class UnavailabilityRecord(BaseModel):
    start_date: date_type
    end_date: date_type
    reason: str = ""

    def to_domain(self) -> UnavailabilityPeriod:
        return UnavailabilityPeriod(
            start_date=to_pendulum_date(self.start_date),
            end_date=to_pendulum_date(self.end_date),
            reason=self.reason,
        )


class HolidayRecord(BaseModel):
    date: date_type
    name: str = ""
    recurring: bool = Field(default=False, validation_alias=AliasChoices("recurring", "is_recurring"))

    def to_domain(self) -> Holiday:
        return Holiday(date=to_pendulum_date(self.date), name=self.name, recurring=self.recurring)


class DoctorRecord(BaseModel):
    id: int
    name: str = "Unbekannt"
    specialties: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("specialties", "specialty", "specialization"),
    )
    default_duration_minutes: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("default_duration_minutes", "appointment_duration_minutes"),
    )
    active: bool = Field(default=True, validation_alias=AliasChoices("active", "is_active"))
    max_daily_appointments: Optional[int] = None
    working_hours: Dict[int, List[IntervalRecord]] = Field(default_factory=dict)
    unavailability: List[UnavailabilityRecord] = Field(default_factory=list)

    @field_validator("specialties", mode="before")
    @classmethod
    def normalize_specialties(cls, value: Any) -> Any:
        """Accept a single specialty string or a list; drop blanks."""
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            return [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return value

    @field_validator("working_hours", mode="before")
    @classmethod
    def normalize_working_hours(cls, value: Any) -> Any:
        """Map weekday names to 0=Monday..6=Sunday and expand compact intervals."""
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("working_hours must be a mapping of weekday to intervals")

        normalized: Dict[int, List[Any]] = {}
        for key, intervals in value.items():
            weekday = _parse_weekday(key)
            if intervals is None:
                intervals = []
            if not isinstance(intervals, list):
                intervals = [intervals]
            normalized.setdefault(weekday, []).extend(IntervalRecord.coerce(i) for i in intervals)
        return normalized

    @field_validator("default_duration_minutes", "max_daily_appointments")
    @classmethod
    def validate_positive(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    def to_domain(self) -> Doctor:
        template = WorkingHoursTemplate(
            intervals={
                weekday: [WorkingInterval(start_time=i.start, end_time=i.end) for i in intervals]
                for weekday, intervals in self.working_hours.items()
            }
        )
        return Doctor(
            id=self.id,
            name=self.name,
            working_hours=template,
            specialties=tuple(self.specialties),
            default_duration_minutes=self.default_duration_minutes,
            active=self.active,
            max_daily_appointments=self.max_daily_appointments,
            unavailability=[period.to_domain() for period in self.unavailability],
        )


class ServiceRecord(BaseModel):
    id: int
    name: str = ""
    duration_minutes: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("duration_minutes", "duration"),
    )
    qualified_doctor_ids: List[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("qualified_doctor_ids", "staff_ids"),
    )
    category: Optional[str] = None

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError(f"duration_minutes must be greater than zero, got {value}")
        return value

    def to_domain(self) -> Service:
        return Service(
            id=self.id,
            name=self.name,
            duration_minutes=self.duration_minutes,
            qualified_doctor_ids=frozenset(self.qualified_doctor_ids),
            category=self.category,
        )


class ClinicRecord(BaseModel):
    id: int
    name: str = ""
    timezone: Optional[str] = None
    doctors: List[DoctorRecord] = Field(default_factory=list)
    services: List[ServiceRecord] = Field(default_factory=list)
    holidays: List[HolidayRecord] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                pendulum.timezone(value)
            except (KeyError, ValueError) as exc:
                raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def to_domain(self, default_timezone: str = "Europe/Berlin") -> Clinic:
        """Convert to a domain clinic; a missing timezone falls back to the default."""
        return Clinic(
            id=self.id,
            name=self.name,
            timezone=self.timezone or default_timezone,
            doctors=[doctor.to_domain() for doctor in self.doctors],
            services=[service.to_domain() for service in self.services],
            holidays=[holiday.to_domain() for holiday in self.holidays],
        )


class AppointmentRecord(BaseModel):
    id: int
    clinic_id: int
    doctor_id: int = Field(validation_alias=AliasChoices("doctor_id", "staff_id"))
    start: datetime = Field(validation_alias=AliasChoices("start", "start_time"))
    end: datetime = Field(validation_alias=AliasChoices("end", "end_time"))
    status: AppointmentStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("_", "-")
        return value

    def to_domain(self, timezone: str) -> Appointment:
        """
        Convert to a domain appointment. Naive timestamps are interpreted in
        the clinic's timezone.
        """
        start = pendulum.instance(self.start, tz=timezone).in_timezone(timezone)
        end = pendulum.instance(self.end, tz=timezone).in_timezone(timezone)
        return Appointment(
            id=self.id,
            clinic_id=self.clinic_id,
            doctor_id=self.doctor_id,
            time_range=TimeRange(start=start, end=end),
            status=self.status,
        )


class DataDocument(BaseModel):
    """Root of a clinic data file: clinics plus the booking ledger."""
    clinics: List[ClinicRecord] = Field(default_factory=list)
    appointments: List[AppointmentRecord] = Field(default_factory=list)
