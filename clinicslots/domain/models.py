"""
Domain models for clinic schedules and derived availability values.
"""

from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

import pendulum
from pendulum import Date, DateTime

WEEKDAY_NAMES = {
    0: "Montag",
    1: "Dienstag",
    2: "Mittwoch",
    3: "Donnerstag",
    4: "Freitag",
    5: "Samstag",
    6: "Sonntag",
}


def at_time(day: Date, clock: time, timezone: str) -> DateTime:
    """Combine a calendar day and a wall-clock time in the given timezone."""
    return pendulum.datetime(
        day.year,
        day.month,
        day.day,
        clock.hour,
        clock.minute,
        clock.second,
        tz=timezone,
    )


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def contains(self, other: "TimeRange") -> bool:
        """Check if another range lies completely inside this one."""
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class WorkingInterval:
    """One open interval of a working day, e.g. 09:00-13:00."""
    start_time: time
    end_time: time

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Interval start {self.start_time} must be before end {self.end_time}"
            )

    def on(self, day: Date, timezone: str) -> TimeRange:
        """Anchor the interval on a concrete day."""
        return TimeRange(
            start=at_time(day, self.start_time, timezone),
            end=at_time(day, self.end_time, timezone),
        )


def merge_intervals(intervals: List[WorkingInterval]) -> List[WorkingInterval]:
    """
    Sort intervals by start and merge the ones that overlap.

    Touching intervals (09:00-13:00, 13:00-17:00) stay separate.
    """
    merged: List[WorkingInterval] = []

    for interval in sorted(intervals, key=lambda i: i.start_time):
        if merged and interval.start_time < merged[-1].end_time:
            last = merged[-1]
            merged[-1] = WorkingInterval(last.start_time, max(last.end_time, interval.end_time))
        else:
            merged.append(interval)

    return merged


@dataclass
class WorkingHoursTemplate:
    """
    Recurring weekly schedule of a doctor.

    Keys are weekdays (0=Monday, 6=Sunday); a weekday without an entry is a
    day off.
    """
    intervals: Dict[int, List[WorkingInterval]] = field(default_factory=dict)

    def __post_init__(self):
        self.intervals = {
            weekday: merge_intervals(intervals) for weekday, intervals in self.intervals.items()
        }

    def intervals_for(self, day: Date) -> List[WorkingInterval]:
        """Return the open intervals for the weekday of ``day``, ordered by start."""
        return list(self.intervals.get(day.weekday(), []))

    def ranges_for_day(self, day: Date, timezone: str) -> List[TimeRange]:
        """Return the open intervals of ``day`` as concrete time ranges."""
        return [interval.on(day, timezone) for interval in self.intervals_for(day)]


@dataclass(frozen=True)
class UnavailabilityPeriod:
    """A doctor's leave, inclusive on both ends."""
    start_date: Date
    end_date: Date
    reason: str = ""

    def includes(self, day: Date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class Holiday:
    """A day the whole clinic is closed."""
    date: Date
    name: str = ""
    recurring: bool = False  # repeats every year on the same month/day

    def falls_on(self, day: Date) -> bool:
        if self.recurring:
            return (self.date.month, self.date.day) == (day.month, day.day)
        return self.date == day


@dataclass
class Doctor:
    """A doctor working at exactly one clinic."""
    id: int
    name: str
    working_hours: WorkingHoursTemplate = field(default_factory=WorkingHoursTemplate)
    specialties: Tuple[str, ...] = ()
    default_duration_minutes: Optional[int] = None
    active: bool = True
    max_daily_appointments: Optional[int] = None  # None = no daily cap
    unavailability: List[UnavailabilityPeriod] = field(default_factory=list)

    def is_on_leave(self, day: Date) -> bool:
        return any(period.includes(day) for period in self.unavailability)

    def has_specialty(self, category: Optional[str]) -> bool:
        """Check for an exact (case-insensitive) specialty match."""
        if not category:
            return False
        wanted = category.strip().lower()
        return any(specialty.strip().lower() == wanted for specialty in self.specialties)

    @property
    def primary_specialty(self) -> Optional[str]:
        return self.specialties[0] if self.specialties else None


@dataclass
class Service:
    """A bookable service; its duration overrides the doctor default."""
    id: int
    name: str
    duration_minutes: Optional[int] = None
    qualified_doctor_ids: FrozenSet[int] = frozenset()  # empty = any active doctor
    category: Optional[str] = None

    def is_qualified(self, doctor_id: int) -> bool:
        return not self.qualified_doctor_ids or doctor_id in self.qualified_doctor_ids


@dataclass
class Clinic:
    """A clinic with its doctors, services and closure days."""
    id: int
    name: str
    timezone: str = "Europe/Berlin"
    doctors: List[Doctor] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)
    holidays: List[Holiday] = field(default_factory=list)

    def active_doctors(self) -> List[Doctor]:
        """Active doctors ordered by id."""
        return sorted((d for d in self.doctors if d.active), key=lambda d: d.id)

    def find_doctor(self, doctor_id: int) -> Optional[Doctor]:
        for doctor in self.doctors:
            if doctor.id == doctor_id:
                return doctor
        return None

    def find_service(self, service_id: int) -> Optional[Service]:
        for service in self.services:
            if service.id == service_id:
                return service
        return None

    def is_closed_on(self, day: Date) -> bool:
        return any(holiday.falls_on(day) for holiday in self.holidays)


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no-show"

    @property
    def blocks_slot(self) -> bool:
        """Only pending and confirmed appointments occupy a doctor's time."""
        return self in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


@dataclass(frozen=True)
class Appointment:
    """An appointment as recorded by the booking ledger (read-only here)."""
    id: int
    clinic_id: int
    doctor_id: int
    time_range: TimeRange
    status: AppointmentStatus

    @property
    def date(self) -> Date:
        return self.time_range.start.date()

    @property
    def blocks_slot(self) -> bool:
        return self.status.blocks_slot


@dataclass(frozen=True)
class Slot:
    """
    A candidate appointment interval for one doctor.

    Derived on every query; never stored.
    """
    clinic_id: int
    doctor_id: int
    time_range: TimeRange
    available: bool
    doctor_name: str = ""

    @property
    def date(self) -> Date:
        return self.time_range.start.date()

    @property
    def start(self) -> DateTime:
        return self.time_range.start

    @property
    def end(self) -> DateTime:
        return self.time_range.end

    def sort_key(self) -> Tuple[DateTime, int]:
        """Ordering by date, start time, then doctor id."""
        return self.time_range.start, self.doctor_id

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Wochentag, DD.MM.YYYY | HH:MM – HH:MM Uhr
        """
        start = self.time_range.start
        end = self.time_range.end

        weekday = WEEKDAY_NAMES[start.weekday()]
        date_str = start.format("DD.MM.YYYY")
        time_str = f"{start.format('HH:mm')} – {end.format('HH:mm')} Uhr"
        duration = self.time_range.duration_minutes()

        return f"{weekday}, {date_str} | {time_str} ({duration} Min.)"


@dataclass(frozen=True)
class CapacitySnapshot:
    """Slot statistics of one clinic on one day."""
    clinic_id: int
    date: Date
    total: int
    booked: int
    available: int
    utilization: float

    @classmethod
    def from_counts(cls, clinic_id: int, day: Date, total: int, booked: int) -> "CapacitySnapshot":
        utilization = booked / total if total else 0.0
        return cls(
            clinic_id=clinic_id,
            date=day,
            total=total,
            booked=booked,
            available=total - booked,
            utilization=utilization,
        )


@dataclass(frozen=True)
class DoctorMatch:
    """The doctor picked for a requested time."""
    doctor_id: int
    name: str
    specialty: Optional[str]
    duration_minutes: int
    load_score: int  # pending/confirmed appointments already booked that day
