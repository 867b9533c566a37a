"""
Application service answering availability queries for one clinic at a time.

The service fetches the clinic configuration and a booking-ledger snapshot
through two small protocols and delegates every calculation to the domain
layer. This keeps callers (CLI, web handlers) thin and makes the data
sources easy to replace with stubs in tests.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Callable, List, Optional, Protocol, Union

import pendulum
from pendulum import Date, DateTime

from ..config import SearchConfig
from ..domain.capacity_calculator import CapacityCalculator
from ..domain.doctor_selector import DoctorSelector
from ..domain.exceptions import DataSourceError, InvalidInputError, UnknownEntityError
from ..domain.models import Appointment, CapacitySnapshot, Clinic, DoctorMatch, Service, Slot
from ..domain.next_available import NextAvailableFinder
from ..domain.range_aggregator import RangeAggregator, check_range
from ..domain.slot_generator import SlotGenerator

logger = logging.getLogger(__name__)

DateLike = Union[Date, date, str]


class ScheduleSourceProtocol(Protocol):
    """Supplies clinics with their doctors, services and working hours."""

    def get_clinic(self, clinic_id: int) -> Clinic:
        """Return the clinic or raise UnknownEntityError."""


class BookingLedgerProtocol(Protocol):
    """Supplies the appointments already recorded for a clinic."""

    def get_appointments(self, clinic: Clinic, start_date: Date, end_date: Date) -> List[Appointment]:
        """Return appointments starting between both days (inclusive)."""


class AppointmentAvailabilityService:
    """
    Entry point for the five availability operations.

    Every call reads fresh data, computes its result and keeps nothing, so one
    instance can serve concurrent requests.
    """

    def __init__(
        self,
        schedule_source: ScheduleSourceProtocol,
        booking_ledger: BookingLedgerProtocol,
        search: Optional[SearchConfig] = None,
        clock: Optional[Callable[[str], DateTime]] = None,
    ) -> None:
        self._schedule_source = schedule_source
        self._booking_ledger = booking_ledger
        self._search = search or SearchConfig()
        self._clock = clock or pendulum.now

    def get_clinic(self, clinic_id: int) -> Clinic:
        """Clinic configuration as seen by the engine."""
        return self._load_clinic(clinic_id)

    def get_available_slots(
        self,
        clinic_id: int,
        day: DateLike,
        service_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
    ) -> List[Slot]:
        """
        All slots of the clinic on ``day``, ordered by start time and doctor id.

        Raises:
            InvalidInputError: If ``day`` is in the past
            UnknownEntityError: If the clinic, service or doctor does not exist
        """
        day = self.parse_date(day)
        logger.debug("Slots requested: clinic=%s date=%s service=%s doctor=%s", clinic_id, day, service_id, doctor_id)

        clinic = self._load_clinic(clinic_id)
        self._ensure_not_past(clinic, day)
        service = self._resolve_service(clinic, service_id)
        self._ensure_doctor_exists(clinic, doctor_id)

        generator = self._build_generator(clinic, day, day)
        return generator.generate_clinic_slots(day, service=service, doctor_id=doctor_id)

    def get_clinic_capacity(self, clinic_id: int, day: DateLike) -> CapacitySnapshot:
        """Capacity statistics of the clinic on ``day`` (past days allowed)."""
        day = self.parse_date(day)
        logger.debug("Capacity requested: clinic=%s date=%s", clinic_id, day)

        clinic = self._load_clinic(clinic_id)
        generator = self._build_generator(clinic, day, day)
        return CapacityCalculator(generator).compute_capacity(day)

    def find_best_doctor(
        self,
        clinic_id: int,
        day: DateLike,
        start_time: Union[time, str],
        service_id: Optional[int] = None,
        exclude_doctor_id: Optional[int] = None,
    ) -> Optional[DoctorMatch]:
        """
        Pick the doctor for an appointment starting at ``start_time``.

        Pass ``exclude_doctor_id`` to reassign an appointment away from its
        current doctor.

        Returns:
            The best DoctorMatch, or None if no doctor is free at that time
        """
        day = self.parse_date(day)
        start_time = self.parse_time(start_time)
        logger.debug("Best doctor requested: clinic=%s date=%s time=%s service=%s", clinic_id, day, start_time, service_id)

        clinic = self._load_clinic(clinic_id)
        self._ensure_not_past(clinic, day)
        service = self._resolve_service(clinic, service_id)
        self._ensure_doctor_exists(clinic, exclude_doctor_id)

        generator = self._build_generator(clinic, day, day)
        match = DoctorSelector(generator).find_best_doctor(day, start_time, service, exclude_doctor_id)

        if match is None:
            logger.info("No doctor available: clinic=%s date=%s time=%s", clinic_id, day, start_time)
        return match

    def get_next_available_slot(
        self,
        clinic_id: int,
        start_date: Optional[DateLike] = None,
        service_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
    ) -> Optional[Slot]:
        """
        Earliest available slot within the search horizon (30 days by default).

        ``start_date`` defaults to today in the clinic's timezone; when the
        search starts today, slots that already began are skipped.
        """
        clinic = self._load_clinic(clinic_id)
        now = self._clock(clinic.timezone)
        today = now.date()
        first_day = self.parse_date(start_date) if start_date is not None else today
        logger.debug("Next available requested: clinic=%s from=%s service=%s doctor=%s", clinic_id, first_day, service_id, doctor_id)

        self._ensure_not_past(clinic, first_day)
        service = self._resolve_service(clinic, service_id)
        self._ensure_doctor_exists(clinic, doctor_id)

        horizon = self._search.horizon_days
        last_day = first_day.add(days=horizon - 1)
        generator = self._build_generator(clinic, first_day, last_day)

        slot = NextAvailableFinder(generator, horizon_days=horizon).find_next_available(
            first_day,
            service=service,
            doctor_id=doctor_id,
            not_before=now if first_day == today else None,
        )

        if slot is None:
            logger.info("No availability within %d days: clinic=%s from=%s", horizon, clinic_id, first_day)
        return slot

    def get_capacity_range(self, clinic_id: int, start_date: DateLike, end_date: DateLike) -> List[CapacitySnapshot]:
        """
        One CapacitySnapshot per day from ``start_date`` to ``end_date``.

        Raises:
            InvalidInputError: If the range is inverted
            RangeTooLargeError: If the range exceeds ``max_range_days``
        """
        start_date = self.parse_date(start_date)
        end_date = self.parse_date(end_date)
        logger.debug("Capacity range requested: clinic=%s %s..%s", clinic_id, start_date, end_date)

        check_range(start_date, end_date, self._search.max_range_days)

        clinic = self._load_clinic(clinic_id)
        generator = self._build_generator(clinic, start_date, end_date)
        aggregator = RangeAggregator(CapacityCalculator(generator), max_range_days=self._search.max_range_days)
        return aggregator.compute_capacity_range(start_date, end_date)

    @staticmethod
    def parse_date(value: DateLike) -> Date:
        """Normalise a date argument (pendulum/stdlib date or ``YYYY-MM-DD``)."""
        if isinstance(value, datetime):
            value = value.date()
        if isinstance(value, date):
            return pendulum.date(value.year, value.month, value.day)
        if isinstance(value, str):
            try:
                return pendulum.from_format(value.strip(), "YYYY-MM-DD").date()
            except ValueError as exc:
                raise InvalidInputError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc
        raise InvalidInputError(f"Unsupported date value: {value!r}")

    @staticmethod
    def parse_time(value: Union[time, str]) -> time:
        """Normalise a time argument (``time`` or ``HH:MM``)."""
        if isinstance(value, time):
            return value
        if isinstance(value, str):
            try:
                return pendulum.from_format(value.strip(), "HH:mm").time()
            except ValueError as exc:
                raise InvalidInputError(f"Invalid time {value!r}, expected HH:MM") from exc
        raise InvalidInputError(f"Unsupported time value: {value!r}")

    def _load_clinic(self, clinic_id: int) -> Clinic:
        try:
            return self._schedule_source.get_clinic(clinic_id)
        except DataSourceError as exc:
            logger.error("Schedule source failed for clinic %s: %s", clinic_id, exc)
            raise

    def _build_generator(self, clinic: Clinic, start_date: Date, end_date: Date) -> SlotGenerator:
        # appointments crossing midnight block slots on the following day
        try:
            appointments = self._booking_ledger.get_appointments(
                clinic, start_date.subtract(days=1), end_date
            )
        except DataSourceError as exc:
            logger.error("Booking ledger failed for clinic %s: %s", clinic.id, exc)
            raise
        return SlotGenerator(clinic, appointments)

    def _ensure_not_past(self, clinic: Clinic, day: Date) -> None:
        today = self._clock(clinic.timezone).date()
        if day < today:
            raise InvalidInputError(f"Date {day} is in the past")

    @staticmethod
    def _resolve_service(clinic: Clinic, service_id: Optional[int]) -> Optional[Service]:
        if service_id is None:
            return None
        service = clinic.find_service(service_id)
        if service is None:
            raise UnknownEntityError(f"Service {service_id} not found in clinic {clinic.id}")
        return service

    @staticmethod
    def _ensure_doctor_exists(clinic: Clinic, doctor_id: Optional[int]) -> None:
        if doctor_id is not None and clinic.find_doctor(doctor_id) is None:
            raise UnknownEntityError(f"Doctor {doctor_id} not found in clinic {clinic.id}")
