"""
Core business logic for generating appointment slots.

Pure domain logic: no API calls, no database, no I/O. Capacity, doctor
selection and the next-available search are all built on the slots
produced here.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from pendulum import Date

from .exceptions import InvalidInputError
from .models import Appointment, Clinic, Doctor, Service, Slot, TimeRange

logger = logging.getLogger(__name__)


class SlotGenerator:
    """
    Generates fixed-length appointment slots for the doctors of one clinic.

    Algorithm:
    1. Look up the doctor's open intervals for the weekday of the date
    2. Walk each interval in ``duration`` steps; consecutive slots touch
    3. Mark a slot unavailable when it overlaps a pending/confirmed appointment
    4. Offer only as many free slots as the daily cap still allows

    Appointments count towards the day they start on, but block time on
    every day they touch.
    """

    def __init__(self, clinic: Clinic, appointments: Iterable[Appointment]):
        self.clinic = clinic
        self._blocking: Dict[Tuple[int, Date], List[TimeRange]] = defaultdict(list)
        self._booked: Dict[Tuple[int, Date], int] = defaultdict(int)

        for appointment in appointments:
            if appointment.clinic_id != clinic.id or not appointment.blocks_slot:
                continue

            start = appointment.time_range.start.in_timezone(clinic.timezone)
            end = appointment.time_range.end.in_timezone(clinic.timezone)
            self._booked[(appointment.doctor_id, start.date())] += 1

            # an appointment ending exactly at midnight does not touch the next day
            day = start.date()
            last_day = end.subtract(microseconds=1).date()
            while day <= last_day:
                self._blocking[(appointment.doctor_id, day)].append(appointment.time_range)
                day = day.add(days=1)

        for ranges in self._blocking.values():
            ranges.sort(key=lambda r: r.start)

    def resolve_duration(self, doctor: Doctor, service: Optional[Service] = None) -> Optional[int]:
        """
        Return the appointment length for a doctor, preferring the service's
        fixed duration over the doctor's default. ``None`` means neither is
        configured.
        """
        if service is not None and service.duration_minutes:
            return service.duration_minutes
        return doctor.default_duration_minutes

    def blocking_ranges(self, doctor_id: int, day: Date) -> List[TimeRange]:
        """Pending/confirmed appointment ranges of a doctor on a day."""
        return list(self._blocking.get((doctor_id, day), []))

    def booked_count(self, doctor_id: int, day: Date) -> int:
        """Number of pending/confirmed appointments a doctor starts on a day."""
        return self._booked.get((doctor_id, day), 0)

    def is_bookable_day(self, doctor: Doctor, day: Date) -> bool:
        """Check the doctor is active, not on leave and the clinic is open."""
        if not doctor.active:
            return False
        if self.clinic.is_closed_on(day):
            return False
        return not doctor.is_on_leave(day)

    def remaining_allowance(self, doctor: Doctor, day: Date) -> Optional[int]:
        """Appointments the doctor may still take that day; None without a cap."""
        if doctor.max_daily_appointments is None:
            return None
        return max(0, doctor.max_daily_appointments - self.booked_count(doctor.id, day))

    def has_reached_daily_limit(self, doctor: Doctor, day: Date) -> bool:
        return self.remaining_allowance(doctor, day) == 0

    def generate_slots(
        self,
        doctor: Doctor,
        day: Date,
        duration_minutes: Optional[int] = None,
    ) -> List[Slot]:
        """
        Generate all candidate slots of one doctor on one day.

        Args:
            doctor: Doctor of this clinic
            day: Calendar day in the clinic's timezone
            duration_minutes: Slot length; defaults to the doctor's default duration

        Returns:
            Slots ordered by start time, each flagged available or not.
            Empty when the doctor does not work that day.

        Raises:
            InvalidInputError: If the duration is not positive
        """
        if duration_minutes is None:
            duration_minutes = doctor.default_duration_minutes

        if duration_minutes is None:
            logger.debug("Doctor %s has no appointment duration configured", doctor.id)
            return []

        if duration_minutes <= 0:
            raise InvalidInputError(
                f"duration_minutes must be greater than zero, got {duration_minutes}"
            )

        if not self.is_bookable_day(doctor, day):
            return []

        working_blocks = doctor.working_hours.ranges_for_day(day, self.clinic.timezone)
        if not working_blocks:
            return []

        busy = self.blocking_ranges(doctor.id, day)
        allowance = self.remaining_allowance(doctor, day)

        slots: List[Slot] = []
        for block in working_blocks:
            for candidate in self._split_block(block, duration_minutes):
                available = not any(candidate.overlaps(booked) for booked in busy)

                # the earliest free slots use up the remaining daily allowance
                if available and allowance is not None:
                    if allowance > 0:
                        allowance -= 1
                    else:
                        available = False

                slots.append(
                    Slot(
                        clinic_id=self.clinic.id,
                        doctor_id=doctor.id,
                        time_range=candidate,
                        available=available,
                        doctor_name=doctor.name,
                    )
                )

        return slots

    def generate_clinic_slots(
        self,
        day: Date,
        service: Optional[Service] = None,
        doctor_id: Optional[int] = None,
    ) -> List[Slot]:
        """
        Union of the slots of all active doctors on a day.

        Args:
            day: Calendar day in the clinic's timezone
            service: Optional service; restricts doctors and fixes the duration
            doctor_id: Optional doctor filter

        Returns:
            Slots ordered by start time, then doctor id
        """
        slots: List[Slot] = []

        for doctor in self.clinic.active_doctors():
            if doctor_id is not None and doctor.id != doctor_id:
                continue
            if service is not None and not service.is_qualified(doctor.id):
                continue

            slots.extend(
                self.generate_slots(doctor, day, self.resolve_duration(doctor, service))
            )

        return sorted(slots, key=Slot.sort_key)

    def _split_block(self, block: TimeRange, duration_minutes: int) -> List[TimeRange]:
        """
        Cut a working block into back-to-back ranges of equal length.

        Example:
        Working: 09:00 - 10:45, 30 minutes
        Result: [09:00-09:30, 09:30-10:00, 10:00-10:30]
        """
        ranges: List[TimeRange] = []
        current = block.start

        while True:
            end = current.add(minutes=duration_minutes)
            if end > block.end:
                break
            ranges.append(TimeRange(start=current, end=end))
            current = end

        return ranges
