"""
Picks the best doctor for a requested appointment time.
"""

import logging
from dataclasses import dataclass
from datetime import time
from typing import List, Optional, Tuple

from pendulum import Date

from .exceptions import InvalidInputError
from .models import Doctor, DoctorMatch, Service, TimeRange, at_time
from .slot_generator import SlotGenerator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DoctorCandidate:
    """A doctor who can take the requested time, with ranking inputs."""
    doctor: Doctor
    duration_minutes: int
    load: int
    specialty_match: bool

    def rank(self) -> Tuple[int, int, int]:
        return (0 if self.specialty_match else 1, self.load, self.doctor.id)


class DoctorSelector:
    """
    Filters and ranks the doctors of a clinic for one requested start time.

    Ranking, in order:
    1. Specialty exactly matching the service category
    2. Fewest pending/confirmed appointments that day (load balancing)
    3. Doctor id ascending
    """

    def __init__(self, slot_generator: SlotGenerator):
        self.slot_generator = slot_generator

    def find_best_doctor(
        self,
        day: Date,
        start_time: time,
        service: Optional[Service] = None,
        exclude_doctor_id: Optional[int] = None,
    ) -> Optional[DoctorMatch]:
        """
        Return the best doctor free at ``start_time``, or None if nobody is.

        ``exclude_doctor_id`` skips one doctor, e.g. when an appointment has
        to move away from its current doctor.
        """
        candidates = self.find_candidates(day, start_time, service, exclude_doctor_id)
        if not candidates:
            return None

        best = min(candidates, key=DoctorCandidate.rank)
        return DoctorMatch(
            doctor_id=best.doctor.id,
            name=best.doctor.name,
            specialty=best.doctor.primary_specialty,
            duration_minutes=best.duration_minutes,
            load_score=best.load,
        )

    def find_candidates(
        self,
        day: Date,
        start_time: time,
        service: Optional[Service] = None,
        exclude_doctor_id: Optional[int] = None,
    ) -> List[DoctorCandidate]:
        """All doctors eligible and free for the requested interval, unranked."""
        generator = self.slot_generator
        category = service.category if service is not None else None
        candidates: List[DoctorCandidate] = []

        for doctor in generator.clinic.active_doctors():
            if doctor.id == exclude_doctor_id:
                continue
            if service is not None and not service.is_qualified(doctor.id):
                continue
            if not generator.is_bookable_day(doctor, day):
                continue
            if generator.has_reached_daily_limit(doctor, day):
                continue

            duration = generator.resolve_duration(doctor, service)
            if duration is None:
                logger.debug("Skipping doctor %s without appointment duration", doctor.id)
                continue
            if duration <= 0:
                raise InvalidInputError(
                    f"duration_minutes must be greater than zero, got {duration}"
                )

            start = at_time(day, start_time, generator.clinic.timezone)
            requested = TimeRange(start=start, end=start.add(minutes=duration))

            if not self._within_working_hours(doctor, day, requested):
                continue
            if any(requested.overlaps(busy) for busy in generator.blocking_ranges(doctor.id, day)):
                continue

            candidates.append(
                DoctorCandidate(
                    doctor=doctor,
                    duration_minutes=duration,
                    load=generator.booked_count(doctor.id, day),
                    specialty_match=doctor.has_specialty(category),
                )
            )

        return candidates

    def _within_working_hours(self, doctor: Doctor, day: Date, requested: TimeRange) -> bool:
        blocks = doctor.working_hours.ranges_for_day(day, self.slot_generator.clinic.timezone)
        return any(block.contains(requested) for block in blocks)
