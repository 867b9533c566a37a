"""
Bounded forward search for the earliest open slot of a clinic.
"""

from typing import Optional

from pendulum import Date, DateTime

from .exceptions import InvalidInputError
from .models import Service, Slot
from .slot_generator import SlotGenerator

HORIZON_DAYS = 30


class NextAvailableFinder:
    """
    Scans consecutive days, starting at ``start_date``, for the first
    available slot. The scan covers ``horizon_days`` days and never more,
    so the worst-case cost of a query is fixed.
    """

    def __init__(self, slot_generator: SlotGenerator, horizon_days: int = HORIZON_DAYS):
        if horizon_days <= 0:
            raise InvalidInputError(f"horizon_days must be greater than zero, got {horizon_days}")
        self.slot_generator = slot_generator
        self.horizon_days = horizon_days

    def find_next_available(
        self,
        start_date: Date,
        service: Optional[Service] = None,
        doctor_id: Optional[int] = None,
        not_before: Optional[DateTime] = None,
    ) -> Optional[Slot]:
        """
        Find the earliest available slot within the horizon.

        Args:
            start_date: First day to scan
            service: Optional service restricting doctors and fixing the duration
            doctor_id: Optional doctor filter
            not_before: Slots starting earlier than this are skipped

        Returns:
            The first available slot by date, start time and doctor id,
            or None if the horizon is exhausted
        """
        day = start_date

        for _ in range(self.horizon_days):
            slots = self.slot_generator.generate_clinic_slots(day, service=service, doctor_id=doctor_id)

            for slot in slots:
                if not slot.available:
                    continue
                if not_before is not None and slot.start < not_before:
                    continue
                return slot

            day = day.add(days=1)

        return None
