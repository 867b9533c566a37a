"""
Clinic-wide capacity statistics for a single day.
"""

from pendulum import Date

from .models import CapacitySnapshot
from .slot_generator import SlotGenerator


class CapacityCalculator:
    """
    Aggregates the slots of every active doctor into a CapacitySnapshot.

    Capacity always uses each doctor's default duration, independent of any
    service, since it describes the clinic as a whole rather than a booking.
    """

    def __init__(self, slot_generator: SlotGenerator):
        self.slot_generator = slot_generator

    def compute_capacity(self, day: Date) -> CapacitySnapshot:
        total = 0
        booked = 0

        for doctor in self.slot_generator.clinic.active_doctors():
            slots = self.slot_generator.generate_slots(doctor, day)
            total += len(slots)
            booked += sum(1 for slot in slots if not slot.available)

        return CapacitySnapshot.from_counts(
            clinic_id=self.slot_generator.clinic.id,
            day=day,
            total=total,
            booked=booked,
        )
