"""
Domain layer - Clinic schedules, slots and the availability calculations built on them.
"""

from .capacity_calculator import CapacityCalculator
from .doctor_selector import DoctorSelector
from .models import (
    Appointment,
    AppointmentStatus,
    CapacitySnapshot,
    Clinic,
    Doctor,
    DoctorMatch,
    Holiday,
    Service,
    Slot,
    TimeRange,
    UnavailabilityPeriod,
    WorkingHoursTemplate,
    WorkingInterval,
)
from .next_available import NextAvailableFinder
from .range_aggregator import RangeAggregator
from .slot_generator import SlotGenerator

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "CapacityCalculator",
    "CapacitySnapshot",
    "Clinic",
    "Doctor",
    "DoctorMatch",
    "DoctorSelector",
    "Holiday",
    "NextAvailableFinder",
    "RangeAggregator",
    "Service",
    "Slot",
    "SlotGenerator",
    "TimeRange",
    "UnavailabilityPeriod",
    "WorkingHoursTemplate",
    "WorkingInterval",
]
