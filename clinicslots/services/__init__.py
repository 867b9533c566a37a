"""
Service layer - Answers availability queries by combining data sources and domain logic.
"""

from .availability_service import (
    AppointmentAvailabilityService,
    BookingLedgerProtocol,
    ScheduleSourceProtocol,
)

__all__ = ["AppointmentAvailabilityService", "BookingLedgerProtocol", "ScheduleSourceProtocol"]
