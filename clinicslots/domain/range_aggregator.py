"""
Per-day capacity series over a bounded date range.
"""

from typing import List

from pendulum import Date

from .capacity_calculator import CapacityCalculator
from .exceptions import InvalidInputError, RangeTooLargeError
from .models import CapacitySnapshot

MAX_RANGE_DAYS = 31


def check_range(start_date: Date, end_date: Date, max_range_days: int = MAX_RANGE_DAYS) -> None:
    """
    Validate a capacity range before any work is done.

    Raises:
        InvalidInputError: If end_date lies before start_date
        RangeTooLargeError: If the dates are more than ``max_range_days`` apart
    """
    if end_date < start_date:
        raise InvalidInputError(
            f"End date {end_date} must not be before start date {start_date}"
        )

    span = start_date.diff(end_date).in_days()
    if span > max_range_days:
        raise RangeTooLargeError(
            f"Date range spans {span} days, maximum is {max_range_days}"
        )


class RangeAggregator:
    """Drives the CapacityCalculator day by day; days share no state."""

    def __init__(self, capacity_calculator: CapacityCalculator, max_range_days: int = MAX_RANGE_DAYS):
        self.capacity_calculator = capacity_calculator
        self.max_range_days = max_range_days

    def compute_capacity_range(self, start_date: Date, end_date: Date) -> List[CapacitySnapshot]:
        """Compute one snapshot per calendar day, both ends inclusive."""
        check_range(start_date, end_date, self.max_range_days)

        snapshots: List[CapacitySnapshot] = []
        current = start_date

        while current <= end_date:
            snapshots.append(self.capacity_calculator.compute_capacity(current))
            current = current.add(days=1)

        return snapshots
