"""
Domain-specific exception hierarchy for the availability engine.
"""


class ClinicSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidInputError(ClinicSlotsError):
    """Raised when a query is called with parameters it cannot answer."""


class RangeTooLargeError(InvalidInputError):
    """Raised when a capacity range spans more days than allowed."""


class UnknownEntityError(InvalidInputError):
    """Raised when a clinic, doctor or service id does not exist."""


class DataSourceError(ClinicSlotsError):
    """Raised when schedule or booking data cannot be fetched or parsed."""
