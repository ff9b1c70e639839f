"""
Exception hierarchy for the timetable generation engine.
"""
from typing import List


class TimetableError(Exception):
    """Base class for engine errors."""


class ConfigurationError(TimetableError):
    """Raised when the week layout cannot be turned into a time grid."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class DataIntegrityError(TimetableError):
    """Raised when records violate the data supplier's contract."""

    def __init__(self, warnings: List[str]):
        self.warnings = list(warnings)
        super().__init__("; ".join(self.warnings))


class RollbackError(TimetableError):
    """Store and caches fell out of step. Not recoverable."""


class UnknownRecordError(TimetableError):
    """Raised by point queries for an id that was not part of the run."""
