"""
Timetable generation engine: time grid, constraint caches, candidate
generation and the greedy + backtracking solver.
"""
from .errors import (
    ConfigurationError,
    DataIntegrityError,
    RollbackError,
    TimetableError,
    UnknownRecordError
)
from .timetable_solver import GenerationResult, TimetableScheduler, generate

__all__ = [
    "ConfigurationError",
    "DataIntegrityError",
    "RollbackError",
    "TimetableError",
    "UnknownRecordError",
    "GenerationResult",
    "TimetableScheduler",
    "generate"
]
