"""
Data models and Pydantic schemas for the timetable generation API.
"""
from .schemas import (
    AvailabilityWindow,
    Teacher,
    Subject,
    ClassGroup,
    SpecialPeriod,
    TimeSlot,
    Assignment,
    GenerationConfig,
    GenerationRequest,
    TimetableEntry,
    TeacherTimetableEntry,
    ClassTimetable,
    TeacherTimetable,
    GenerationStats,
    ErrorMessage,
    Messages,
    GenerationResponse,
    ClassTimetableResponse,
    TeacherTimetableResponse
)

__all__ = [
    "AvailabilityWindow",
    "Teacher",
    "Subject",
    "ClassGroup",
    "SpecialPeriod",
    "TimeSlot",
    "Assignment",
    "GenerationConfig",
    "GenerationRequest",
    "TimetableEntry",
    "TeacherTimetableEntry",
    "ClassTimetable",
    "TeacherTimetable",
    "GenerationStats",
    "ErrorMessage",
    "Messages",
    "GenerationResponse",
    "ClassTimetableResponse",
    "TeacherTimetableResponse"
]
