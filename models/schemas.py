from pydantic import BaseModel, Field
from typing import List, Optional


# ===========================
# Teacher Models
# ===========================

class AvailabilityWindow(BaseModel):
    """Weekly window in which a teacher can be scheduled"""
    day: str
    start_time: str  # HH:MM format, e.g., "09:00"
    end_time: str    # HH:MM format, e.g., "15:00"

    class Config:
        frozen = True


class Teacher(BaseModel):
    id: str
    name: str
    subjects: List[str] = []          # Subject ids the teacher is qualified for
    primary_subjects: List[str] = []  # Subset of subjects, scored higher
    availability: List[AvailabilityWindow] = []  # Empty means always available
    max_daily_hours: int = 0          # <= 0 means unlimited
    rating: float = Field(default=0, ge=0)

    class Config:
        frozen = True


# ===========================
# Class and Subject Models
# ===========================

class Subject(BaseModel):
    id: str
    name: str
    credits: int = Field(default=1, ge=1)          # Weight/importance of subject
    weekly_sessions: int = Field(default=1, ge=1)  # Required occurrences per week

    class Config:
        frozen = True


class ClassGroup(BaseModel):
    id: str
    name: str
    room: str = ""
    subjects: List[str] = []              # Subject ids the class must receive
    total_credits: Optional[int] = None   # Derived from subject credits when unset

    class Config:
        frozen = True


# ===========================
# Time Grid Models
# ===========================

class SpecialPeriod(BaseModel):
    """Non-assignable period such as an assembly or lunch break"""
    day: str
    start_time: str
    end_time: str
    type: str


class TimeSlot(BaseModel):
    day: str
    start_time: str
    end_time: str
    is_special_period: bool = False
    special_type: Optional[str] = None

    class Config:
        frozen = True

    @property
    def key(self) -> str:
        return f"{self.day}_{self.start_time}"


class Assignment(BaseModel):
    """Content of one (class, slot) cell of the schedule grid"""
    teacher_id: Optional[str] = None
    subject_id: Optional[str] = None
    room: str = ""
    is_special_period: bool = False
    special_type: Optional[str] = None

    class Config:
        frozen = True

    @property
    def is_free(self) -> bool:
        return not self.is_special_period and self.teacher_id is None


# ===========================
# Generation Configuration
# ===========================

class GenerationConfig(BaseModel):
    """Week layout and solver knobs for a generation run"""
    days: List[str]
    start_time: str
    end_time: str
    period_duration: float = 1.0  # Hours
    special_periods: List[SpecialPeriod] = []
    fill_all_periods: bool = True
    branching_limit: Optional[int] = None
    per_day_subject_cap: Optional[int] = None

    # Search guards
    strict_mode: bool = False
    max_free_ratio: Optional[float] = Field(default=None, ge=0, le=1)
    max_search_steps: Optional[int] = None


# ===========================
# Request Schema
# ===========================

class GenerationRequest(BaseModel):
    """Already-normalized records for one generation run"""
    teachers: List[Teacher]
    classes: List[ClassGroup]
    subjects: List[Subject]
    config: GenerationConfig


# ===========================
# Response Schema
# ===========================

class TimetableEntry(BaseModel):
    """One slot of a class timetable"""
    day: str
    time: str       # "HH:MM-HH:MM"
    subject: str    # Subject name, special label or "Free"
    teacher: str    # Teacher name or "Free"
    room: str
    is_special_period: bool = False


class TeacherTimetableEntry(BaseModel):
    """One slot of a teacher timetable"""
    day: str
    time: str
    class_name: str  # Class name or "Free"
    subject: str
    room: str
    status: str      # "Teaching" or "Free"


class ClassTimetable(BaseModel):
    class_id: str
    class_name: str
    room: str
    remaining_required_sessions: int = 0
    entries: List[TimetableEntry]


class TeacherTimetable(BaseModel):
    teacher_id: str
    teacher_name: str
    entries: List[TeacherTimetableEntry]


class GenerationStats(BaseModel):
    total_slots: int = 0
    special_slots: int = 0
    prefilled: int = 0
    searched: int = 0
    free_slots: int = 0
    search_steps: int = 0
    budget_exhausted: bool = False
    elapsed_seconds: float = 0.0


class ErrorMessage(BaseModel):
    """Error or warning message"""
    code: str
    severity: str = "ERROR"
    title: str
    description: str
    resolution_hint: Optional[str] = None


class Messages(BaseModel):
    """Collection of error/warning messages"""
    error_message: List[ErrorMessage] = []


class GenerationResponse(BaseModel):
    status: str  # "COMPLETE", "PARTIAL", "FAILED", "INVALID", "ERROR"
    success: bool = False
    timetables: List[ClassTimetable] = []
    stats: Optional[GenerationStats] = None
    messages: Messages = Messages()


class ClassTimetableResponse(BaseModel):
    status: str
    success: bool = False
    timetable: Optional[ClassTimetable] = None
    messages: Messages = Messages()


class TeacherTimetableResponse(BaseModel):
    status: str
    success: bool = False
    timetable: Optional[TeacherTimetable] = None
    messages: Messages = Messages()
