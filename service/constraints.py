"""
Hard-constraint checks shared by the greedy pre-fill and the search.
"""
from models.schemas import Subject, Teacher, TimeSlot
from service.heuristics import Candidate
from service.schedule_state import Placement, ScheduleState
from service.time_grid import to_minutes


class ConsistencyChecker:
    """
    Validates a (teacher, subject) candidate for a placement.

    Availability windows are memoised per (teacher, day, window) in the
    state's availability memo; occupancy, daily hours and subject counts are
    read from the state's caches.
    """

    def __init__(self, state: ScheduleState, per_day_subject_cap: int = 1, fill_all_periods: bool = True):
        self.state = state
        self.per_day_subject_cap = max(1, per_day_subject_cap)
        self.fill_all_periods = fill_all_periods

    def is_available_at_time(self, teacher: Teacher, slot: TimeSlot) -> bool:
        """Check the slot lies inside one of the teacher's windows for that day."""
        # No declared availability means available every slot
        if not teacher.availability:
            return True

        cache_key = (teacher.id, slot.day, f"{slot.start_time}-{slot.end_time}")
        cached = self.state.availability_memo.get(cache_key)
        if cached is not None:
            return cached

        slot_start = to_minutes(slot.start_time)
        slot_end = to_minutes(slot.end_time)
        day = slot.day.lower()
        available = any(
            window.day.strip().lower() == day
            and to_minutes(window.start_time) <= slot_start
            and slot_end <= to_minutes(window.end_time)
            for window in teacher.availability
        )
        self.state.availability_memo[cache_key] = available
        return available

    def is_teacher_free(self, teacher: Teacher, placement: Placement) -> bool:
        """Available by schedule and not teaching another class at this slot."""
        if self.state.is_teacher_booked(teacher.id, placement.slot_key):
            return False
        return self.is_available_at_time(teacher, placement.slot)

    def check_teacher_workload(self, teacher: Teacher, day: str) -> bool:
        # max_daily_hours <= 0 is treated as unlimited
        if teacher.max_daily_hours <= 0:
            return True
        return self.state.teacher_hours(teacher.id, day) < teacher.max_daily_hours

    def check_subject_distribution(self, class_id: str, subject: Subject, day: str) -> bool:
        if self.state.daily_subject_count(class_id, subject.id, day) >= self.per_day_subject_cap:
            return False

        # Weekly quotas are ignored when every period should be filled
        if self.fill_all_periods:
            return True

        return self.state.weekly_subject_count(class_id, subject.id) < subject.weekly_sessions

    def is_legal(self, candidate: Candidate, placement: Placement) -> bool:
        teacher = candidate.teacher
        subject = candidate.subject
        day = placement.slot.day

        if not self.is_available_at_time(teacher, placement.slot):
            return False
        if self.state.is_teacher_booked(teacher.id, placement.slot_key):
            return False
        if not self.check_teacher_workload(teacher, day):
            return False
        if not self.check_subject_distribution(placement.class_id, subject, day):
            return False
        return subject.id in teacher.subjects
