"""
Schedule grid and the constraint caches derived from it.

``ScheduleStore`` only stores assignments. ``ScheduleState`` wraps a store
with the incremental indexes the solver consults (teacher occupancy, daily
teacher hours, per-class subject counts) and an undo log, so every commit is
reversed exactly by the matching rollback.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from models.schemas import Assignment, ClassGroup, Subject, Teacher, TimeSlot
from service.errors import RollbackError


@dataclass(frozen=True)
class Placement:
    """One (class, slot) pair waiting for a teacher and subject."""
    class_id: str
    class_group: ClassGroup
    slot: TimeSlot
    slot_key: str
    room: str


@dataclass(frozen=True)
class _UndoEntry:
    class_id: str
    slot_key: str
    day: str
    teacher_id: str
    subject_id: str
    previous: Assignment
    committed: Assignment


class ScheduleStore:
    """Mapping class id -> slot key -> Assignment, one entry per generated slot."""

    def __init__(self, classes: Iterable[ClassGroup], slots: List[TimeSlot]):
        self.slots = list(slots)
        self.slots_by_key: Dict[str, TimeSlot] = {slot.key: slot for slot in self.slots}
        self.grid: Dict[str, Dict[str, Assignment]] = {}

        for class_group in classes:
            self.grid[class_group.id] = {
                slot.key: Assignment(
                    room=class_group.room,
                    is_special_period=slot.is_special_period,
                    special_type=slot.special_type
                )
                for slot in self.slots
            }

    @property
    def class_ids(self) -> List[str]:
        return list(self.grid.keys())

    def get(self, class_id: str, slot_key: str) -> Assignment:
        return self.grid[class_id][slot_key]

    def set(self, class_id: str, slot_key: str, assignment: Assignment):
        if slot_key not in self.grid[class_id]:
            raise KeyError(f"Unknown slot {slot_key} for class {class_id}")
        self.grid[class_id][slot_key] = assignment

    def assignments_for_class(self, class_id: str) -> List[Tuple[TimeSlot, Assignment]]:
        """Assignments of one class in slot order (day, then time)."""
        schedule = self.grid[class_id]
        return [(slot, schedule[slot.key]) for slot in self.slots]

    def find_teacher(self, teacher_id: str, slot_key: str) -> Optional[str]:
        """Scan every class for the teacher at this slot; returns the class id."""
        for class_id, schedule in self.grid.items():
            if schedule[slot_key].teacher_id == teacher_id:
                return class_id
        return None

    def free_slot_count(self) -> int:
        return sum(
            1
            for schedule in self.grid.values()
            for assignment in schedule.values()
            if assignment.is_free
        )

    def assignable_slot_count(self) -> int:
        return sum(
            1
            for schedule in self.grid.values()
            for assignment in schedule.values()
            if not assignment.is_special_period
        )

    def snapshot(self) -> Dict[str, Dict[str, Assignment]]:
        return {class_id: dict(schedule) for class_id, schedule in self.grid.items()}


def _increment(counters: Dict, outer, inner):
    bucket = counters.setdefault(outer, {})
    bucket[inner] = bucket.get(inner, 0) + 1


def _decrement(counters: Dict, outer, inner):
    bucket = counters.get(outer)
    if not bucket or bucket.get(inner, 0) <= 0:
        raise RollbackError(f"Counter {outer}/{inner} is already zero")
    bucket[inner] -= 1
    if bucket[inner] == 0:
        del bucket[inner]
    if not bucket:
        del counters[outer]


class ScheduleState:
    """
    Store plus constraint caches for one generation run.

    Every mutation goes through ``commit`` and ``rollback``; both update the
    grid and all counters in the same step. Counters that drop to zero are
    removed, so a commit followed by its rollback leaves ``snapshot()``
    identical to what it was before.
    """

    def __init__(self, store: ScheduleStore):
        self.store = store
        # slot key -> teacher id -> class id
        self.teacher_occupancy: Dict[str, Dict[str, str]] = {}
        # teacher id -> day -> periods taught
        self.teacher_daily_hours: Dict[str, Dict[str, int]] = {}
        # class id -> subject id -> sessions this week
        self.class_weekly_subjects: Dict[str, Dict[str, int]] = {}
        # class id -> (day, subject id) -> sessions that day
        self.class_daily_subjects: Dict[str, Dict[Tuple[str, str], int]] = {}
        # class id -> day -> filled periods
        self.class_daily_filled: Dict[str, Dict[str, int]] = {}
        # (teacher id, day, "start-end") -> available; pure memo, not rolled back
        self.availability_memo: Dict[Tuple[str, str, str], bool] = {}
        self._undo_log: List[_UndoEntry] = []

    # ----- queries -----

    def is_teacher_booked(self, teacher_id: str, slot_key: str) -> bool:
        return teacher_id in self.teacher_occupancy.get(slot_key, {})

    def teacher_hours(self, teacher_id: str, day: str) -> int:
        return self.teacher_daily_hours.get(teacher_id, {}).get(day, 0)

    def weekly_subject_count(self, class_id: str, subject_id: str) -> int:
        return self.class_weekly_subjects.get(class_id, {}).get(subject_id, 0)

    def daily_subject_count(self, class_id: str, subject_id: str, day: str) -> int:
        return self.class_daily_subjects.get(class_id, {}).get((day, subject_id), 0)

    def filled_count(self, class_id: str, day: str) -> int:
        return self.class_daily_filled.get(class_id, {}).get(day, 0)

    @property
    def depth(self) -> int:
        """Number of commits not yet rolled back."""
        return len(self._undo_log)

    # ----- mutation -----

    def commit(self, placement: Placement, teacher: Teacher, subject: Subject) -> Assignment:
        """Assign teacher and subject to the placement and record the inverse."""
        class_id, slot_key, day = placement.class_id, placement.slot_key, placement.slot.day
        previous = self.store.get(class_id, slot_key)

        if previous.is_special_period:
            raise RollbackError(f"Slot {slot_key} of class {class_id} is a special period")
        if previous.teacher_id is not None:
            raise RollbackError(f"Slot {slot_key} of class {class_id} is already assigned")
        if self.is_teacher_booked(teacher.id, slot_key):
            raise RollbackError(f"Teacher {teacher.id} is already booked at {slot_key}")

        committed = Assignment(
            teacher_id=teacher.id,
            subject_id=subject.id,
            room=placement.room,
            is_special_period=False,
            special_type=None
        )
        self.store.set(class_id, slot_key, committed)
        self.teacher_occupancy.setdefault(slot_key, {})[teacher.id] = class_id
        _increment(self.teacher_daily_hours, teacher.id, day)
        _increment(self.class_weekly_subjects, class_id, subject.id)
        _increment(self.class_daily_subjects, class_id, (day, subject.id))
        _increment(self.class_daily_filled, class_id, day)

        self._undo_log.append(_UndoEntry(
            class_id=class_id,
            slot_key=slot_key,
            day=day,
            teacher_id=teacher.id,
            subject_id=subject.id,
            previous=previous,
            committed=committed
        ))
        return committed

    def rollback(self):
        """Reverse the most recent commit."""
        if not self._undo_log:
            raise RollbackError("Nothing to roll back")
        entry = self._undo_log.pop()

        if self.store.get(entry.class_id, entry.slot_key) != entry.committed:
            raise RollbackError(
                f"Slot {entry.slot_key} of class {entry.class_id} changed since it was committed"
            )
        booked = self.teacher_occupancy.get(entry.slot_key, {})
        if booked.get(entry.teacher_id) != entry.class_id:
            raise RollbackError(
                f"Occupancy for teacher {entry.teacher_id} at {entry.slot_key} does not match the grid"
            )

        self.store.set(entry.class_id, entry.slot_key, entry.previous)
        del booked[entry.teacher_id]
        if not booked:
            del self.teacher_occupancy[entry.slot_key]
        _decrement(self.teacher_daily_hours, entry.teacher_id, entry.day)
        _decrement(self.class_weekly_subjects, entry.class_id, entry.subject_id)
        _decrement(self.class_daily_subjects, entry.class_id, (entry.day, entry.subject_id))
        _decrement(self.class_daily_filled, entry.class_id, entry.day)

    # ----- consistency -----

    def snapshot(self) -> dict:
        """Copy of the grid and every rollback-tracked cache."""
        return {
            "grid": self.store.snapshot(),
            "teacher_occupancy": {k: dict(v) for k, v in self.teacher_occupancy.items()},
            "teacher_daily_hours": {k: dict(v) for k, v in self.teacher_daily_hours.items()},
            "class_weekly_subjects": {k: dict(v) for k, v in self.class_weekly_subjects.items()},
            "class_daily_subjects": {k: dict(v) for k, v in self.class_daily_subjects.items()},
            "class_daily_filled": {k: dict(v) for k, v in self.class_daily_filled.items()},
        }

    def rebuild_caches(self) -> dict:
        """Recompute the caches from the grid alone, in ``snapshot()`` layout."""
        occupancy: Dict[str, Dict[str, str]] = {}
        hours: Dict[str, Dict[str, int]] = {}
        weekly: Dict[str, Dict[str, int]] = {}
        daily: Dict[str, Dict[Tuple[str, str], int]] = {}
        filled: Dict[str, Dict[str, int]] = {}

        for class_id, schedule in self.store.grid.items():
            for slot_key, assignment in schedule.items():
                if assignment.teacher_id is None or assignment.subject_id is None:
                    continue
                day = self.store.slots_by_key[slot_key].day
                occupancy.setdefault(slot_key, {})[assignment.teacher_id] = class_id
                _increment(hours, assignment.teacher_id, day)
                _increment(weekly, class_id, assignment.subject_id)
                _increment(daily, class_id, (day, assignment.subject_id))
                _increment(filled, class_id, day)

        return {
            "grid": self.store.snapshot(),
            "teacher_occupancy": occupancy,
            "teacher_daily_hours": hours,
            "class_weekly_subjects": weekly,
            "class_daily_subjects": daily,
            "class_daily_filled": filled,
        }

    def caches_match_store(self) -> bool:
        return self.snapshot() == self.rebuild_caches()
