"""
Greedy + backtracking timetable generator.

This module runs a generation end to end: it builds the time grid, fills
the easy majority of slots with a single greedy pass, then completes the
grid with a depth-first search that picks the most constrained slot first
(MRV), tries ranked candidates with exact rollback, and leaves a slot free
when nothing fits.
"""

import logging
import math
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from config.settings import settings
from models.schemas import (
    ClassGroup, ClassTimetable, GenerationConfig, GenerationStats, Subject,
    Teacher, TeacherTimetable, TeacherTimetableEntry, TimetableEntry
)
from service.candidates import CandidateGenerator
from service.constraints import ConsistencyChecker
from service.errors import DataIntegrityError, UnknownRecordError
from service.heuristics import (
    CandidateRanker, MRVSlotSelector, SlotSelector, order_placements, remaining_sessions
)
from service.schedule_state import Placement, ScheduleState, ScheduleStore
from service.time_grid import build_time_slots_from_config
from service.validation import validate_records

logger = logging.getLogger(__name__)

FREE_LABEL = "Free"
STAFF_ROOM = "Staff Room"


class SearchBudgetExceeded(Exception):
    """Internal signal: the step budget ran out mid-search."""


@dataclass
class GenerationResult:
    store: ScheduleStore
    success: bool
    stats: GenerationStats

    @property
    def status(self) -> str:
        if not self.success:
            return "FAILED"
        return "COMPLETE" if self.stats.free_slots == 0 else "PARTIAL"


@contextmanager
def _recursion_headroom(depth: int):
    """Raise the interpreter recursion limit to cover ``depth`` search levels."""
    previous = sys.getrecursionlimit()
    needed = depth * 2 + 1000
    if needed > previous:
        sys.setrecursionlimit(needed)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


def derive_total_credits(class_group: ClassGroup, subjects: Sequence[Subject]) -> ClassGroup:
    """Fill in total credits from the class's subjects when not supplied."""
    if class_group.total_credits and class_group.total_credits > 0:
        return class_group
    credits = {subject.id: subject.credits for subject in subjects}
    total = sum(credits.get(subject_id, 0) for subject_id in class_group.subjects)
    return class_group.model_copy(update={"total_credits": total})


class TimetableScheduler:
    """
    Schedule generator for one run.

    The instance owns the schedule store and every constraint cache, so
    separate runs (e.g. concurrent API requests) must use separate
    instances. The slot selector and candidate ranking are pluggable.
    """

    def __init__(self, slot_selector: Optional[SlotSelector] = None):
        """
        Initialize the scheduler.

        Args:
            slot_selector: Strategy choosing the next placement to search;
                defaults to minimum remaining values.
        """
        self.slot_selector = slot_selector or MRVSlotSelector()

        # Run data, populated by generate()
        self.config: Optional[GenerationConfig] = None
        self.teachers: List[Teacher] = []
        self.classes: List[ClassGroup] = []
        self.subjects: List[Subject] = []
        self.store: Optional[ScheduleStore] = None
        self.state: Optional[ScheduleState] = None
        self.checker: Optional[ConsistencyChecker] = None
        self.generator: Optional[CandidateGenerator] = None

        self._teachers_by_id: Dict[str, Teacher] = {}
        self._classes_by_id: Dict[str, ClassGroup] = {}
        self._subjects_by_id: Dict[str, Subject] = {}

        self.strict_mode = False
        self.max_search_steps = 0
        self._free_allowance = 0
        self._free_count = 0
        self._steps = 0

    def generate(
        self,
        teachers: Sequence[Teacher],
        classes: Sequence[ClassGroup],
        subjects: Sequence[Subject],
        config: GenerationConfig,
    ) -> GenerationResult:
        """
        Main entry point: generate a timetable for every class.

        Args:
            teachers: Normalized teacher records
            classes: Normalized class records
            subjects: Normalized subject records
            config: Week layout and solver knobs

        Returns:
            GenerationResult with the finished store and run statistics

        Raises:
            ConfigurationError: if the week layout is invalid
            DataIntegrityError: if the records fail validation
        """
        started = datetime.now()

        # Step 1: Build the time grid (fails fast on bad configuration)
        slots = build_time_slots_from_config(config)

        # Step 2: Refuse to run against inconsistent records
        problems = validate_records(teachers, classes, subjects)
        if problems:
            raise DataIntegrityError(problems)

        # Step 3: Load records and fresh state
        self._load(teachers, classes, subjects, config, slots)

        logger.info(
            f"Starting generation: {len(self.classes)} classes, {len(self.teachers)} teachers, "
            f"{len(slots)} time slots"
        )

        # Step 4: Greedy pre-fill
        prefilled = self.greedy_prefill()
        pending = order_placements(self.unassigned_placements())
        logger.debug(f"Greedy pre-fill assigned {prefilled} slots, {len(pending)} left for search")

        # Step 5: Backtracking search over what remains
        budget_exhausted = False
        try:
            with _recursion_headroom(len(pending)):
                success = self._backtrack(pending)
        except SearchBudgetExceeded:
            budget_exhausted = True
            success = False
            logger.warning(
                f"Search stopped after {self._steps} steps; keeping the partial timetable"
            )

        elapsed = (datetime.now() - started).total_seconds()
        stats = GenerationStats(
            total_slots=len(slots) * len(self.classes),
            special_slots=sum(1 for slot in slots if slot.is_special_period) * len(self.classes),
            prefilled=prefilled,
            searched=len(pending),
            free_slots=self.store.free_slot_count(),
            search_steps=self._steps,
            budget_exhausted=budget_exhausted,
            elapsed_seconds=elapsed
        )
        logger.info(
            f"Generation finished: success={success}, free slots={stats.free_slots}, "
            f"steps={stats.search_steps}, {elapsed:.3f}s"
        )
        return GenerationResult(store=self.store, success=success, stats=stats)

    def _load(self, teachers, classes, subjects, config: GenerationConfig, slots):
        self.config = config
        self.teachers = list(teachers)
        self.subjects = list(subjects)
        self.classes = [derive_total_credits(c, self.subjects) for c in classes]

        self._teachers_by_id = {t.id: t for t in self.teachers}
        self._classes_by_id = {c.id: c for c in self.classes}
        self._subjects_by_id = {s.id: s for s in self.subjects}

        branching_limit = config.branching_limit or settings.default_branching_limit
        per_day_cap = config.per_day_subject_cap or settings.default_per_day_subject_cap

        self.store = ScheduleStore(self.classes, slots)
        self.state = ScheduleState(self.store)
        self.checker = ConsistencyChecker(
            self.state,
            per_day_subject_cap=per_day_cap,
            fill_all_periods=config.fill_all_periods
        )
        self.generator = CandidateGenerator(
            self.teachers,
            self.subjects,
            self.state,
            self.checker,
            CandidateRanker(branching_limit, config.fill_all_periods)
        )

        self.strict_mode = config.strict_mode
        max_free_ratio = config.max_free_ratio
        if max_free_ratio is None:
            max_free_ratio = settings.default_max_free_ratio
        self._free_allowance = math.floor(max_free_ratio * self.store.assignable_slot_count())
        self.max_search_steps = (
            config.max_search_steps
            if config.max_search_steps is not None
            else settings.default_max_search_steps
        )
        self._free_count = 0
        self._steps = 0

    # ===========================
    # Greedy pre-fill
    # ===========================

    def _placement(self, class_group: ClassGroup, slot) -> Placement:
        return Placement(
            class_id=class_group.id,
            class_group=class_group,
            slot=slot,
            slot_key=slot.key,
            room=class_group.room
        )

    def greedy_prefill(self) -> int:
        """Assign the first legal candidate to every open slot; no backtracking."""
        assigned = 0
        for class_group in self.classes:
            for day in self.config.days:
                day = day.strip()
                for slot in self.store.slots:
                    if slot.day != day or slot.is_special_period:
                        continue
                    if self.store.get(class_group.id, slot.key).teacher_id is not None:
                        continue
                    placement = self._placement(class_group, slot)
                    for candidate in self.generator.candidates(placement):
                        if self.checker.is_legal(candidate, placement):
                            self.state.commit(placement, candidate.teacher, candidate.subject)
                            assigned += 1
                            break
        return assigned

    def unassigned_placements(self) -> List[Placement]:
        """Open non-special placements, class by class in slot order."""
        pending = []
        for class_group in self.classes:
            for slot in self.store.slots:
                if slot.is_special_period:
                    continue
                if self.store.get(class_group.id, slot.key).teacher_id is None:
                    pending.append(self._placement(class_group, slot))
        return pending

    # ===========================
    # Backtracking search
    # ===========================

    def _step(self):
        self._steps += 1
        if self.max_search_steps > 0 and self._steps > self.max_search_steps:
            raise SearchBudgetExceeded()

    def _backtrack(self, pending: List[Placement]) -> bool:
        if not pending:
            return True

        idx = self.slot_selector.select(pending, self.generator, self.state)
        current = pending[idx]
        remaining = pending[:idx] + pending[idx + 1:]

        for candidate in self.generator.legal_candidates(current):
            self._step()
            self.state.commit(current, candidate.teacher, candidate.subject)
            if self._backtrack(remaining):
                return True
            self.state.rollback()

        # Leave this period free and carry on rather than failing the branch
        if self.strict_mode and self._free_count >= self._free_allowance:
            return False

        self._step()
        self._free_count += 1
        if self._backtrack(remaining):
            return True
        self._free_count -= 1
        return False

    # ===========================
    # Queries
    # ===========================

    def _require_class(self, class_id: str) -> ClassGroup:
        class_group = self._classes_by_id.get(class_id)
        if class_group is None:
            raise UnknownRecordError(f"Unknown class '{class_id}'")
        return class_group

    def _require_teacher(self, teacher_id: str) -> Teacher:
        teacher = self._teachers_by_id.get(teacher_id)
        if teacher is None:
            raise UnknownRecordError(f"Unknown teacher '{teacher_id}'")
        return teacher

    def class_timetable(self, class_id: str) -> List[TimetableEntry]:
        """All assignments of one class, ordered by day then time."""
        self._require_class(class_id)
        entries = []
        for slot, assignment in self.store.assignments_for_class(class_id):
            subject = self._subjects_by_id.get(assignment.subject_id)
            teacher = self._teachers_by_id.get(assignment.teacher_id)
            entries.append(TimetableEntry(
                day=slot.day,
                time=f"{slot.start_time}-{slot.end_time}",
                subject=subject.name if subject is not None else (assignment.special_type or FREE_LABEL),
                teacher=teacher.name if teacher is not None else FREE_LABEL,
                room=assignment.room,
                is_special_period=assignment.is_special_period
            ))
        return entries

    def teacher_timetable(self, teacher_id: str) -> List[TeacherTimetableEntry]:
        """All assignments of one teacher across classes, ordered by day then time."""
        self._require_teacher(teacher_id)
        entries = []
        for slot in self.store.slots:
            class_id = self.state.teacher_occupancy.get(slot.key, {}).get(teacher_id)
            if class_id is None:
                entries.append(TeacherTimetableEntry(
                    day=slot.day,
                    time=f"{slot.start_time}-{slot.end_time}",
                    class_name=FREE_LABEL,
                    subject=FREE_LABEL,
                    room=STAFF_ROOM,
                    status="Free"
                ))
                continue
            assignment = self.store.get(class_id, slot.key)
            subject = self._subjects_by_id.get(assignment.subject_id)
            entries.append(TeacherTimetableEntry(
                day=slot.day,
                time=f"{slot.start_time}-{slot.end_time}",
                class_name=self._classes_by_id[class_id].name,
                subject=subject.name if subject is not None else FREE_LABEL,
                room=assignment.room,
                status="Teaching"
            ))
        return entries

    def remaining_required_sessions(self, class_id: str) -> int:
        """Sessions still owed to a class: sum of max(0, weekly - assigned) per subject."""
        class_group = self._classes_by_id.get(class_id)
        if class_group is None:
            return 0
        return sum(
            remaining_sessions(subject, self.state.weekly_subject_count(class_id, subject.id))
            for subject in self.generator.priority_subjects(class_group)
        )

    def free_slot_count(self) -> int:
        return self.store.free_slot_count()

    def free_slot_ratio(self) -> float:
        assignable = self.store.assignable_slot_count()
        if assignable == 0:
            return 0.0
        return self.store.free_slot_count() / assignable

    def build_class_timetable(self, class_id: str) -> ClassTimetable:
        class_group = self._require_class(class_id)
        return ClassTimetable(
            class_id=class_group.id,
            class_name=class_group.name,
            room=class_group.room,
            remaining_required_sessions=self.remaining_required_sessions(class_id),
            entries=self.class_timetable(class_id)
        )

    def build_teacher_timetable(self, teacher_id: str) -> TeacherTimetable:
        teacher = self._require_teacher(teacher_id)
        return TeacherTimetable(
            teacher_id=teacher.id,
            teacher_name=teacher.name,
            entries=self.teacher_timetable(teacher_id)
        )


def generate(
    teachers: Sequence[Teacher],
    classes: Sequence[ClassGroup],
    subjects: Sequence[Subject],
    config: GenerationConfig,
):
    """Run one generation and return ``(store, success)``."""
    result = TimetableScheduler().generate(teachers, classes, subjects, config)
    return result.store, result.success
