"""
Scoring and ordering policies for the timetable search.

Everything here is a pure function of the records or a small strategy
object, so alternative heuristics can be swapped into the solver without
touching the recursion.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Sequence, TYPE_CHECKING

from models.schemas import ClassGroup, Subject, Teacher
from service.schedule_state import Placement, ScheduleState

if TYPE_CHECKING:
    from service.candidates import CandidateGenerator


CREDIT_WEIGHT = 10
RATING_WEIGHT = 2
PRIMARY_SUBJECT_BONUS = 5


@dataclass(frozen=True)
class Candidate:
    teacher: Teacher
    subject: Subject
    score: float


def priority_score(subject: Subject, teacher: Teacher) -> float:
    """credits*10 + rating*2, plus 5 when the subject is the teacher's primary."""
    score = subject.credits * CREDIT_WEIGHT
    score += teacher.rating * RATING_WEIGHT
    if subject.id in teacher.primary_subjects:
        score += PRIMARY_SUBJECT_BONUS
    return score


def priority_subjects(class_group: ClassGroup, subjects: Sequence[Subject]) -> List[Subject]:
    """Subjects the class requires, highest credits first (catalogue order on ties)."""
    required = set(class_group.subjects)
    return sorted(
        (subject for subject in subjects if subject.id in required),
        key=lambda subject: -subject.credits
    )


def remaining_sessions(subject: Subject, assigned: int) -> int:
    return max(0, subject.weekly_sessions - assigned)


def order_placements(placements: List[Placement]) -> List[Placement]:
    """Initial search order: heavier classes first, then classes with more subjects."""
    return sorted(
        placements,
        key=lambda p: (-(p.class_group.total_credits or 0), -len(p.class_group.subjects))
    )


# ===========================
# Candidate ranking
# ===========================

class CandidateRanker:
    """
    Orders scored candidates for one placement.

    Candidates are sorted by descending score and cut to the branching
    limit. Without fill-all-periods mode the surviving candidates are then
    re-ranked so subjects with the most sessions still owed come first,
    ties keeping score order.
    """

    def __init__(self, branching_limit: int = 5, fill_all_periods: bool = True):
        self.branching_limit = max(1, branching_limit)
        self.fill_all_periods = fill_all_periods

    def rank(
        self,
        candidates: List[Candidate],
        assigned_count: Callable[[str], int],
    ) -> List[Candidate]:
        ranked = sorted(candidates, key=lambda c: -c.score)
        limited = ranked[:self.branching_limit]
        if self.fill_all_periods:
            return limited
        return sorted(
            limited,
            key=lambda c: -remaining_sessions(c.subject, assigned_count(c.subject.id))
        )


# ===========================
# Slot selection
# ===========================

class SlotSelector(ABC):
    """Chooses which pending placement the search expands next."""

    @abstractmethod
    def select(
        self,
        placements: List[Placement],
        generator: "CandidateGenerator",
        state: ScheduleState,
    ) -> int:
        """Return the index of the placement to expand."""


class FirstSlotSelector(SlotSelector):
    """Takes placements in list order."""

    def select(self, placements, generator, state) -> int:
        return 0


class MRVSlotSelector(SlotSelector):
    """
    Minimum remaining values: the placement with the fewest legal candidates.

    Counting stops once it passes ``cap`` since only "few or many" matters
    for the ordering. Ties go to the earliest placement in the list.
    """

    def __init__(self, cap: int = 3):
        self.cap = cap

    def select(self, placements, generator, state) -> int:
        if len(placements) <= 1:
            return 0
        best_idx = 0
        best_count = None
        for idx, placement in enumerate(placements):
            count = generator.count_legal(placement, self.cap)
            if best_count is None or count < best_count:
                best_count = count
                best_idx = idx
                if count == 0:
                    break
        return best_idx


class InterleavedSlotSelector(SlotSelector):
    """Picks the placement whose class has the fewest filled periods that day."""

    def select(self, placements, generator, state) -> int:
        if len(placements) <= 1:
            return 0
        best_idx = 0
        best_filled = None
        for idx, placement in enumerate(placements):
            filled = state.filled_count(placement.class_id, placement.slot.day)
            if best_filled is None or filled < best_filled:
                best_filled = filled
                best_idx = idx
        return best_idx
