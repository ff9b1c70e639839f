"""
Candidate generation for a single (class, slot) placement.
"""
from typing import Dict, List, Sequence

from models.schemas import ClassGroup, Subject, Teacher
from service.constraints import ConsistencyChecker
from service.heuristics import Candidate, CandidateRanker, priority_score, priority_subjects
from service.schedule_state import Placement, ScheduleState


class CandidateGenerator:
    """
    Produces ranked (teacher, subject) candidates for a placement.

    For each of the class's subjects, highest credits first, every qualified
    teacher who is free at the slot is scored with ``priority_score``; the
    ranker then orders the list and applies the branching limit.
    """

    def __init__(
        self,
        teachers: Sequence[Teacher],
        subjects: Sequence[Subject],
        state: ScheduleState,
        checker: ConsistencyChecker,
        ranker: CandidateRanker,
    ):
        self.teachers = list(teachers)
        self.subjects = list(subjects)
        self.state = state
        self.checker = checker
        self.ranker = ranker

        self._qualified: Dict[str, List[Teacher]] = {}
        for teacher in self.teachers:
            for subject_id in teacher.subjects:
                bucket = self._qualified.setdefault(subject_id, [])
                if teacher not in bucket:
                    bucket.append(teacher)
        self._priority: Dict[str, List[Subject]] = {}

    def priority_subjects(self, class_group: ClassGroup) -> List[Subject]:
        cached = self._priority.get(class_group.id)
        if cached is None:
            cached = priority_subjects(class_group, self.subjects)
            self._priority[class_group.id] = cached
        return cached

    def qualified_teachers(self, subject_id: str) -> List[Teacher]:
        return self._qualified.get(subject_id, [])

    def available_teachers(self, subject_id: str, placement: Placement) -> List[Teacher]:
        return [
            teacher for teacher in self.qualified_teachers(subject_id)
            if self.checker.is_teacher_free(teacher, placement)
        ]

    def scored(self, placement: Placement) -> List[Candidate]:
        """Unranked candidates, in subject priority then teacher input order."""
        candidates = []
        for subject in self.priority_subjects(placement.class_group):
            for teacher in self.available_teachers(subject.id, placement):
                candidates.append(Candidate(
                    teacher=teacher,
                    subject=subject,
                    score=priority_score(subject, teacher)
                ))
        return candidates

    def candidates(self, placement: Placement) -> List[Candidate]:
        class_id = placement.class_id
        return self.ranker.rank(
            self.scored(placement),
            lambda subject_id: self.state.weekly_subject_count(class_id, subject_id)
        )

    def legal_candidates(self, placement: Placement) -> List[Candidate]:
        return [c for c in self.candidates(placement) if self.checker.is_legal(c, placement)]

    def count_legal(self, placement: Placement, cap: int) -> int:
        """Count legal candidates, stopping at ``cap + 1``."""
        count = 0
        for candidate in self.scored(placement):
            if self.checker.is_legal(candidate, placement):
                count += 1
                if count > cap:
                    return cap + 1
        return count
