"""
Data integrity checks run before a generation is allowed to start.
"""
import logging
from typing import List, Sequence

from models.schemas import ClassGroup, Subject, Teacher
from service.time_grid import parse_time

logger = logging.getLogger(__name__)


def _duplicate_ids(kind: str, ids: Sequence[str]) -> List[str]:
    seen = set()
    errors = []
    for record_id in ids:
        if record_id in seen:
            errors.append(f"Duplicate {kind} id '{record_id}'")
        seen.add(record_id)
    return errors


def _validate_teacher(teacher: Teacher) -> List[str]:
    errors = []

    if teacher.max_daily_hours <= 0:
        errors.append(f"Teacher {teacher.name} has invalid max daily hours")

    extra = [s for s in teacher.primary_subjects if s not in teacher.subjects]
    if extra:
        errors.append(
            f"Teacher {teacher.name} has primary subjects they are not qualified for: {', '.join(extra)}"
        )

    for window in teacher.availability:
        try:
            start = parse_time(window.start_time)
            end = parse_time(window.end_time)
            if start >= end:
                errors.append(
                    f"Teacher {teacher.name} availability on {window.day}: start time must be before end time"
                )
        except ValueError:
            errors.append(f"Invalid time format in availability for {teacher.name}. Use HH:MM format")

    return errors


def validate_records(
    teachers: Sequence[Teacher],
    classes: Sequence[ClassGroup],
    subjects: Sequence[Subject],
) -> List[str]:
    """Validate the records of a run and return list of problems."""
    errors = []

    errors.extend(_duplicate_ids("teacher", [t.id for t in teachers]))
    errors.extend(_duplicate_ids("class", [c.id for c in classes]))
    errors.extend(_duplicate_ids("subject", [s.id for s in subjects]))

    # Check if classes have subjects
    subject_ids = {s.id for s in subjects}
    for class_group in classes:
        if not class_group.subjects:
            errors.append(f"Class {class_group.name} has no subjects assigned")
        for subject_id in class_group.subjects:
            if subject_id not in subject_ids:
                errors.append(f"Class {class_group.name} requires unknown subject '{subject_id}'")

    # Check if subjects have teachers
    for subject in subjects:
        if not any(subject.id in teacher.subjects for teacher in teachers):
            errors.append(f"Subject {subject.name} has no qualified teachers")

    for teacher in teachers:
        errors.extend(_validate_teacher(teacher))

    for error in errors:
        logger.warning(f"Data validation: {error}")

    return errors
