import logging
from typing import List, Tuple

from fastapi import APIRouter, HTTPException

from models.schemas import (
    ClassTimetableResponse, ErrorMessage, GenerationRequest, GenerationResponse,
    Messages, TeacherTimetableResponse
)
from service.errors import ConfigurationError, DataIntegrityError, UnknownRecordError
from service.timetable_solver import GenerationResult, TimetableScheduler

logger = logging.getLogger(__name__)

# Create a router instance
router = APIRouter()


def _invalid_messages(exc: Exception) -> Messages:
    if isinstance(exc, ConfigurationError):
        code, title, problems = "INVALID_CONFIGURATION", "Invalid Configuration", exc.errors
        hint = "Check the day list, HH:MM times and period duration."
    else:
        code, title, problems = "INVALID_DATA", "Invalid Data", exc.warnings
        hint = "Fix the listed records before generating a timetable."
    return Messages(error_message=[
        ErrorMessage(code=code, title=title, description=problem, resolution_hint=hint)
        for problem in problems
    ])


def _error_messages(error: str) -> Messages:
    return Messages(error_message=[
        ErrorMessage(
            code="GENERATION_ERROR",
            title="Generation Error",
            description=error,
            resolution_hint="Please check your input data and try again."
        )
    ])


def _result_messages(result: GenerationResult) -> Messages:
    messages: List[ErrorMessage] = []
    if result.stats.budget_exhausted:
        messages.append(ErrorMessage(
            code="SEARCH_BUDGET_EXHAUSTED",
            severity="WARNING",
            title="Search Budget Exhausted",
            description=f"Search stopped after {result.stats.search_steps} steps.",
            resolution_hint="Raise max_search_steps or relax constraints."
        ))
    elif not result.success:
        messages.append(ErrorMessage(
            code="TOO_MANY_FREE_PERIODS",
            severity="ERROR",
            title="Unable To Fill Timetable",
            description="No arrangement keeps free periods within max_free_ratio.",
            resolution_hint="Increase teacher availability, add teachers or reduce subject requirements."
        ))
    if result.stats.free_slots:
        messages.append(ErrorMessage(
            code="FREE_PERIODS",
            severity="WARNING",
            title="Free Periods",
            description=f"{result.stats.free_slots} periods could not be filled."
        ))
    return Messages(error_message=messages)


def _run(request: GenerationRequest) -> Tuple[TimetableScheduler, GenerationResult]:
    scheduler = TimetableScheduler()
    result = scheduler.generate(request.teachers, request.classes, request.subjects, request.config)
    return scheduler, result


@router.post("/schedule/generate", response_model=GenerationResponse)
async def generate_timetable(request: GenerationRequest):
    """
    Generate timetables for every class.

    Runs the greedy pre-fill followed by the backtracking search and returns
    each class's timetable with the sessions it is still owed.
    """
    try:
        scheduler, result = _run(request)
    except (ConfigurationError, DataIntegrityError) as e:
        return GenerationResponse(status="INVALID", messages=_invalid_messages(e))
    except Exception as e:
        logger.error(f"Generation error: {str(e)}", exc_info=True)
        return GenerationResponse(status="ERROR", messages=_error_messages(str(e)))

    return GenerationResponse(
        status=result.status,
        success=result.success,
        timetables=[scheduler.build_class_timetable(c.id) for c in scheduler.classes],
        stats=result.stats,
        messages=_result_messages(result)
    )


@router.post("/schedule/classes/{class_id}", response_model=ClassTimetableResponse)
async def class_timetable(class_id: str, request: GenerationRequest):
    """Generate, then return the timetable of a single class."""
    try:
        scheduler, result = _run(request)
        timetable = scheduler.build_class_timetable(class_id)
    except UnknownRecordError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ConfigurationError, DataIntegrityError) as e:
        return ClassTimetableResponse(status="INVALID", messages=_invalid_messages(e))
    except Exception as e:
        logger.error(f"Timetable view error: {str(e)}", exc_info=True)
        return ClassTimetableResponse(status="ERROR", messages=_error_messages(str(e)))

    return ClassTimetableResponse(
        status=result.status,
        success=result.success,
        timetable=timetable,
        messages=_result_messages(result)
    )


@router.post("/schedule/teachers/{teacher_id}", response_model=TeacherTimetableResponse)
async def teacher_timetable(teacher_id: str, request: GenerationRequest):
    """Generate, then return the timetable of a single teacher."""
    try:
        scheduler, result = _run(request)
        timetable = scheduler.build_teacher_timetable(teacher_id)
    except UnknownRecordError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ConfigurationError, DataIntegrityError) as e:
        return TeacherTimetableResponse(status="INVALID", messages=_invalid_messages(e))
    except Exception as e:
        logger.error(f"Timetable view error: {str(e)}", exc_info=True)
        return TeacherTimetableResponse(status="ERROR", messages=_error_messages(str(e)))

    return TeacherTimetableResponse(
        status=result.status,
        success=result.success,
        timetable=timetable,
        messages=_result_messages(result)
    )
