"""
Time grid construction.

Turns the configured week layout (days, opening hours, period length and
special periods) into the ordered list of time slots every class shares.
"""
from datetime import datetime, time
from typing import Dict, List, Optional, Sequence

from models.schemas import GenerationConfig, SpecialPeriod, TimeSlot
from service.errors import ConfigurationError


def parse_time(time_str: str) -> time:
    """Parse HH:MM time string to time object."""
    return datetime.strptime(time_str.strip(), '%H:%M').time()


def time_to_str(t: time) -> str:
    """Convert time object to HH:MM string."""
    return t.strftime('%H:%M')


def to_minutes(time_str: str) -> int:
    """Minutes since midnight for an HH:MM string (hours may exceed 23)."""
    hours, minutes = time_str.strip().split(':')
    return int(hours) * 60 + int(minutes)


def minutes_to_str(minutes: int) -> str:
    """Format minutes since midnight as HH:MM.

    Values past midnight keep counting hours (e.g. 1500 -> "25:00") so a
    period overrunning the day still sorts after the ones before it.
    """
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def _normalize(time_str: str) -> Optional[str]:
    try:
        return time_to_str(parse_time(time_str))
    except (ValueError, AttributeError):
        return None


def validate_layout(
    days: Sequence[str],
    start_time: str,
    end_time: str,
    period_duration: float,
    special_periods: Sequence[SpecialPeriod] = (),
) -> List[str]:
    """Validate the week layout and return list of errors."""
    errors = []

    if not days or not any(d.strip() for d in days):
        errors.append("No days configured")

    seen = set()
    for day in days:
        day = day.strip()
        if day and day in seen:
            errors.append(f"Duplicate day '{day}'")
        seen.add(day)

    start = _normalize(start_time)
    end = _normalize(end_time)
    if start is None:
        errors.append(f"Invalid start time '{start_time}'. Use HH:MM format (e.g., '08:00')")
    if end is None:
        errors.append(f"Invalid end time '{end_time}'. Use HH:MM format (e.g., '15:00')")
    if start is not None and end is not None and end <= start:
        errors.append(f"End time ({end_time}) must be after start time ({start_time})")

    if period_duration is None or period_duration <= 0 or round(period_duration * 60) <= 0:
        errors.append("Period duration must be greater than 0 hours")

    for special in special_periods:
        if _normalize(special.start_time) is None or _normalize(special.end_time) is None:
            errors.append(
                f"Invalid time in special period '{special.type}' on {special.day}. Use HH:MM format"
            )

    return errors


def build_time_slots(
    days: Sequence[str],
    start_time: str,
    end_time: str,
    period_duration: float,
    special_periods: Sequence[SpecialPeriod] = (),
) -> List[TimeSlot]:
    """
    Build the ordered slot sequence for every configured day.

    Slots step from start to end in ``period_duration`` hours; a slot is
    produced while its start is before the end time, and its end is not
    clamped. A slot whose (day, start time) equals a special period's is
    marked special and carries the period's type.

    Raises:
        ConfigurationError: if the layout is unusable.
    """
    errors = validate_layout(days, start_time, end_time, period_duration, special_periods)
    if errors:
        raise ConfigurationError(errors)

    step = int(round(period_duration * 60))
    start = to_minutes(start_time)
    end = to_minutes(end_time)

    specials: Dict[tuple, SpecialPeriod] = {}
    for special in special_periods:
        key = (special.day.strip(), _normalize(special.start_time))
        # First definition wins for duplicate (day, start) pairs
        specials.setdefault(key, special)

    slots = []
    for day in days:
        day = day.strip()
        if not day:
            continue
        current = start
        while current < end:
            slot_start = minutes_to_str(current)
            special = specials.get((day, slot_start))
            slots.append(TimeSlot(
                day=day,
                start_time=slot_start,
                end_time=minutes_to_str(current + step),
                is_special_period=special is not None,
                special_type=special.type if special is not None else None
            ))
            current += step

    return slots


def build_time_slots_from_config(config: GenerationConfig) -> List[TimeSlot]:
    return build_time_slots(
        config.days,
        config.start_time,
        config.end_time,
        config.period_duration,
        config.special_periods,
    )
