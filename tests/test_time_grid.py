"""
Tests for time grid construction.
"""
import pytest

from models.schemas import GenerationConfig, SpecialPeriod
from service.errors import ConfigurationError
from service.time_grid import (
    build_time_slots, build_time_slots_from_config, minutes_to_str, to_minutes
)


def test_slots_step_through_the_day():
    slots = build_time_slots(["Monday", "Tuesday"], "08:00", "11:00", 1)

    assert [(s.day, s.start_time, s.end_time) for s in slots] == [
        ("Monday", "08:00", "09:00"),
        ("Monday", "09:00", "10:00"),
        ("Monday", "10:00", "11:00"),
        ("Tuesday", "08:00", "09:00"),
        ("Tuesday", "09:00", "10:00"),
        ("Tuesday", "10:00", "11:00"),
    ]
    assert not any(s.is_special_period for s in slots)
    assert slots[0].key == "Monday_08:00"


def test_fractional_period_duration():
    slots = build_time_slots(["Monday"], "08:00", "09:30", 0.75)

    assert [(s.start_time, s.end_time) for s in slots] == [
        ("08:00", "08:45"),
        ("08:45", "09:30"),
    ]


def test_last_slot_is_not_clamped():
    """A slot starting before the end time keeps its full length."""
    slots = build_time_slots(["Monday"], "09:00", "10:30", 1)

    assert [(s.start_time, s.end_time) for s in slots] == [
        ("09:00", "10:00"),
        ("10:00", "11:00"),
    ]


def test_special_periods_are_marked():
    specials = [
        SpecialPeriod(day="Friday", start_time="09:00", end_time="10:00", type="Assembly"),
        SpecialPeriod(day="Monday", start_time="9:30", end_time="10:00", type="Unmatched"),
    ]
    slots = build_time_slots(["Monday", "Friday"], "08:00", "10:00", 1, specials)

    special = [s for s in slots if s.is_special_period]
    assert len(special) == 1
    assert special[0].day == "Friday"
    assert special[0].start_time == "09:00"
    assert special[0].special_type == "Assembly"


def test_special_period_time_is_normalized():
    specials = [SpecialPeriod(day="Monday", start_time="9:00", end_time="10:00", type="Lunch")]
    slots = build_time_slots(["Monday"], "08:00", "10:00", 1, specials)

    assert slots[1].is_special_period
    assert slots[1].special_type == "Lunch"


def test_build_from_config():
    config = GenerationConfig(days=["Monday"], start_time="08:00", end_time="10:00", period_duration=0.5)
    assert len(build_time_slots_from_config(config)) == 4


@pytest.mark.parametrize("days,start,end,duration,expected", [
    ([], "08:00", "10:00", 1, "No days configured"),
    (["Monday", "Monday"], "08:00", "10:00", 1, "Duplicate day 'Monday'"),
    (["Monday", " Monday "], "08:00", "10:00", 1, "Duplicate day 'Monday'"),
    (["Monday"], "8 o'clock", "10:00", 1, "Invalid start time"),
    (["Monday"], "08:00", "25:99", 1, "Invalid end time"),
    (["Monday"], "10:00", "10:00", 1, "must be after start time"),
    (["Monday"], "12:00", "08:00", 1, "must be after start time"),
    (["Monday"], "08:00", "10:00", 0, "Period duration must be greater than 0"),
])
def test_configuration_errors(days, start, end, duration, expected):
    with pytest.raises(ConfigurationError) as exc_info:
        build_time_slots(days, start, end, duration)

    assert any(expected in error for error in exc_info.value.errors)


def test_invalid_special_period_time():
    specials = [SpecialPeriod(day="Monday", start_time="noon", end_time="13:00", type="Lunch")]

    with pytest.raises(ConfigurationError) as exc_info:
        build_time_slots(["Monday"], "08:00", "14:00", 1, specials)

    assert "special period 'Lunch'" in exc_info.value.errors[0]


def test_minute_conversions():
    assert to_minutes("09:30") == 570
    assert minutes_to_str(570) == "09:30"
    assert minutes_to_str(24 * 60 + 30) == "24:30"
