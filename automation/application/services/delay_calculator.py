"""Convert a DELAY step duration into the enrollment's next eligible time."""

from datetime import datetime, timedelta

from automation.domain.enums import DelayUnit


def delay_milliseconds(value: int | float, unit: str | None) -> int | float:
    """Duration in milliseconds; a missing or unknown unit counts as minutes."""
    try:
        delay_unit = DelayUnit(unit)
    except ValueError:
        delay_unit = DelayUnit.MINUTES
    return value * delay_unit.milliseconds


def compute_next_step_at(now: datetime, value: int | float, unit: str | None) -> datetime:
    """Return now + value * unit.

    Raises:
        OverflowError: the result falls outside the datetime range.
    """
    return now + timedelta(milliseconds=delay_milliseconds(value, unit))
