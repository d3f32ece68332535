"""Checks a candidate appointment against a doctor's weekly availability.

Windows are wall-clock times with a day of week counted from Sunday = 0.
Several windows on the same day are treated as a union; a candidate must fit
entirely inside one of them. Candidates that cross midnight are rejected.
"""

from datetime import datetime, time, timedelta
from typing import Iterable

from apointa.models.availability import Availability
from apointa.scheduling.errors import ConflictError

SUNDAY = 0


def day_of_week(moment: datetime) -> int:
    # isoweekday: Monday = 1 ... Sunday = 7
    return moment.isoweekday() % 7


def _offset_from_midnight(value: time) -> timedelta:
    return timedelta(hours=value.hour, minutes=value.minute, seconds=value.second, microseconds=value.microsecond)


def spans_midnight(start: datetime, end: datetime) -> bool:
    last_instant = end - timedelta(microseconds=1)
    return last_instant.date() != start.date()


def is_within_availability(windows: Iterable[Availability], start: datetime, end: datetime) -> bool:
    if spans_midnight(start, end):
        return False

    day_start = datetime.combine(start.date(), time.min)
    start_offset = start - day_start
    # An end exactly at the next midnight becomes 24:00 and no TIME window reaches it.
    end_offset = end - day_start
    weekday = day_of_week(start)

    return any(
        window.day_of_week == weekday
        and _offset_from_midnight(window.start_time) <= start_offset
        and _offset_from_midnight(window.end_time) >= end_offset
        for window in windows
    )


def validate_availability(store, doctor_id: int, start: datetime, end: datetime) -> None:
    if spans_midnight(start, end):
        raise ConflictError('Appointments cannot span midnight.')

    weekday = day_of_week(start)
    windows = [window for window in store.get_availability_windows(doctor_id) if window.day_of_week == weekday]
    if not windows:
        raise ConflictError('Doctor has no availability on the requested day.')

    if not is_within_availability(windows, start, end):
        raise ConflictError("Selected time is outside the doctor's availability.")
