"""Double-booking detection over half-open ``[start, end)`` intervals."""

from datetime import datetime

from apointa.models.appointment import Appointment


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    # Strict on both sides: an appointment ending at 9:30 does not clash with one starting at 9:30.
    return start_a < end_b and start_b < end_a


def find_conflicts(store, doctor_id: int, start: datetime, end: datetime) -> list[Appointment]:
    """Return the doctor's active appointments that intersect ``[start, end)``."""
    candidates = store.find_active_appointments_overlapping(doctor_id, start, end)
    return [
        appointment
        for appointment in candidates
        if intervals_overlap(appointment.start_datetime, appointment.end_datetime, start, end)
    ]


def has_conflict(store, doctor_id: int, start: datetime, end: datetime) -> bool:
    return bool(find_conflicts(store, doctor_id, start, end))
