"""Booking engine.

Validates a booking request, checks it against the doctor's availability
(when enforcement is on) and existing active appointments, then writes a
single ``pending`` appointment. Checks run in a fixed order and the first
failure wins; a failed booking never leaves a row behind.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from apointa.database import APPOINTMENT_OVERLAP_CONSTRAINT
from apointa.models.appointment import Appointment
from apointa.scheduling.availability import validate_availability
from apointa.scheduling.errors import (
    DATABASE_UNAVAILABLE,
    ConflictError,
    InternalError,
    InvalidRequestError,
    NotFoundError,
    SchedulingError,
)
from apointa.scheduling.overlap import find_conflicts
from apointa.scheduling.status import AppointmentStatus

logger = logging.getLogger(__name__)

DEFAULT_APPOINTMENT_DURATION = timedelta(minutes=30)
SLOT_TAKEN_MESSAGE = 'Selected time slot is already booked'


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def parse_timestamp(value, field_name: str) -> datetime:
    """Parse an ISO-8601 timestamp into a naive UTC datetime.

    Offsets are converted to UTC; values without an offset are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(('Z', 'z')):
            text = f'{text[:-1]}+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidRequestError(f'Invalid {field_name}') from exc
    else:
        raise InvalidRequestError(f'Invalid {field_name}')

    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        except OverflowError as exc:
            raise InvalidRequestError(f'Invalid {field_name}') from exc
    return parsed


def resolve_window(start, end=None, default_duration: timedelta = DEFAULT_APPOINTMENT_DURATION) -> tuple[datetime, datetime]:
    start_at = parse_timestamp(start, 'start_datetime')
    if _is_blank(end):
        try:
            end_at = start_at + default_duration
        except OverflowError as exc:
            raise InvalidRequestError('Invalid end_datetime') from exc
    else:
        end_at = parse_timestamp(end, 'end_datetime')

    if end_at <= start_at:
        raise InvalidRequestError('end_datetime must be after start_datetime')

    return start_at, end_at


def book_appointment(
    store,
    doctor_id,
    patient_id,
    start,
    end=None,
    *,
    enforce_availability: bool = False,
    default_duration: timedelta = DEFAULT_APPOINTMENT_DURATION,
) -> Appointment:
    if _is_blank(doctor_id) or _is_blank(patient_id) or _is_blank(start):
        raise InvalidRequestError('doctor_id, patient_id, and start_datetime are required')

    start_at, end_at = resolve_window(start, end, default_duration)

    try:
        # Holding the doctor row serializes concurrent bookings for that doctor.
        doctor = store.lock_doctor(doctor_id)
        if doctor is None:
            raise NotFoundError('Doctor not found')

        if enforce_availability:
            validate_availability(store, doctor.id, start_at, end_at)

        if find_conflicts(store, doctor.id, start_at, end_at):
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        appointment = store.insert_appointment(
            doctor_id=doctor.id,
            patient_id=patient_id,
            start=start_at,
            end=end_at,
            status=AppointmentStatus.PENDING,
        )
        store.commit()
        store.refresh(appointment)
    except SchedulingError as exc:
        store.rollback()
        logger.info('Booking rejected for doctor %s at %s: %s', doctor_id, start_at.isoformat(), exc.message)
        raise
    except IntegrityError as exc:
        store.rollback()
        if APPOINTMENT_OVERLAP_CONSTRAINT in str(exc.orig):
            logger.info('Booking for doctor %s lost a concurrent race at %s', doctor_id, start_at.isoformat())
            raise ConflictError(SLOT_TAKEN_MESSAGE) from exc
        logger.exception('Integrity error while creating appointment for doctor %s', doctor_id)
        raise InternalError('Server error while creating appointment') from exc
    except SQLAlchemyError as exc:
        store.rollback()
        logger.exception('Error creating appointment for doctor %s', doctor_id)
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info(
        'Booked appointment %s for doctor %s and patient %s (%s - %s)',
        appointment.id,
        doctor_id,
        patient_id,
        start_at.isoformat(),
        end_at.isoformat(),
    )
    return appointment
