"""Management of doctors' recurring availability windows."""

import logging
from datetime import time

from sqlalchemy.exc import SQLAlchemyError

from apointa.models.availability import Availability
from apointa.scheduling.errors import (
    DATABASE_UNAVAILABLE,
    InternalError,
    InvalidRequestError,
    NotFoundError,
    SchedulingError,
)

logger = logging.getLogger(__name__)

DOCTOR_NOT_FOUND_FOR_USER = 'Doctor not found for this user'


def parse_time_of_day(value, field_name: str) -> time:
    """Parse ``HH:MM:SS`` (or ``HH:MM``) wall-clock text. Offsets are not allowed."""
    if isinstance(value, time):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = time.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidRequestError(f'Invalid {field_name}') from exc
    else:
        raise InvalidRequestError(f'Invalid {field_name}')

    if parsed.tzinfo is not None:
        raise InvalidRequestError(f'{field_name} must not carry a timezone')
    return parsed


def parse_day_of_week(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
        raise InvalidRequestError('day_of_week must be an integer from 0 (Sunday) to 6 (Saturday)')
    return value


def _check_order(start_time: time, end_time: time) -> None:
    if start_time >= end_time:
        raise InvalidRequestError('start_time must be before end_time')


def list_windows_for_doctor_user(store, user_id: int) -> list[Availability]:
    doctor = store.find_doctor_by_user_id(user_id)
    if doctor is None:
        raise NotFoundError(DOCTOR_NOT_FOUND_FOR_USER)
    return store.get_availability_windows(doctor.id)


def create_window(store, doctor_user_id, day_of_week, start_time, end_time) -> Availability:
    if doctor_user_id is None or day_of_week is None or not start_time or not end_time:
        raise InvalidRequestError('doctor_id, day_of_week, start_time, end_time are required')

    day = parse_day_of_week(day_of_week)
    opens = parse_time_of_day(start_time, 'start_time')
    closes = parse_time_of_day(end_time, 'end_time')
    _check_order(opens, closes)

    try:
        doctor = store.find_doctor_by_user_id(doctor_user_id)
        if doctor is None:
            raise NotFoundError(DOCTOR_NOT_FOUND_FOR_USER)

        window = store.insert_availability(doctor.id, day, opens, closes)
        store.commit()
        store.refresh(window)
    except SchedulingError:
        store.rollback()
        raise
    except SQLAlchemyError as exc:
        store.rollback()
        logger.exception('Error creating availability for user %s', doctor_user_id)
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('Doctor %s is available on day %s from %s to %s', window.doctor_id, day, opens, closes)
    return window


def update_window(store, availability_id: int, day_of_week=None, start_time=None, end_time=None) -> Availability:
    if day_of_week is None and not start_time and not end_time:
        raise InvalidRequestError('At least one field to update is required')

    day = parse_day_of_week(day_of_week) if day_of_week is not None else None
    opens = parse_time_of_day(start_time, 'start_time') if start_time else None
    closes = parse_time_of_day(end_time, 'end_time') if end_time else None

    try:
        window = store.get_availability(availability_id)
        if window is None:
            raise NotFoundError('Availability not found')

        _check_order(opens or window.start_time, closes or window.end_time)

        if day is not None:
            window.day_of_week = day
        if opens is not None:
            window.start_time = opens
        if closes is not None:
            window.end_time = closes

        store.commit()
        store.refresh(window)
    except SchedulingError:
        store.rollback()
        raise
    except SQLAlchemyError as exc:
        store.rollback()
        logger.exception('Error updating availability %s', availability_id)
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('Availability %s updated', availability_id)
    return window


def delete_window(store, availability_id: int) -> dict:
    try:
        window = store.get_availability(availability_id)
        if window is None:
            raise NotFoundError('Availability not found')

        store.delete_availability(window)
        store.commit()
    except SchedulingError:
        store.rollback()
        raise
    except SQLAlchemyError as exc:
        store.rollback()
        logger.exception('Error deleting availability %s', availability_id)
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('Availability %s deleted', availability_id)
    return {'message': 'Deleted', 'id': availability_id}
