"""Appointment lifecycle.

Appointments are created ``pending`` by the booking engine and only change
through :func:`set_status`. The transition table is permissive:
every status may move to every other status, including out of ``completed``
and ``canceled``. Tighten :data:`TRANSITIONS` to restrict it.
"""

import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from apointa.models.appointment import Appointment
from apointa.scheduling.errors import (
    DATABASE_UNAVAILABLE,
    InternalError,
    InvalidRequestError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


class AppointmentStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELED = 'canceled'


ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    source: frozenset(AppointmentStatus) for source in AppointmentStatus
}


def parse_status(value) -> AppointmentStatus:
    if isinstance(value, AppointmentStatus):
        return value
    try:
        return AppointmentStatus(value)
    except ValueError as exc:
        raise InvalidRequestError('Invalid status value') from exc


def can_transition(source: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in TRANSITIONS[source]


def set_status(store, appointment_id: int, new_status) -> Appointment:
    target = parse_status(new_status)

    try:
        appointment = store.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError('Appointment not found')

        source = parse_status(appointment.status)
        if not can_transition(source, target):
            raise InvalidRequestError(f'Cannot move appointment from {source.value} to {target.value}')

        store.update_appointment_status(appointment, target)
        store.commit()
        store.refresh(appointment)
    except SQLAlchemyError as exc:
        store.rollback()
        logger.exception('Failed to update status of appointment %s', appointment_id)
        raise InternalError(DATABASE_UNAVAILABLE) from exc

    logger.info('Appointment %s moved from %s to %s', appointment_id, source.value, target.value)
    return appointment
