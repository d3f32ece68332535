import logging
from datetime import time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apointa.database import get_db
from apointa.scheduling.errors import DATABASE_UNAVAILABLE, InternalError, SchedulingError
from apointa.scheduling.store import SchedulingStore
from apointa.scheduling.windows import (
    create_window,
    delete_window,
    list_windows_for_doctor_user,
    update_window,
)

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)


def _strip_optional(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class CreateAvailabilityRequest(BaseModel):
    """``doctor_id`` is the doctor's user id; times are ``HH:MM:SS`` wall-clock strings."""
    doctor_id: int | None = None
    day_of_week: int | None = None
    start_time: str | None = None
    end_time: str | None = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def strip_times(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class UpdateAvailabilityRequest(BaseModel):
    day_of_week: int | None = None
    start_time: str | None = None
    end_time: str | None = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def strip_times(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class AvailabilityResponse(BaseModel):
    id: int
    doctor_id: int
    day_of_week: int
    start_time: time
    end_time: time

    class Config:
        from_attributes = True


class DeleteAvailabilityResponse(BaseModel):
    message: str
    id: int


def _database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    logger.exception('Availability lookup failed: %s', exc)
    return InternalError(DATABASE_UNAVAILABLE).to_http_exception()


@router.get('/doctor/{user_id}', response_model=list[AvailabilityResponse])
def list_doctor_availabilities(user_id: int, db: Session = Depends(get_db)):
    try:
        return list_windows_for_doctor_user(SchedulingStore(db), user_id)
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc


@router.post('', response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_availability(data: CreateAvailabilityRequest, db: Session = Depends(get_db)):
    try:
        return create_window(
            SchedulingStore(db),
            doctor_user_id=data.doctor_id,
            day_of_week=data.day_of_week,
            start_time=data.start_time,
            end_time=data.end_time,
        )
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc


@router.patch('/{availability_id}', response_model=AvailabilityResponse)
def update_availability(
    availability_id: int,
    data: UpdateAvailabilityRequest,
    db: Session = Depends(get_db),
):
    try:
        return update_window(
            SchedulingStore(db),
            availability_id,
            day_of_week=data.day_of_week,
            start_time=data.start_time,
            end_time=data.end_time,
        )
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc


@router.delete('/{availability_id}', response_model=DeleteAvailabilityResponse)
def delete_availability(availability_id: int, db: Session = Depends(get_db)):
    try:
        return delete_window(SchedulingStore(db), availability_id)
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc
