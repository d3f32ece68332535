import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apointa.core import config
from apointa.database import get_db
from apointa.scheduling.booking import book_appointment
from apointa.scheduling.errors import DATABASE_UNAVAILABLE, InternalError, NotFoundError, SchedulingError
from apointa.scheduling.status import set_status
from apointa.scheduling.store import SchedulingStore

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CreateAppointmentRequest(BaseModel):
    doctor_id: int | None = None
    patient_id: int | None = None
    start_datetime: str | None = None
    end_datetime: str | None = None


class UpdateAppointmentStatusRequest(BaseModel):
    status: str | None = None

    @field_validator('status')
    @classmethod
    def strip_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()


class AppointmentResponse(BaseModel):
    id: int
    doctor_id: int
    patient_id: int
    start_datetime: datetime
    end_datetime: datetime
    status: str

    @field_validator('start_datetime', 'end_datetime')
    @classmethod
    def attach_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    class Config:
        from_attributes = True


class PatientAppointmentResponse(BaseModel):
    id: int
    start_datetime: datetime
    end_datetime: datetime
    status: str
    doctor_id: int
    doctor_name: str | None = None
    specialty: str | None = None

    @field_validator('start_datetime', 'end_datetime')
    @classmethod
    def attach_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class DoctorAppointmentResponse(BaseModel):
    id: int
    doctor_id: int
    start_datetime: datetime
    end_datetime: datetime
    status: str
    patient_id: int
    patient_name: str | None = None

    @field_validator('start_datetime', 'end_datetime')
    @classmethod
    def attach_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


def _database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    logger.exception('Appointment lookup failed: %s', exc)
    return InternalError(DATABASE_UNAVAILABLE).to_http_exception()


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    """Book a pending appointment. ``end_datetime`` defaults to the configured duration after the start."""
    try:
        return book_appointment(
            SchedulingStore(db),
            doctor_id=data.doctor_id,
            patient_id=data.patient_id,
            start=data.start_datetime,
            end=data.end_datetime,
            enforce_availability=config.ENFORCE_AVAILABILITY,
            default_duration=timedelta(minutes=config.DEFAULT_APPOINTMENT_MINUTES),
        )
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc


@router.get('/patient/{patient_id}', response_model=list[PatientAppointmentResponse])
def list_patient_appointments(patient_id: int, db: Session = Depends(get_db)):
    try:
        rows = SchedulingStore(db).list_appointments_for_patient(patient_id)
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc

    return [
        PatientAppointmentResponse(
            id=appointment.id,
            start_datetime=appointment.start_datetime,
            end_datetime=appointment.end_datetime,
            status=appointment.status,
            doctor_id=doctor.id,
            doctor_name=doctor_name,
            specialty=doctor.specialty,
        )
        for appointment, doctor, doctor_name in rows
    ]


@router.get('/doctor/{user_id}', response_model=list[DoctorAppointmentResponse])
def list_doctor_appointments(user_id: int, db: Session = Depends(get_db)):
    """List a doctor's appointments. The path takes the doctor's user id."""
    store = SchedulingStore(db)
    try:
        doctor = store.find_doctor_by_user_id(user_id)
        if doctor is None:
            raise NotFoundError('Doctor not found for this user')
        rows = store.list_appointments_for_doctor(doctor.id)
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc

    return [
        DoctorAppointmentResponse(
            id=appointment.id,
            doctor_id=appointment.doctor_id,
            start_datetime=appointment.start_datetime,
            end_datetime=appointment.end_datetime,
            status=appointment.status,
            patient_id=appointment.patient_id,
            patient_name=patient_name,
        )
        for appointment, patient_name in rows
    ]


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    db: Session = Depends(get_db),
):
    try:
        return set_status(SchedulingStore(db), appointment_id, data.status)
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc
