import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apointa.database import get_db
from apointa.routes.availability_routes import AvailabilityResponse
from apointa.scheduling.errors import DATABASE_UNAVAILABLE, InternalError
from apointa.scheduling.store import SchedulingStore

router = APIRouter(tags=['doctors'])

logger = logging.getLogger(__name__)


class DoctorResponse(BaseModel):
    id: int
    name: str | None = None
    specialty: str | None = None
    clinic_name: str | None = None
    phone: str | None = None


@router.get('', response_model=list[DoctorResponse])
def list_doctors(db: Session = Depends(get_db)):
    try:
        rows = SchedulingStore(db).list_doctors()
    except SQLAlchemyError as exc:
        logger.exception('Error listing doctors')
        raise InternalError(DATABASE_UNAVAILABLE).to_http_exception() from exc

    return [
        DoctorResponse(
            id=doctor.id,
            name=name,
            specialty=doctor.specialty,
            clinic_name=doctor.clinic_name,
            phone=doctor.phone,
        )
        for doctor, name in rows
    ]


@router.get('/{doctor_id}/availability', response_model=list[AvailabilityResponse])
def list_doctor_availability(doctor_id: int, db: Session = Depends(get_db)):
    """Weekly windows keyed by the doctor's own id. Unknown doctors have no windows."""
    try:
        return SchedulingStore(db).get_availability_windows(doctor_id)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching availability for doctor %s', doctor_id)
        raise InternalError(DATABASE_UNAVAILABLE).to_http_exception() from exc
