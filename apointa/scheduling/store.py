"""Storage operations the scheduling engine relies on.

A :class:`SchedulingStore` wraps a SQLAlchemy session handed to it by the
caller. It never opens or closes connections; the session's owner does.
Writes are flushed but not committed so that a booking's check and insert
share one transaction.
"""

from datetime import datetime, time

from sqlalchemy.orm import Session

from apointa.models.appointment import Appointment
from apointa.models.availability import Availability
from apointa.models.doctor import Doctor
from apointa.models.user import User
from apointa.scheduling.status import ACTIVE_STATUSES, AppointmentStatus


class SchedulingStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def refresh(self, instance) -> None:
        self.session.refresh(instance)

    # Doctors

    def get_doctor(self, doctor_id: int) -> Doctor | None:
        return self.session.query(Doctor).filter(Doctor.id == doctor_id).first()

    def find_doctor_by_user_id(self, user_id: int) -> Doctor | None:
        return self.session.query(Doctor).filter(Doctor.user_id == user_id).first()

    def lock_doctor(self, doctor_id: int) -> Doctor | None:
        """Fetch the doctor row with a write lock held until the transaction ends.

        Concurrent bookings for the same doctor queue behind this lock on
        databases that support ``SELECT ... FOR UPDATE``.
        """
        return (
            self.session.query(Doctor)
            .filter(Doctor.id == doctor_id)
            .with_for_update()
            .first()
        )

    def list_doctors(self) -> list[tuple[Doctor, str]]:
        return (
            self.session.query(Doctor, User.name)
            .join(User, Doctor.user_id == User.id)
            .order_by(Doctor.id.asc())
            .all()
        )

    # Availability windows

    def get_availability_windows(self, doctor_id: int) -> list[Availability]:
        return (
            self.session.query(Availability)
            .filter(Availability.doctor_id == doctor_id)
            .order_by(Availability.day_of_week.asc(), Availability.start_time.asc())
            .all()
        )

    def get_availability(self, availability_id: int) -> Availability | None:
        return self.session.query(Availability).filter(Availability.id == availability_id).first()

    def insert_availability(
        self,
        doctor_id: int,
        day_of_week: int,
        start_time: time,
        end_time: time,
    ) -> Availability:
        window = Availability(
            doctor_id=doctor_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
        )
        self.session.add(window)
        self.session.flush()
        return window

    def delete_availability(self, window: Availability) -> None:
        self.session.delete(window)
        self.session.flush()

    # Appointments

    def find_active_appointments_overlapping(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
    ) -> list[Appointment]:
        return (
            self.session.query(Appointment)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.status.in_([status.value for status in ACTIVE_STATUSES]),
                Appointment.start_datetime < end,
                Appointment.end_datetime > start,
            )
            .order_by(Appointment.start_datetime.asc())
            .all()
        )

    def insert_appointment(
        self,
        doctor_id: int,
        patient_id: int,
        start: datetime,
        end: datetime,
        status: AppointmentStatus = AppointmentStatus.PENDING,
    ) -> Appointment:
        appointment = Appointment(
            doctor_id=doctor_id,
            patient_id=patient_id,
            start_datetime=start,
            end_datetime=end,
            status=status.value,
        )
        self.session.add(appointment)
        self.session.flush()
        return appointment

    def get_appointment(self, appointment_id: int) -> Appointment | None:
        return self.session.query(Appointment).filter(Appointment.id == appointment_id).first()

    def update_appointment_status(self, appointment: Appointment, status: AppointmentStatus) -> Appointment:
        appointment.status = AppointmentStatus(status).value
        self.session.flush()
        return appointment

    def list_appointments_for_patient(self, patient_id: int) -> list[tuple[Appointment, Doctor, str]]:
        return (
            self.session.query(Appointment, Doctor, User.name)
            .join(Doctor, Appointment.doctor_id == Doctor.id)
            .join(User, Doctor.user_id == User.id)
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.id.asc())
            .all()
        )

    def list_appointments_for_doctor(self, doctor_id: int) -> list[tuple[Appointment, str | None]]:
        return (
            self.session.query(Appointment, User.name)
            .outerjoin(User, Appointment.patient_id == User.id)
            .filter(Appointment.doctor_id == doctor_id)
            .order_by(Appointment.id.asc())
            .all()
        )
