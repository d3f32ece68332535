"""Appointment model definitions."""

from sqlalchemy import CheckConstraint, Column, Integer, DateTime, ForeignKey, String
from apointa.database import Base


class Appointment(Base):
    """Represents a booked appointment. Datetimes are stored as naive UTC."""
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("start_datetime < end_datetime", name="ck_appointments_time_order"),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default="pending")
