"""Availability model definitions."""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Time
from apointa.database import Base


class Availability(Base):
    """Represents a recurring weekly window in which a doctor takes appointments.

    ``day_of_week`` counts from Sunday = 0 to Saturday = 6.
    """
    __tablename__ = "availabilities"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availabilities_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_availabilities_time_order"),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
