"""Doctor model definitions."""

from sqlalchemy import Column, Integer, ForeignKey, String
from apointa.database import Base


class Doctor(Base):
    """Represents a doctor profile. The display name lives on the linked user."""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    specialty = Column(String)
    clinic_name = Column(String)
    phone = Column(String)
