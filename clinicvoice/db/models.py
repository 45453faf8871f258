"""Database models."""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Clinic(Base):
    """Tenant (clinic) model; the clinic ID doubles as the call routing key."""

    __tablename__ = "clinics"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)

    # Relationships
    ai_configuration = relationship("AiConfiguration", back_populates="clinic", uselist=False)
    appointments = relationship("Appointment", back_populates="clinic")


class AiConfiguration(Base):
    """Per-clinic assistant configuration."""

    __tablename__ = "ai_configurations"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(String, ForeignKey("clinics.id"), unique=True, nullable=False)
    personality_traits = Column(Text, nullable=True)  # free-text assistant instructions
    voice = Column(String, nullable=True)
    twilio_auth_token = Column(String, nullable=True)

    # Relationships
    clinic = relationship("Clinic", back_populates="ai_configuration")


class Appointment(Base):
    """Appointment model."""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(String, ForeignKey("clinics.id"), nullable=False, index=True)
    patient_name = Column(String, nullable=False)
    patient_phone = Column(String, nullable=True)
    patient_email = Column(String, nullable=True)
    appointment_date = Column(DateTime(timezone=True), nullable=False)
    appointment_type = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String, default="scheduled", nullable=False)  # scheduled, cancelled, completed
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="appointments")
