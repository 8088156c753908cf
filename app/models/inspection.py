import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.database import Base


class Inspection(Base):
    """Immutable handover record; one per booking and phase."""

    __tablename__ = "inspections"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=False)
    type = Column(String(20), nullable=False)  # checkout|checkin
    odo_km = Column(Integer, nullable=False)
    fuel_level = Column(String(4), nullable=False)  # "0/8".."8/8"
    photos = Column(JSON, nullable=False, default=list)
    checklist = Column(JSON, nullable=False, default=dict)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    booking = relationship("Booking", back_populates="inspections")

    __table_args__ = (UniqueConstraint("booking_id", "type", name="uq_inspections_booking_type"),)
