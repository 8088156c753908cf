import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.models.enums import VehicleStatus


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plate = Column(String(16), unique=True, index=True, nullable=False)
    make = Column(String(40), nullable=True)
    model = Column(String(40), nullable=True)
    year = Column(Integer, nullable=True)
    color = Column(String(30), nullable=True)
    odo_km = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=VehicleStatus.available.value, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = relationship("Booking", back_populates="vehicle")
