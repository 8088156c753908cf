import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.models.enums import BookingStatus


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(10), unique=True, nullable=False)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False)
    vehicle_id = Column(UUID(as_uuid=True), ForeignKey("vehicles.id"), nullable=False)
    rate_plan_id = Column(UUID(as_uuid=True), ForeignKey("rate_plans.id"), nullable=False)
    # Half-open window [start_ts, end_ts), naive local time
    start_ts = Column(DateTime, nullable=False)
    end_ts = Column(DateTime, nullable=False)
    status = Column(String(20), default=BookingStatus.hold.value, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer", back_populates="bookings")
    vehicle = relationship("Vehicle", back_populates="bookings")
    rate_plan = relationship("RatePlan")
    payments = relationship("Payment", back_populates="booking")
    inspections = relationship("Inspection", back_populates="booking")

    __table_args__ = (
        CheckConstraint("end_ts > start_ts", name="ck_bookings_window"),
        Index("ix_bookings_vehicle_window", "vehicle_id", "start_ts", "end_ts"),
    )
