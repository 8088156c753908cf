import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.models.enums import PaymentChannel, PaymentStatus


class Payment(Base):
    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=False, index=True)
    channel = Column(String(20), default=PaymentChannel.mpesa.value, nullable=False)
    ref = Column(String(64), nullable=True)  # Provider receipt, set on settlement
    # Provider-assigned id returned when the payment request is accepted (CheckoutRequestID)
    provider_request_id = Column(String(64), unique=True, nullable=True)
    merchant_request_id = Column(String(64), nullable=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(8), default="KES", nullable=False)
    type = Column(String(20), nullable=False)
    status = Column(String(20), default=PaymentStatus.pending.value, nullable=False, index=True)
    paid_ts = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    booking = relationship("Booking", back_populates="payments")
