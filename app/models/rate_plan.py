import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID

from app.core.database import Base


class RatePlan(Base):
    __tablename__ = "rate_plans"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(60), nullable=False)
    # Minor currency units
    daily_rate = Column(Integer, nullable=False)
    weekly_rate = Column(Integer, nullable=True)
    deposit_amount = Column(Integer, nullable=False)
    km_included_per_day = Column(Integer, default=150, nullable=False)
    extra_km_rate = Column(Integer, default=0, nullable=False)
    weekend_multiplier = Column(Numeric(4, 2), default=Decimal("1.00"), nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
