import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.rate_plans.schemas import CreateRatePlanRequest, UpdateRatePlanRequest
from app.core.exceptions import RatePlanNotFound, ValidationError
from app.core.pricing import DAYS_PER_WEEK
from app.models.rate_plan import RatePlan


def _check_weekly_rate(daily_rate: int, weekly_rate: Optional[int]) -> None:
    # A week must cost at least six days, otherwise adding a day can lower the price
    if weekly_rate is not None and weekly_rate < (DAYS_PER_WEEK - 1) * daily_rate:
        raise ValidationError("weekly_rate must be at least 6 x daily_rate")


class RatePlanService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_rate_plan(self, data: CreateRatePlanRequest) -> RatePlan:
        _check_weekly_rate(data.daily_rate, data.weekly_rate)
        rate_plan = RatePlan(id=uuid.uuid4(), **data.model_dump())
        self.db.add(rate_plan)
        await self.db.commit()
        await self.db.refresh(rate_plan)
        return rate_plan

    async def get_rate_plan(self, rate_plan_id: uuid.UUID) -> RatePlan:
        rate_plan = await self.db.get(RatePlan, rate_plan_id)
        if not rate_plan:
            raise RatePlanNotFound(f"Rate plan with id {rate_plan_id} not found")
        return rate_plan

    async def get_all_rate_plans(self, active: Optional[bool] = None) -> List[RatePlan]:
        query = select(RatePlan)
        if active is not None:
            query = query.where(RatePlan.active == active)
        result = await self.db.execute(query.order_by(RatePlan.daily_rate.asc()))
        return list(result.scalars().all())

    async def update_rate_plan(self, rate_plan_id: uuid.UUID, data: UpdateRatePlanRequest) -> RatePlan:
        """Partial update; deactivating a plan stops new quotes and bookings, existing bookings keep it."""
        rate_plan = await self.get_rate_plan(rate_plan_id)
        # weekly_rate is the only column that may be cleared
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field == "weekly_rate"
        }
        _check_weekly_rate(
            changes.get("daily_rate", rate_plan.daily_rate),
            changes.get("weekly_rate", rate_plan.weekly_rate),
        )
        for field, value in changes.items():
            setattr(rate_plan, field, value)
        await self.db.commit()
        await self.db.refresh(rate_plan)
        return rate_plan
