from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.rate_plans.schemas import CreateRatePlanRequest, RatePlanResponse, UpdateRatePlanRequest
from app.api.v1.rate_plans.service import RatePlanService
from app.core.deps import get_db

router = APIRouter()


@router.post(
    "/",
    response_model=RatePlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a rate plan",
    description="Daily/weekly rates, deposit and mileage allowance. Amounts in minor currency units.",
)
async def create_rate_plan(data: CreateRatePlanRequest, db: AsyncSession = Depends(get_db)):
    rate_plan = await RatePlanService(db).create_rate_plan(data)
    return RatePlanResponse.model_validate(rate_plan)


@router.get("/", response_model=List[RatePlanResponse], summary="Get all rate plans")
async def get_all_rate_plans(
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    db: AsyncSession = Depends(get_db),
):
    rate_plans = await RatePlanService(db).get_all_rate_plans(active=active)
    return [RatePlanResponse.model_validate(rp) for rp in rate_plans]


@router.get("/{rate_plan_id}", response_model=RatePlanResponse, summary="Get rate plan by ID")
async def get_rate_plan(rate_plan_id: UUID, db: AsyncSession = Depends(get_db)):
    rate_plan = await RatePlanService(db).get_rate_plan(rate_plan_id)
    return RatePlanResponse.model_validate(rate_plan)


@router.patch("/{rate_plan_id}", response_model=RatePlanResponse, summary="Partially update rate plan")
async def patch_rate_plan(rate_plan_id: UUID, data: UpdateRatePlanRequest, db: AsyncSession = Depends(get_db)):
    rate_plan = await RatePlanService(db).update_rate_plan(rate_plan_id, data)
    return RatePlanResponse.model_validate(rate_plan)
