from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.vehicles.router import router as vehicles_router
from app.api.v1.rate_plans.router import router as rate_plans_router
from app.api.v1.bookings.router import router as bookings_router
from app.api.v1.payments.router import router as payments_router

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(vehicles_router, prefix="/vehicles", tags=["vehicles"])
api_router.include_router(rate_plans_router, prefix="/rate-plans", tags=["rate-plans"])
api_router.include_router(bookings_router, prefix="/bookings", tags=["bookings"])
api_router.include_router(payments_router, prefix="/payments")  # Tags are defined in the router itself
