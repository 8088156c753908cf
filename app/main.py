import asyncio
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError

from app.api.v1.api_router import api_router
from app.core.config import settings
from app.core.database import create_database
from app.core.exceptions import AppException
from app.core.startup import ensure_schema

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Car Hire Reservation API",
    description="Quotes, vehicle holds, booking lifecycle and M-Pesa deposit reconciliation",
    version="1.0.0",
    openapi_url="/openapi.json",
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with actual frontend domains
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    """Application startup event."""
    # Tests install their own Database before the app starts
    if getattr(app.state, "database", None) is None:
        app.state.database = create_database()
    await ensure_schema(app.state.database)

    app.state.pending_payment_sweep_task = None
    if settings.PENDING_PAYMENT_SWEEP_INTERVAL_MINUTES > 0:
        from app.core.cron_runner import run_pending_payment_sweep_loop
        task = asyncio.create_task(run_pending_payment_sweep_loop(app.state.database))
        app.state.pending_payment_sweep_task = task


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event."""
    task = getattr(app.state, "pending_payment_sweep_task", None)
    if task and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass  # expected on cancel
    database = getattr(app.state, "database", None)
    if database is not None:
        await database.dispose()
        app.state.database = None


# Exception handlers
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.error, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.error, "message": exc.message})


@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


def _serializable_validation_errors(errors: list) -> list:
    """Convert validation error dicts to JSON-serializable form (e.g. ctx may contain Exception)."""
    out = []
    for e in errors:
        item = {"type": e.get("type"), "loc": e.get("loc"), "msg": e.get("msg")}
        if "ctx" in e and e["ctx"]:
            item["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
        out.append(item)
    return out


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    errors_serializable = _serializable_validation_errors(exc.errors())
    logger.info(
        "Validation error 400: method=%s path=%s errors=%s",
        request.method,
        request.url.path,
        errors_serializable,
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "validation_error",
            "message": "Validation error",
            "errors": errors_serializable,
        },
    )


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "validation_error",
            "message": "Validation error",
            "errors": _serializable_validation_errors(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Internal server error"})
