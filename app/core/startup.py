"""
Startup utilities for the application.
"""
import logging

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError

from app.core.config import settings
from app.core.database import Database

logger = logging.getLogger(__name__)


async def bookings_table_exists(database: Database) -> bool:
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM bookings LIMIT 1"))
        return True
    except (ProgrammingError, OperationalError):
        return False


async def ensure_schema(database: Database) -> None:
    """
    Create missing tables when AUTO_CREATE_SCHEMA is on (local runs and tests).
    Otherwise only warn: production schema, including the Postgres overlap
    exclusion constraint, comes from 'alembic upgrade head'.
    """
    if settings.AUTO_CREATE_SCHEMA:
        await database.create_all()
        logger.info("Database schema ensured (create_all)")
        return
    if not await bookings_table_exists(database):
        logger.warning("Bookings table not found. Please run 'alembic upgrade head' to create it.")
