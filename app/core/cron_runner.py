"""
Run the pending payment sweep in the background (non-blocking).
Started on app startup when PENDING_PAYMENT_SWEEP_INTERVAL_MINUTES > 0; cancelled on shutdown.
"""
import asyncio
import logging

from app.core.config import settings
from app.core.database import Database
from app.cron.pending_payments import expire_stale_pending_payments

logger = logging.getLogger(__name__)


async def run_pending_payment_sweep_loop(database: Database, initial_delay: float = 10.0) -> None:
    """Loop: run once after a short delay, then every configured interval (minutes)."""
    interval_minutes = settings.PENDING_PAYMENT_SWEEP_INTERVAL_MINUTES
    interval_seconds = max(60.0, interval_minutes * 60)  # minimum 1 minute
    logger.info("Pending payment sweep started (interval=%s minutes)", interval_minutes)
    await asyncio.sleep(initial_delay)
    while True:
        try:
            await expire_stale_pending_payments(database)
            await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            logger.info("Pending payment sweep cancelled")
            break
        except Exception as e:
            logger.exception("Pending payment sweep loop error: %s", e)
            await asyncio.sleep(interval_seconds)
