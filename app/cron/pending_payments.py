"""
Cron job: mark deposit payments that never received a provider callback as failed.
A pending payment older than PENDING_PAYMENT_TTL_MINUTES can no longer be matched.
"""
import logging

from app.api.v1.payments.service import PaymentService
from app.core.database import Database

logger = logging.getLogger(__name__)


async def expire_stale_pending_payments(database: Database, ttl_minutes: int | None = None) -> int:
    logger.info("Cron: expire_stale_pending_payments started")
    async with database.session_maker() as session:
        expired = await PaymentService(session).expire_stale_pending_payments(ttl_minutes)
    logger.info("Cron: expire_stale_pending_payments finished: expired=%d", expired)
    return expired
