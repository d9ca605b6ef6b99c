# app/tasks/subscription_tasks.py
import asyncio
import logging

from sqlalchemy.pool import NullPool

from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.database import DatabaseManager
from app.core.uow import UnitOfWork
from app.modules.plans.registry import PlanRegistry
from app.modules.quota.ledger import QuotaLedger
from app.modules.subscription.service import SubscriptionService

logger = logging.getLogger(__name__)


async def _expire_overdue() -> int:
    db_manager = DatabaseManager(poolclass=NullPool)
    try:
        service = SubscriptionService(
            plans=PlanRegistry(),
            ledger=QuotaLedger(),
            duration_days=settings.SUBSCRIPTION_DURATION_DAYS,
        )
        async with UnitOfWork(db_manager.async_session_maker)() as db:
            return await service.expire_overdue(db)
    finally:
        await db_manager.close()


@celery_app.task(name="tasks.check_expired_subscriptions")
def check_expired_subscriptions():
    """
    A periodic task to find and mark subscriptions as 'expired'.
    """
    logger.info("Running periodic task: checking for expired subscriptions")
    expired = asyncio.run(_expire_overdue())
    if expired:
        logger.info(f"Successfully processed {expired} expired subscriptions.")
    else:
        logger.info("No expired subscriptions found.")
    return expired
