# app/tasks/artifact_tasks.py
import asyncio
import logging

from celery.signals import worker_ready
from sqlalchemy.pool import NullPool

from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.database import DatabaseManager
from app.modules.artifacts.store import ArtifactStore

logger = logging.getLogger(__name__)


async def _sweep() -> int:
    # Engines are bound to the event loop of a single task run
    db_manager = DatabaseManager(poolclass=NullPool)
    try:
        store = ArtifactStore(
            storage_dir=settings.AUDIO_STORAGE_DIR,
            session_factory=db_manager.async_session_maker,
            ttl_hours=settings.AUDIO_TTL_HOURS,
        )
        return await store.sweep_expired()
    finally:
        await db_manager.close()


@celery_app.task(name="tasks.sweep_expired_audio")
def sweep_expired_audio():
    """
    A periodic task that deletes expired and orphaned audio files.
    """
    logger.info("Running periodic task: sweeping expired audio")
    removed = asyncio.run(_sweep())
    logger.info(f"Audio sweep removed {removed} files.")
    return removed


@worker_ready.connect
def schedule_startup_sweep(sender=None, **kwargs):
    sweep_expired_audio.apply_async(countdown=settings.AUDIO_SWEEP_STARTUP_DELAY_SECONDS)
