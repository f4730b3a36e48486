"""Celery tasks for session metadata backfill."""

import asyncio
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import all models to ensure they're registered before creating session
import models  # noqa: F401

from app.celery_app import celery_app
from app.core.config import settings
from app.domains.backfill.service import BackfillService

logger = logging.getLogger(__name__)


def get_async_session() -> AsyncSession:
    """Create an async database session for Celery tasks.

    Each task runs in its own event loop, so it gets its own engine.
    """
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    return async_sessionmaker(bind=engine, expire_on_commit=False)()


@celery_app.task(name="app.tasks.backfill_tasks.backfill_chat_metadata_task", bind=True)
def backfill_chat_metadata_task(self, limit: int | None = None, dry_run: bool = False) -> dict[str, Any]:
    """Scheduled backfill of title, risk level and summary.

    Returns:
        Counters of the run; per-session results are logged only
    """
    logger.info(f"Starting metadata backfill (Task ID: {self.request.id})")

    try:
        result = asyncio.run(_backfill_async(limit, dry_run))
    except Exception as e:
        logger.error(f"Metadata backfill task failed: {str(e)}")
        raise self.retry(exc=e, countdown=60 * 5, max_retries=3) from e

    logger.info(f"Metadata backfill completed: {result}")
    return result


async def _backfill_async(limit: int | None, dry_run: bool) -> dict[str, Any]:
    session = get_async_session()
    try:
        report = await BackfillService(session).run(limit=limit, dry_run=dry_run)
        statuses: dict[str, int] = {}
        for item in report.results:
            statuses[item.status.value] = statuses.get(item.status.value, 0) + 1
        return {
            "dry_run": report.dry_run,
            "limit": report.limit,
            "scanned": report.scanned,
            "updated": report.updated,
            "statuses": statuses,
        }
    finally:
        await session.close()
        await session.bind.dispose()
