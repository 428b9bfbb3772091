"""ARQ worker configuration."""

from arq import cron
from arq.connections import RedisSettings
from loguru import logger

from schnitzarchiv.config import get_settings

settings = get_settings()


def get_redis_settings() -> RedisSettings:
    """Get Redis settings from app config."""
    return RedisSettings.from_dsn(settings.redis_url)


async def startup(ctx: dict) -> None:
    """Worker startup handler."""
    from schnitzarchiv.log_setup import setup_logging

    setup_logging("worker")
    logger.info("ARQ Worker starting up...")
    logger.info(f"Cron enabled: {settings.enable_cron}")


async def shutdown(ctx: dict) -> None:
    """Worker shutdown handler."""
    logger.info("ARQ Worker shutting down...")


async def scheduled_pending_task(ctx: dict) -> dict:
    """Cron entry: drain part of the pending queue."""
    from schnitzarchiv.tasks.processing import process_pending_task

    return await process_pending_task(ctx, limit=settings.cron_pending_limit)


def get_cron_jobs():
    """
    Get cron jobs based on configuration.

    Set ENABLE_CRON=true to enable scheduled jobs.
    """
    if not settings.enable_cron:
        return []

    return [
        # Hourly at :05, offset from :00 to avoid peak API traffic
        cron(
            scheduled_pending_task,
            minute=5,
            timeout=3000,
            unique=True,
        ),
    ]


class WorkerSettings:
    """ARQ Worker settings."""

    redis_settings = get_redis_settings()

    from schnitzarchiv.tasks.processing import TASK_FUNCTIONS
    functions = TASK_FUNCTIONS

    on_startup = startup
    on_shutdown = shutdown

    cron_jobs = get_cron_jobs()

    # Each job runs one pipeline; max_jobs bounds concurrent runs
    max_jobs = 4
    job_timeout = 1800
    keep_result = 3600

    # A failed run leaves its query failed; re-running is an operator decision
    max_tries = 1
