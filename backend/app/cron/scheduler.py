"""APScheduler jobs: maintenance plan processing and automated blog posts."""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import get_settings
from app.core.database import async_session_maker
from app.services.blog_automation import BlogAutomationService
from app.services.maintenance_plans import process_due_plans

logger = logging.getLogger(__name__)

settings = get_settings()

MAINTENANCE_PLAN_SCHEDULE = "0 0 * * *"

_scheduler: Optional[AsyncIOScheduler] = None


async def run_maintenance_plans() -> None:
    try:
        await process_due_plans(async_session_maker)
    except Exception:
        logger.exception("Maintenance plan run failed")


async def run_blog_automation() -> None:
    try:
        async with async_session_maker() as db:
            post = await BlogAutomationService(db).generate_post()
    except Exception:
        logger.exception("Automated blog post generation failed")
        return
    if post is None:
        logger.info("Blog automation skipped (disabled)")


def start_scheduler() -> Optional[AsyncIOScheduler]:
    """Register enabled jobs and start the scheduler on the running loop."""
    global _scheduler
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled")
        return None
    if _scheduler is not None:
        return _scheduler

    scheduler = AsyncIOScheduler(timezone=settings.cron_timezone)

    if settings.maintenance_plans_enabled:
        scheduler.add_job(
            run_maintenance_plans,
            CronTrigger.from_crontab(MAINTENANCE_PLAN_SCHEDULE, timezone=settings.cron_timezone),
            id="maintenance_plans",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        # once at startup as well
        scheduler.add_job(run_maintenance_plans, id="maintenance_plans_startup")
        logger.info("Maintenance plan job scheduled (%s %s)", MAINTENANCE_PLAN_SCHEDULE, settings.cron_timezone)

    if settings.blog_automation_enabled:
        scheduler.add_job(
            run_blog_automation,
            CronTrigger.from_crontab(settings.blog_cron_schedule, timezone=settings.cron_timezone),
            id="blog_automation",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        logger.info("Blog automation scheduled (%s %s)", settings.blog_cron_schedule, settings.cron_timezone)

    scheduler.start()
    _scheduler = scheduler
    return scheduler


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Scheduler stopped")
