"""
Application Scheduler - APScheduler Integration

Manages periodic tasks for the FastAPI application. Currently one job:
the opening deadline reminder.
"""

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from internhub.config import settings

logger = structlog.get_logger(__name__)

DEADLINE_REMINDER_JOB_ID = "deadline_reminders"

# Global scheduler instance
scheduler = AsyncIOScheduler(
    timezone="UTC",
    job_defaults={
        "coalesce": True,  # Combine missed executions into one
        "max_instances": 1,
        "misfire_grace_time": 3600,
    },
)


def scheduler_listener(event):
    """Log executed and failed jobs."""
    if event.exception:
        logger.error("scheduled_job_failed", job_id=event.job_id, error=str(event.exception))
    else:
        logger.info("scheduled_job_executed", job_id=event.job_id)


scheduler.add_listener(scheduler_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)


async def run_deadline_reminders() -> int:
    """Scheduled task: notify subscribers of openings closing tomorrow."""
    from internhub.services.notification_service import get_notifier

    return await get_notifier().send_deadline_reminders()


def setup_jobs():
    if settings.DEADLINE_REMINDERS_ENABLED:
        scheduler.add_job(
            run_deadline_reminders,
            IntervalTrigger(minutes=settings.DEADLINE_REMINDER_INTERVAL_MINUTES),
            id=DEADLINE_REMINDER_JOB_ID,
            name="Opening deadline reminders",
            replace_existing=True,
        )
        logger.info(
            "scheduled_job_added",
            job_id=DEADLINE_REMINDER_JOB_ID,
            interval_minutes=settings.DEADLINE_REMINDER_INTERVAL_MINUTES,
        )


def start_scheduler():
    """Start the scheduler. Called during application startup (in lifespan)."""
    if scheduler.running:
        logger.warning("scheduler_already_running")
        return
    setup_jobs()
    scheduler.start()
    for job in scheduler.get_jobs():
        logger.info("scheduled_job_next_run", job_id=job.id, next_run=str(job.next_run_time))


def stop_scheduler():
    """Stop the scheduler. Called during application shutdown (in lifespan)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


def get_scheduler_status() -> dict:
    jobs = scheduler.get_jobs()
    return {
        "running": scheduler.running,
        "total_jobs": len(jobs),
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in jobs
        ],
    }
