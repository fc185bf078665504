"""
Side notifications for students.

Best-effort and out of band: every public `queue_*` call schedules work on
the running loop with its own database session and returns immediately.
Failures are logged and never reach the mutation that queued them.
"""

import asyncio
import uuid
from datetime import date, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Set

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from internhub.config import settings
from internhub.models.application import Stage
from internhub.models.company import Company
from internhub.models.notification import StudentNotification
from internhub.models.opening import Opening
from internhub.models.subscription import Subscription

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """Queues in-app notifications to students."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        enabled: Optional[bool] = None,
    ):
        self.session_factory = session_factory
        self.enabled = settings.NOTIFICATIONS_ENABLED if enabled is None else enabled
        self._tasks: Set[asyncio.Task] = set()

    # ==================== Queueing ====================

    def queue_stage_change(
        self,
        student_id: uuid.UUID,
        application_id: uuid.UUID,
        company_name: Optional[str],
        stage: Stage,
    ) -> None:
        company = company_name or "the company"
        notification = {
            "student_id": student_id,
            "type": "stage_change",
            "title": "Application status updated",
            "message": (
                f"Your internship application at {company} has been updated to: {stage.value}. "
                "Check your dashboard for details."
            ),
            "link": "applications",
            "data": {"application_id": str(application_id), "stage": stage.value},
        }
        self._schedule("stage_change", lambda: self._persist([notification]))

    def queue_new_opening(self, company_id: uuid.UUID, opening_id: uuid.UUID) -> None:
        self._schedule("new_opening", lambda: self._notify_subscribers(company_id, opening_id))

    # ==================== Delivery ====================

    def _schedule(self, label: str, work: Callable[[], Awaitable[int]]) -> None:
        if not self.enabled:
            logger.debug("notification_skipped_disabled", kind=label)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("notification_skipped_no_loop", kind=label)
            return
        task = loop.create_task(self._run(label, work))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, label: str, work: Callable[[], Awaitable[int]]) -> None:
        try:
            sent = await work()
            logger.info("students_notified", kind=label, count=sent)
        except Exception as e:
            logger.error("notification_failed", kind=label, error=str(e))

    async def _persist(self, notifications: List[Dict]) -> int:
        if not notifications:
            return 0
        async with self.session_factory() as session:
            session.add_all([StudentNotification(**n) for n in notifications])
            await session.commit()
        return len(notifications)

    async def _notify_subscribers(self, company_id: uuid.UUID, opening_id: uuid.UUID) -> int:
        async with self.session_factory() as session:
            company_name = await _company_name(session, company_id)
            opening = await session.get(Opening, opening_id)
            if opening is None:
                return 0
            title = opening.role_title or opening.department or "Internship opening"
            student_ids = await _subscriber_ids(session, company_id)

        return await self._persist([
            {
                "student_id": student_id,
                "type": "new_opening",
                "title": f"New opening at {company_name}",
                "message": f"{company_name} just opened a new role: {title}. Review the details and apply.",
                "link": "internships",
                "data": {"opening_id": str(opening_id), "company_id": str(company_id)},
            }
            for student_id in student_ids
        ])

    async def send_deadline_reminders(self, today: Optional[date] = None) -> int:
        """
        Remind subscribers of openings whose deadline is tomorrow.

        Safe to run repeatedly: a student is reminded once per opening.
        """
        if not self.enabled:
            return 0
        tomorrow = (today or date.today()) + timedelta(days=1)

        async with self.session_factory() as session:
            result = await session.execute(select(Opening).where(Opening.deadline == tomorrow))
            openings = result.scalars().all()

            created = 0
            for opening in openings:
                link = f"openings/{opening.id}"
                student_ids = await _subscriber_ids(session, opening.company_id)
                if not student_ids:
                    continue
                already = await session.execute(
                    select(StudentNotification.student_id).where(
                        StudentNotification.type == "opening_deadline",
                        StudentNotification.link == link,
                        StudentNotification.student_id.in_(student_ids),
                    )
                )
                reminded = set(already.scalars().all())
                role = opening.role_title or opening.department
                for student_id in student_ids:
                    if student_id in reminded:
                        continue
                    session.add(StudentNotification(
                        student_id=student_id,
                        type="opening_deadline",
                        title="Application deadline tomorrow",
                        message=f"Reminder: the application deadline for {role} is tomorrow ({tomorrow.isoformat()}).",
                        link=link,
                        data={"opening_id": str(opening.id), "deadline": tomorrow.isoformat()},
                    ))
                    created += 1
            await session.commit()

        logger.info("deadline_reminders_sent", count=created, deadline=tomorrow.isoformat())
        return created

    async def drain(self) -> None:
        """Wait for queued deliveries (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def _company_name(session: AsyncSession, company_id: uuid.UUID) -> str:
    result = await session.execute(select(Company.name).where(Company.id == company_id))
    return result.scalar_one_or_none() or "a member company"


async def _subscriber_ids(session: AsyncSession, company_id: uuid.UUID) -> List[uuid.UUID]:
    result = await session.execute(
        select(Subscription.student_id).where(Subscription.company_id == company_id)
    )
    return list(result.scalars().all())


_dispatcher: Optional[NotificationDispatcher] = None


def get_notifier() -> NotificationDispatcher:
    """Dependency returning the process-wide dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        from internhub.db.session import AsyncSessionLocal

        _dispatcher = NotificationDispatcher(AsyncSessionLocal)
    return _dispatcher
