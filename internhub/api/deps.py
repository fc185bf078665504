"""
API Dependencies
Service factories wired to the request's database session.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from internhub.db.session import get_db
from internhub.realtime.broadcaster import Broadcaster, get_broadcaster
from internhub.services.application_service import ApplicationService
from internhub.services.audit_service import AuditService
from internhub.services.clarification_service import ClarificationService
from internhub.services.interview_service import InterviewService
from internhub.services.notification_service import NotificationDispatcher, get_notifier
from internhub.services.opening_service import OpeningService
from internhub.services.subscription_service import SubscriptionService


def get_application_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> ApplicationService:
    return ApplicationService(db, broadcaster, notifier)


def get_clarification_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> ClarificationService:
    return ClarificationService(db, broadcaster)


def get_interview_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> InterviewService:
    return InterviewService(db, broadcaster)


def get_subscription_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> SubscriptionService:
    return SubscriptionService(db, broadcaster)


def get_opening_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> OpeningService:
    return OpeningService(db, broadcaster, notifier)


def get_audit_service(db: AsyncSession = Depends(get_db)) -> AuditService:
    return AuditService(db)
