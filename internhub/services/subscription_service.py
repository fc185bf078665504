"""Subscription registry."""

import uuid
from typing import List, Tuple

import structlog
from sqlalchemy import delete, func, select

from internhub.core.exceptions import AuthorizationError, NotFoundError
from internhub.core.security import Principal
from internhub.models.company import Company
from internhub.models.subscription import Subscription
from internhub.realtime.events import Audience, ChangeEvent, EntityType, EventKind
from internhub.schemas.subscription import MemberCompanyResponse, SubscriberSummary
from internhub.services.base import PipelineService

logger = structlog.get_logger(__name__)


class SubscriptionService(PipelineService):
    """A student's set of followed companies."""

    async def subscribe(self, principal: Principal, company_id: uuid.UUID) -> bool:
        """
        Follow a company. Idempotent: a repeat call leaves exactly one row.

        Returns True when a row was created.
        """
        student_id = self._require_student(principal)
        if await self.db.get(Company, company_id) is None:
            raise NotFoundError(f"Company {company_id} not found")

        result = await self.db.execute(
            self._insert_ignoring_conflict(
                Subscription.__table__,
                {"id": uuid.uuid4(), "student_id": student_id, "company_id": company_id},
                index_elements=("student_id", "company_id"),
            )
        )
        await self.db.commit()

        created = bool(result.rowcount)
        if not created:
            logger.debug("subscription_exists", student_id=str(student_id), company_id=str(company_id))
            return False

        logger.info("subscription_added", student_id=str(student_id), company_id=str(company_id))
        self._emit_subscription_event("subscribed", student_id, company_id)
        await self.audit.record(
            principal.user_id, "subscription_add", "subscription", company_id, {"student_id": str(student_id)}
        )
        return True

    async def unsubscribe(self, principal: Principal, company_id: uuid.UUID) -> bool:
        """Stop following a company; existing applications are left alone."""
        student_id = self._require_student(principal)
        result = await self.db.execute(
            delete(Subscription).where(
                Subscription.student_id == student_id,
                Subscription.company_id == company_id,
            )
        )
        await self.db.commit()

        if not result.rowcount:
            return False

        logger.info("subscription_removed", student_id=str(student_id), company_id=str(company_id))
        self._emit_subscription_event("unsubscribed", student_id, company_id)
        await self.audit.record(
            principal.user_id, "subscription_remove", "subscription", company_id, {"student_id": str(student_id)}
        )
        return True

    def _emit_subscription_event(self, action: str, student_id: uuid.UUID, company_id: uuid.UUID) -> None:
        self.broadcaster.emit(
            ChangeEvent(
                kind=EventKind.ADMIN_CHANGED,
                action=action,
                entity_type=EntityType.SUBSCRIPTION,
                entity_id=company_id,
                company_id=company_id,
                student_id=student_id,
                audience=Audience.for_admins(student_id=student_id),
            )
        )

    async def list_subscriptions(self, principal: Principal) -> List[Subscription]:
        student_id = self._require_student(principal)
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.student_id == student_id)
            .order_by(Subscription.created_at.desc())
        )
        return list(result.scalars().all())

    async def subscribed_company_ids(self, student_id: uuid.UUID) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(Subscription.company_id).where(Subscription.student_id == student_id)
        )
        return list(result.scalars().all())

    async def list_member_companies(self, principal: Principal) -> List[MemberCompanyResponse]:
        """Every member company, flagged with whether the student follows it."""
        student_id = self._require_student(principal)
        subscribed = set(await self.subscribed_company_ids(student_id))

        result = await self.db.execute(select(Company).order_by(Company.name))
        return [
            MemberCompanyResponse(
                id=company.id,
                name=company.name,
                industry=company.industry,
                location=company.location,
                openings_count=company.openings_count or 0,
                subscribed=company.id in subscribed,
            )
            for company in result.scalars().all()
        ]

    async def subscriber_count(self, principal: Principal, company_id: uuid.UUID) -> Tuple[uuid.UUID, int]:
        if not (principal.is_admin or (principal.is_company and principal.company_id == company_id)):
            raise AuthorizationError("Only the company or an admin can see subscriber counts")
        if await self.db.get(Company, company_id) is None:
            raise NotFoundError(f"Company {company_id} not found")

        result = await self.db.execute(
            select(func.count()).select_from(Subscription).where(Subscription.company_id == company_id)
        )
        return company_id, result.scalar() or 0

    async def subscriber_summary(self, principal: Principal) -> List[SubscriberSummary]:
        """Subscriber count for every company, most followed first."""
        if not principal.is_admin:
            raise AuthorizationError("Admin access required")

        subscriber_count = func.count(Subscription.id).label("subscriber_count")
        result = await self.db.execute(
            select(Company.id, Company.name, subscriber_count)
            .outerjoin(Subscription, Subscription.company_id == Company.id)
            .group_by(Company.id, Company.name)
            .order_by(subscriber_count.desc(), Company.name)
        )
        return [
            SubscriberSummary(company_id=company_id, name=name, subscriber_count=count)
            for company_id, name, count in result.all()
        ]
