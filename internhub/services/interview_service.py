"""Interview slots attached to applications."""

import uuid
from datetime import datetime
from typing import List

import structlog
from sqlalchemy import select

from internhub.core.exceptions import AuthorizationError, ValidationError
from internhub.core.security import Principal
from internhub.models.interview import InterviewSlot
from internhub.realtime.events import EntityType
from internhub.schemas.interview import InterviewSlotUpdate
from internhub.services.base import PipelineService
from internhub.services.views import view_for

logger = structlog.get_logger(__name__)


class InterviewService(PipelineService):

    async def list_slots(self, principal: Principal) -> List[InterviewSlot]:
        result = await self.db.execute(view_for(principal).interviews_query())
        return list(result.scalars().all())

    async def upsert_slot(
        self,
        principal: Principal,
        application_id: uuid.UUID,
        data: InterviewSlotUpdate,
    ) -> InterviewSlot:
        """Create or update the slot; the stage is not touched."""
        if principal.is_student:
            raise AuthorizationError("Only the company or an admin can schedule interviews")
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")

        application = await self._load_application(application_id)
        self._check_party(principal, application)

        now = datetime.utcnow()
        inserted = await self.db.execute(
            self._insert_ignoring_conflict(
                InterviewSlot.__table__,
                {
                    "id": uuid.uuid4(),
                    "application_id": application.id,
                    "company_id": application.company_id,
                    "created_at": now,
                    "updated_at": now,
                },
                index_elements=("application_id",),
            )
        )
        created = bool(inserted.rowcount)
        result = await self.db.execute(
            select(InterviewSlot).where(InterviewSlot.application_id == application.id)
        )
        slot = result.scalar_one()
        for field, value in changes.items():
            setattr(slot, field, value)
        await self.db.commit()

        logger.info(
            "interview_scheduled" if created else "interview_updated",
            application_id=str(application.id),
            interview_date=str(slot.interview_date) if slot.interview_date else None,
        )
        self._emit_application_event(
            "interview", application, entity_type=EntityType.INTERVIEW, entity_id=slot.id
        )
        await self.audit.record(
            principal.user_id,
            "interview_upsert",
            "application",
            application.id,
            {"fields": sorted(changes), "created": created},
        )
        return slot
