"""Opening catalog."""

import uuid
from typing import List, Optional

import structlog
from sqlalchemy import select, update

from internhub.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from internhub.core.security import Principal
from internhub.models.company import Company
from internhub.models.opening import Opening
from internhub.realtime.events import Audience, ChangeEvent, EntityType, EventKind
from internhub.schemas.opening import OpeningCreate, OpeningResponse
from internhub.services.base import PipelineService
from internhub.services.views import view_for

logger = structlog.get_logger(__name__)


def _to_response(opening: Opening, company_name: Optional[str]) -> OpeningResponse:
    response = OpeningResponse.model_validate(opening)
    response.company_name = company_name
    return response


class OpeningService(PipelineService):
    """Published roles, filtered through the subscription registry for students."""

    async def list_openings(self, principal: Principal) -> List[OpeningResponse]:
        result = await self.db.execute(view_for(principal).openings_query())
        return [_to_response(opening, company_name) for opening, company_name in result.all()]

    async def list_company_openings(
        self,
        principal: Principal,
        company_id: Optional[uuid.UUID] = None,
    ) -> List[OpeningResponse]:
        company_id = self._owning_company(principal, company_id)
        result = await self.db.execute(
            select(Opening, Company.name)
            .join(Company, Company.id == Opening.company_id)
            .where(Opening.company_id == company_id)
            .order_by(Opening.created_at.desc())
        )
        return [_to_response(opening, company_name) for opening, company_name in result.all()]

    async def create_opening(self, principal: Principal, data: OpeningCreate) -> OpeningResponse:
        company_id = self._owning_company(principal, data.company_id)
        if not (data.department or "").strip():
            raise ValidationError("Department is required", field="department")
        if not (data.expectations or "").strip():
            raise ValidationError("Expectations are required", field="expectations")

        company = await self.db.get(Company, company_id)
        if company is None:
            raise NotFoundError(f"Company {company_id} not found")

        opening = Opening(
            company_id=company_id,
            department=data.department.strip(),
            role_title=data.role_title,
            expectations=data.expectations.strip(),
            slots=data.slots,
            location=data.location,
            deadline=data.deadline,
        )
        self.db.add(opening)
        await self.db.execute(
            update(Company)
            .where(Company.id == company_id)
            .values(openings_count=Company.openings_count + 1)
        )
        await self.db.commit()

        logger.info("opening_created", opening_id=str(opening.id), company_id=str(company_id))
        self._emit_opening_event("created", opening)

        if self.notifier is not None:
            try:
                self.notifier.queue_new_opening(company_id, opening.id)
            except Exception as e:
                logger.error("opening_notification_queue_failed", opening_id=str(opening.id), error=str(e))

        await self.audit.record(
            principal.user_id,
            "opening_create",
            "opening",
            opening.id,
            {"company_id": str(company_id), "department": opening.department},
        )
        return _to_response(opening, company.name)

    async def delete_opening(self, principal: Principal, opening_id: uuid.UUID) -> None:
        """Remove an opening; applications made through it keep their data."""
        opening = await self.db.get(Opening, opening_id)
        if opening is None:
            raise NotFoundError(f"Opening {opening_id} not found")
        if not (principal.is_admin or (principal.is_company and principal.company_id == opening.company_id)):
            raise AuthorizationError("Only the owning company or an admin can delete this opening")

        company_id = opening.company_id
        await self.db.delete(opening)
        await self.db.execute(
            update(Company)
            .where(Company.id == company_id, Company.openings_count > 0)
            .values(openings_count=Company.openings_count - 1)
        )
        await self.db.commit()

        logger.info("opening_deleted", opening_id=str(opening_id), company_id=str(company_id))
        self._emit_opening_event("deleted", opening)
        await self.audit.record(
            principal.user_id, "opening_delete", "opening", opening_id, {"company_id": str(company_id)}
        )

    def _owning_company(self, principal: Principal, company_id: Optional[uuid.UUID]) -> uuid.UUID:
        if principal.is_company:
            if not principal.company_id:
                raise ValidationError("Company profile not linked to account")
            if company_id and company_id != principal.company_id:
                raise AuthorizationError("Companies can only manage their own openings")
            return principal.company_id
        if principal.is_admin:
            if not company_id:
                raise ValidationError("company_id is required", field="company_id")
            return company_id
        raise AuthorizationError("Only companies and admins can manage openings")

    def _emit_opening_event(self, action: str, opening: Opening) -> None:
        self.broadcaster.emit(
            ChangeEvent(
                kind=EventKind.OPENINGS_CHANGED,
                action=action,
                entity_type=EntityType.OPENING,
                entity_id=opening.id,
                opening_id=opening.id,
                company_id=opening.company_id,
                audience=Audience.for_opening(opening.company_id),
            )
        )
