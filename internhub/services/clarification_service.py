"""Clarification thread: one open request/response pair per application."""

import uuid
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy import select

from internhub.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from internhub.core.security import Principal
from internhub.models.application import Application
from internhub.models.clarification import ClarificationRequest
from internhub.models.company import Company
from internhub.realtime.events import EntityType
from internhub.schemas.clarification import ClarificationResponse
from internhub.services.base import PipelineService
from internhub.services.views import view_for

logger = structlog.get_logger(__name__)


def _to_response(
    thread: ClarificationRequest,
    student_id: Optional[uuid.UUID] = None,
    company_id: Optional[uuid.UUID] = None,
    company_name: Optional[str] = None,
) -> ClarificationResponse:
    return ClarificationResponse(
        id=thread.id,
        application_id=thread.application_id,
        request_text=thread.request_text,
        response_text=thread.response_text,
        is_pending=thread.is_pending,
        student_id=student_id,
        company_id=company_id,
        company_name=company_name,
        created_at=thread.created_at,
        updated_at=thread.updated_at,
    )


class ClarificationService(PipelineService):

    async def _load_thread(self, application_id: uuid.UUID) -> Optional[ClarificationRequest]:
        result = await self.db.execute(
            select(ClarificationRequest).where(ClarificationRequest.application_id == application_id)
        )
        return result.scalar_one_or_none()

    async def _ensure_thread(self, application_id: uuid.UUID) -> ClarificationRequest:
        """Load the thread, creating it first if this is the opening request."""
        now = datetime.utcnow()
        await self.db.execute(
            self._insert_ignoring_conflict(
                ClarificationRequest.__table__,
                {"id": uuid.uuid4(), "application_id": application_id, "created_at": now, "updated_at": now},
                index_elements=("application_id",),
            )
        )
        return await self._load_thread(application_id)

    async def _company_name(self, company_id: uuid.UUID) -> Optional[str]:
        result = await self.db.execute(select(Company.name).where(Company.id == company_id))
        return result.scalar_one_or_none()

    async def send_request(
        self,
        principal: Principal,
        application_id: uuid.UUID,
        text: str,
    ) -> ClarificationResponse:
        """
        Ask the student for more information.

        Overwrites any earlier request and clears its response, so the thread
        always holds the latest question only.
        """
        if principal.is_student:
            raise AuthorizationError("Only the company or an admin can send requests")
        text = (text or "").strip()
        if not text:
            raise ValidationError("Request text is required", field="request_text")

        application = await self._load_application(application_id)
        self._check_party(principal, application)

        thread = await self._ensure_thread(application.id)
        thread.request_text = text
        thread.response_text = None
        thread.updated_at = datetime.utcnow()
        await self.db.commit()

        logger.info("clarification_requested", application_id=str(application.id), thread_id=str(thread.id))
        self._emit_application_event(
            "request", application, entity_type=EntityType.CLARIFICATION, entity_id=thread.id
        )
        await self.audit.record(
            principal.user_id, "clarification_request", "application", application.id, {"thread_id": str(thread.id)}
        )
        return _to_response(
            thread, application.student_id, application.company_id, await self._company_name(application.company_id)
        )

    async def respond(
        self,
        principal: Principal,
        application_id: uuid.UUID,
        text: str,
    ) -> ClarificationResponse:
        """Answer the open request; answering again replaces the answer."""
        if not principal.is_student:
            raise AuthorizationError("Only the student can respond to a request")
        text = (text or "").strip()
        if not text:
            raise ValidationError("Response text is required", field="response_text")

        application = await self._load_application(application_id)
        self._check_party(principal, application)

        thread = await self._load_thread(application.id)
        if thread is None or thread.request_text is None:
            raise NotFoundError("No request found for this application")

        thread.response_text = text
        thread.updated_at = datetime.utcnow()
        await self.db.commit()

        logger.info("clarification_answered", application_id=str(application.id), thread_id=str(thread.id))
        self._emit_application_event(
            "response", application, entity_type=EntityType.CLARIFICATION, entity_id=thread.id
        )
        await self.audit.record(
            principal.user_id, "clarification_response", "application", application.id, {"thread_id": str(thread.id)}
        )
        return _to_response(
            thread, application.student_id, application.company_id, await self._company_name(application.company_id)
        )

    async def get_thread(self, principal: Principal, application_id: uuid.UUID) -> Optional[ClarificationResponse]:
        application = await self._load_application(application_id)
        if not view_for(principal).can_read(application):
            raise AuthorizationError("You do not have access to this application")

        thread = await self._load_thread(application.id)
        if thread is None:
            return None
        return _to_response(
            thread, application.student_id, application.company_id, await self._company_name(application.company_id)
        )

    async def list_requests(self, principal: Principal) -> List[ClarificationResponse]:
        result = await self.db.execute(view_for(principal).requests_query())
        return [
            _to_response(thread, student_id, company_id, company_name)
            for thread, student_id, company_id, company_name in result.all()
        ]
