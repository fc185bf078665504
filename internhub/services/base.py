"""Shared plumbing for pipeline services."""

import uuid
from typing import Optional, Sequence, Tuple

import structlog
from sqlalchemy import Table, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from internhub.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from internhub.core.security import Principal
from internhub.models.application import Application
from internhub.models.company import Company
from internhub.models.student import Student
from internhub.realtime.broadcaster import Broadcaster
from internhub.realtime.events import Audience, ChangeEvent, EntityType, EventKind
from internhub.schemas.application import ApplicationResponse
from internhub.services.audit_service import AuditService
from internhub.services.notification_service import NotificationDispatcher

logger = structlog.get_logger(__name__)


class PipelineService:
    """
    Base for services that mutate shared pipeline state.

    Every mutation follows the same order: commit the row, emit one change
    event, queue side notifications, then write the audit row. Only the
    commit can fail the request.
    """

    def __init__(
        self,
        db: AsyncSession,
        broadcaster: Broadcaster,
        notifier: Optional[NotificationDispatcher] = None,
        audit: Optional[AuditService] = None,
    ):
        self.db = db
        self.broadcaster = broadcaster
        self.notifier = notifier
        self.audit = audit or AuditService(db)

    def _insert_ignoring_conflict(self, table: Table, values: dict, index_elements: Sequence[str]):
        """INSERT that leaves an existing row alone; rowcount tells whether one was created."""
        dialect = self.db.bind.dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(table)
        elif dialect == "sqlite":
            stmt = sqlite_insert(table)
        else:
            raise NotImplementedError(f"Unsupported database dialect: {dialect}")
        return stmt.values(**values).on_conflict_do_nothing(index_elements=list(index_elements))

    async def _load_application(self, application_id: uuid.UUID) -> Application:
        application = await self.db.get(Application, application_id)
        if application is None:
            raise NotFoundError(f"Application {application_id} not found")
        return application

    @staticmethod
    def _check_party(principal: Principal, application: Application) -> None:
        """Admins pass; otherwise the caller must own the application."""
        if principal.is_admin:
            return
        if principal.is_student and principal.student_id and principal.student_id == application.student_id:
            return
        if principal.is_company and principal.company_id and principal.company_id == application.company_id:
            return
        raise AuthorizationError("You do not have access to this application")

    @staticmethod
    def _require_student(principal: Principal) -> uuid.UUID:
        if not principal.is_student:
            raise AuthorizationError("Only students can do this")
        if not principal.student_id:
            raise ValidationError("Student profile not linked to account")
        return principal.student_id

    async def _names(self, application: Application) -> Tuple[Optional[str], Optional[str]]:
        student_name = (
            await self.db.execute(select(Student.full_name).where(Student.id == application.student_id))
        ).scalar_one_or_none()
        company_name = (
            await self.db.execute(select(Company.name).where(Company.id == application.company_id))
        ).scalar_one_or_none()
        return student_name, company_name

    @staticmethod
    def _to_response(
        application: Application,
        student_name: Optional[str] = None,
        company_name: Optional[str] = None,
    ) -> ApplicationResponse:
        response = ApplicationResponse.model_validate(application)
        response.student_name = student_name
        response.company_name = company_name
        return response

    def _emit_application_event(
        self,
        action: str,
        application: Application,
        entity_type: EntityType = EntityType.APPLICATION,
        snapshot: Optional[ApplicationResponse] = None,
        entity_id: Optional[uuid.UUID] = None,
        former_parties: Optional[Tuple[uuid.UUID, uuid.UUID]] = None,
    ) -> None:
        former_student_id, former_company_id = former_parties or (None, None)
        self.broadcaster.emit(
            ChangeEvent(
                kind=EventKind.APPLICATIONS_CHANGED,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id or application.id,
                application_id=application.id,
                company_id=application.company_id,
                student_id=application.student_id,
                application=snapshot.model_dump(mode="json") if snapshot else None,
                audience=Audience.for_application(
                    application.student_id,
                    application.company_id,
                    former_student_id=former_student_id,
                    former_company_id=former_company_id,
                ),
            )
        )
