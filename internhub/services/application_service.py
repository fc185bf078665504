"""Application record store: creation gate, stage machine, edits."""

import uuid
from datetime import datetime
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import insert, literal, select, update

from internhub.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    RejectionLockError,
    ValidationError,
)
from internhub.core.security import Principal
from internhub.models.application import ESSAY_FIELDS, Application, Stage
from internhub.models.company import Company
from internhub.models.interview import InterviewSlot
from internhub.models.opening import Opening
from internhub.models.student import Student
from internhub.models.subscription import Subscription
from internhub.schemas.application import (
    ApplicationAdminUpdate,
    ApplicationCreate,
    ApplicationEdit,
    ApplicationResponse,
)
from internhub.services.base import PipelineService
from internhub.services.stage_machine import can_edit_essays, check_transition
from internhub.services.views import view_for

logger = structlog.get_logger(__name__)

STUDENT_EDITABLE_FIELDS = frozenset(ESSAY_FIELDS) | {"position", "department"}
COMPANY_EDITABLE_FIELDS = frozenset({"notes"})


class ApplicationService(PipelineService):
    """Create, list and move applications through the pipeline."""

    # ==================== Creation ====================

    async def create_application(self, principal: Principal, data: ApplicationCreate) -> ApplicationResponse:
        """
        Apply to a company, optionally through one of its openings.

        The subscription prerequisite and the rejection lock are checked by
        the same INSERT ... SELECT that creates the row, so no other request
        can slip in between the check and the write.
        """
        student_id = self._require_student(principal)
        company_id, opening = await self._resolve_target(data)

        application_id = uuid.uuid4()
        now = datetime.utcnow()
        values = {
            "id": application_id,
            "student_id": student_id,
            "company_id": company_id,
            "opening_id": opening.id if opening else None,
            "position": data.position or (opening.role_title if opening else None) or data.department or "",
            "department": data.department or (opening.department if opening else None),
            "stage": Stage.APPLIED,
            "why_internship": data.why_internship,
            "skills_fit": data.skills_fit,
            "career_goals": data.career_goals,
            "relevant_experience": data.relevant_experience,
            "created_at": now,
            "updated_at": now,
        }

        # Both subqueries read their own tables, never the insert target
        subscribed = select(Subscription.id).where(
            Subscription.student_id == student_id,
            Subscription.company_id == company_id,
        ).correlate(None)
        rejected = select(Application.id).where(
            Application.student_id == student_id,
            Application.company_id == company_id,
            Application.stage == Stage.REJECTED,
        ).correlate(None)
        table = Application.__table__
        columns = list(values)
        source = select(
            *[literal(values[name], type_=table.c[name].type) for name in columns]
        ).where(subscribed.exists(), ~rejected.exists())

        await self.db.execute(insert(table).from_select(columns, source))
        application = await self.db.get(Application, application_id)

        if application is None:
            await self.db.rollback()
            await self._raise_creation_refusal(student_id, company_id)

        await self.db.commit()
        logger.info(
            "application_created",
            application_id=str(application_id),
            student_id=str(student_id),
            company_id=str(company_id),
        )

        snapshot = self._to_response(application, *await self._names(application))
        self._emit_application_event("created", application, snapshot=snapshot)
        await self.audit.record(
            principal.user_id,
            "application_create",
            "application",
            application.id,
            {"company_id": str(company_id), "opening_id": str(opening.id) if opening else None},
        )
        return snapshot

    async def _resolve_target(self, data: ApplicationCreate) -> Tuple[uuid.UUID, Optional[Opening]]:
        if data.opening_id:
            opening = await self.db.get(Opening, data.opening_id)
            if opening is None:
                raise NotFoundError(f"Opening {data.opening_id} not found")
            if data.company_id and data.company_id != opening.company_id:
                raise ValidationError("Opening does not belong to the given company", field="company_id")
            return opening.company_id, opening

        if not data.company_id:
            raise ValidationError("opening_id or company_id required", field="opening_id")
        company = await self.db.get(Company, data.company_id)
        if company is None:
            raise NotFoundError(f"Company {data.company_id} not found")
        return company.id, None

    async def _raise_creation_refusal(self, student_id: uuid.UUID, company_id: uuid.UUID) -> None:
        """Explain why the conditional insert wrote nothing."""
        subscription = await self.db.execute(
            select(Subscription.id).where(
                Subscription.student_id == student_id,
                Subscription.company_id == company_id,
            )
        )
        if subscription.scalar_one_or_none() is None:
            raise AuthorizationError("Subscribe to this company before applying")
        raise RejectionLockError("You cannot reapply to this company after a rejection")

    # ==================== Queries ====================

    async def list_applications(
        self,
        principal: Principal,
        scope: Optional[str] = None,
        company_id: Optional[uuid.UUID] = None,
        student_id: Optional[uuid.UUID] = None,
    ) -> Tuple[str, List[ApplicationResponse]]:
        view = view_for(principal, company_id=company_id, student_id=student_id)
        if scope and scope != view.scope:
            raise AuthorizationError(f"Scope '{scope}' is not available to role {principal.role.value}")

        result = await self.db.execute(view.applications_query())
        return view.scope, [
            self._to_response(application, student_name, company_name)
            for application, student_name, company_name in result.all()
        ]

    async def get_application(self, principal: Principal, application_id: uuid.UUID) -> ApplicationResponse:
        application = await self._load_application(application_id)
        if not view_for(principal).can_read(application):
            raise AuthorizationError("You do not have access to this application")
        return self._to_response(application, *await self._names(application))

    # ==================== Stage machine ====================

    async def change_stage(
        self,
        principal: Principal,
        application_id: uuid.UUID,
        target: Stage,
    ) -> ApplicationResponse:
        """
        Move an application along one stage edge.

        Refusals leave the stage untouched. On success the new stage is
        committed before the event, the side notification and the audit row,
        none of which can undo it.
        """
        application = await self._load_application(application_id)
        self._check_party(principal, application)

        before = application.stage
        check_transition(principal.role, before, target)

        application.stage = target
        await self.db.commit()

        logger.info(
            "application_stage_changed",
            application_id=str(application.id),
            actor_role=principal.role.value,
            before=before.value,
            after=target.value,
        )

        student_name, company_name = await self._names(application)
        snapshot = self._to_response(application, student_name, company_name)
        self._emit_application_event("updated", application, snapshot=snapshot)
        self._queue_stage_notification(application, company_name)
        await self.audit.record(
            principal.user_id,
            "application_stage",
            "application",
            application.id,
            {
                "before": before.value,
                "after": target.value,
                "actor_role": principal.role.value,
                "at": datetime.utcnow().isoformat(),
            },
        )
        return snapshot

    def _queue_stage_notification(self, application: Application, company_name: Optional[str]) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.queue_stage_change(
                application.student_id, application.id, company_name, application.stage
            )
        except Exception as e:
            logger.error("stage_notification_queue_failed", application_id=str(application.id), error=str(e))

    # ==================== Edits ====================

    async def edit_application(
        self,
        principal: Principal,
        application_id: uuid.UUID,
        data: ApplicationEdit,
    ) -> ApplicationResponse:
        """Partial update; students edit essays while Applied, companies edit notes."""
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")

        if principal.is_admin:
            return await self.admin_override(principal, application_id, ApplicationAdminUpdate(**changes))

        application = await self._load_application(application_id)
        self._check_party(principal, application)

        allowed = STUDENT_EDITABLE_FIELDS if principal.is_student else COMPANY_EDITABLE_FIELDS
        forbidden = sorted(set(changes) - allowed)
        if forbidden:
            raise AuthorizationError(f"Role {principal.role.value} may not edit: {', '.join(forbidden)}")
        if principal.is_student and not can_edit_essays(application.stage):
            raise AuthorizationError("Application answers can only be edited while the stage is Applied")

        for field, value in changes.items():
            setattr(application, field, value)
        await self.db.commit()

        snapshot = self._to_response(application, *await self._names(application))
        self._emit_application_event("updated", application, snapshot=snapshot)
        await self.audit.record(
            principal.user_id,
            "application_edit",
            "application",
            application.id,
            {"fields": sorted(changes)},
        )
        return snapshot

    async def admin_override(
        self,
        principal: Principal,
        application_id: uuid.UUID,
        data: ApplicationAdminUpdate,
    ) -> ApplicationResponse:
        """
        Admin edit of any field, including a stage outside the edge graph.

        This is the only way to lift a rejection lock.
        """
        if not principal.is_admin:
            raise AuthorizationError("Admin access required")

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")
        for field in ("stage", "student_id", "company_id"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be empty", field=field)

        application = await self._load_application(application_id)
        if "student_id" in changes and await self.db.get(Student, changes["student_id"]) is None:
            raise NotFoundError(f"Student {changes['student_id']} not found")
        if "company_id" in changes and await self.db.get(Company, changes["company_id"]) is None:
            raise NotFoundError(f"Company {changes['company_id']} not found")

        before = application.stage
        former_parties = (application.student_id, application.company_id)
        for field, value in changes.items():
            setattr(application, field, value)
        if application.company_id != former_parties[1]:
            # The slot follows the application to its new company
            await self.db.execute(
                update(InterviewSlot)
                .where(InterviewSlot.application_id == application.id)
                .values(company_id=application.company_id)
            )
        await self.db.commit()

        student_name, company_name = await self._names(application)
        snapshot = self._to_response(application, student_name, company_name)
        self._emit_application_event("updated", application, snapshot=snapshot, former_parties=former_parties)
        if application.stage != before:
            self._queue_stage_notification(application, company_name)

        logger.info(
            "application_admin_override",
            application_id=str(application.id),
            before=before.value,
            after=application.stage.value,
            fields=sorted(changes),
        )
        await self.audit.record(
            principal.user_id,
            "application_update",
            "application",
            application.id,
            {
                "before": before.value,
                "after": application.stage.value,
                "fields": sorted(changes),
                "at": datetime.utcnow().isoformat(),
            },
        )
        return snapshot
