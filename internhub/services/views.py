"""
Role views over the pipeline.

Each view answers the same query contract for one kind of session, so list
endpoints and the refetch-on-signal path never branch on role inline.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import Select, select

from internhub.core.exceptions import ValidationError
from internhub.core.security import Principal, Role
from internhub.models.application import Application, Stage
from internhub.models.clarification import ClarificationRequest
from internhub.models.company import Company
from internhub.models.interview import InterviewSlot
from internhub.models.opening import Opening
from internhub.models.student import Student
from internhub.models.subscription import Subscription


def _applications_base() -> Select:
    return (
        select(Application, Student.full_name, Company.name)
        .outerjoin(Student, Student.id == Application.student_id)
        .outerjoin(Company, Company.id == Application.company_id)
        .order_by(Application.created_at.desc())
    )


def _openings_base() -> Select:
    return (
        select(Opening, Company.name)
        .join(Company, Company.id == Opening.company_id)
        .order_by(Opening.created_at.desc())
    )


def _requests_base() -> Select:
    return (
        select(ClarificationRequest, Application.student_id, Application.company_id, Company.name)
        .join(Application, Application.id == ClarificationRequest.application_id)
        .join(Company, Company.id == Application.company_id)
        .order_by(ClarificationRequest.updated_at.desc())
    )


class PipelineView(ABC):
    """Query contract shared by every role."""

    scope: str = ""

    def __init__(self, principal: Principal):
        self.principal = principal

    @abstractmethod
    def applications_query(self) -> Select:
        """Rows of (Application, student name, company name)."""

    @abstractmethod
    def openings_query(self) -> Select:
        """Rows of (Opening, company name)."""

    @abstractmethod
    def requests_query(self) -> Select:
        """Rows of (ClarificationRequest, student id, company id, company name)."""

    @abstractmethod
    def interviews_query(self) -> Select:
        """InterviewSlot rows."""

    @abstractmethod
    def can_read(self, application: Application) -> bool:
        """Whether this session may read one application and its thread."""


class StudentView(PipelineView):
    scope = "self"

    @property
    def student_id(self) -> uuid.UUID:
        return self.principal.student_id

    def applications_query(self) -> Select:
        return _applications_base().where(Application.student_id == self.student_id)

    def openings_query(self) -> Select:
        # Visibility is gated by subscription, never by what the client asks for
        return _openings_base().join(
            Subscription,
            (Subscription.company_id == Opening.company_id)
            & (Subscription.student_id == self.student_id),
        )

    def requests_query(self) -> Select:
        return _requests_base().where(Application.student_id == self.student_id)

    def interviews_query(self) -> Select:
        return (
            select(InterviewSlot)
            .join(Application, Application.id == InterviewSlot.application_id)
            .where(Application.student_id == self.student_id)
        )

    def can_read(self, application: Application) -> bool:
        return application.student_id == self.student_id


class CompanyView(PipelineView):
    scope = "company"

    @property
    def company_id(self) -> uuid.UUID:
        return self.principal.company_id

    def applications_query(self) -> Select:
        return _applications_base().where(
            Application.company_id == self.company_id,
            Application.stage != Stage.WITHDRAWN,
        )

    def openings_query(self) -> Select:
        return _openings_base()

    def requests_query(self) -> Select:
        return _requests_base().where(Application.company_id == self.company_id)

    def interviews_query(self) -> Select:
        return select(InterviewSlot).where(InterviewSlot.company_id == self.company_id)

    def can_read(self, application: Application) -> bool:
        return application.company_id == self.company_id


class AdminView(PipelineView):
    scope = "all"

    def __init__(
        self,
        principal: Principal,
        company_id: Optional[uuid.UUID] = None,
        student_id: Optional[uuid.UUID] = None,
    ):
        super().__init__(principal)
        self.company_id = company_id
        self.student_id = student_id

    def applications_query(self) -> Select:
        query = _applications_base()
        if self.company_id:
            query = query.where(Application.company_id == self.company_id)
        if self.student_id:
            query = query.where(Application.student_id == self.student_id)
        return query

    def openings_query(self) -> Select:
        query = _openings_base()
        if self.company_id:
            query = query.where(Opening.company_id == self.company_id)
        return query

    def requests_query(self) -> Select:
        return _requests_base()

    def interviews_query(self) -> Select:
        query = select(InterviewSlot)
        if self.company_id:
            query = query.where(InterviewSlot.company_id == self.company_id)
        return query

    def can_read(self, application: Application) -> bool:
        return True


def view_for(
    principal: Principal,
    company_id: Optional[uuid.UUID] = None,
    student_id: Optional[uuid.UUID] = None,
) -> PipelineView:
    """Pick the view for a session; filters only apply to admins."""
    if principal.role == Role.ADMIN:
        return AdminView(principal, company_id=company_id, student_id=student_id)
    if principal.role == Role.COMPANY:
        if not principal.company_id:
            raise ValidationError("Company profile not linked to account")
        return CompanyView(principal)
    if not principal.student_id:
        raise ValidationError("Student profile not linked to account")
    return StudentView(principal)
