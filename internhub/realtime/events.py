"""Change events carried by the broadcast channel."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Set

from pydantic import BaseModel, Field

from internhub.core.security import Principal, Role


class EventKind(str, Enum):
    """The three broadcast event names."""

    APPLICATIONS_CHANGED = "applications-changed"
    OPENINGS_CHANGED = "openings-changed"
    ADMIN_CHANGED = "admin-changed"


class EntityType(str, Enum):
    """Entity-type hint carried by events (admins route on it)."""

    APPLICATION = "application"
    CLARIFICATION = "clarification"
    INTERVIEW = "interview"
    OPENING = "opening"
    SUBSCRIPTION = "subscription"
    STUDENT = "student"
    COMPANY = "company"
    SUPPORT = "support"


class Audience(BaseModel):
    """
    Server-side scoping of an event.

    Roles listed in `roles` receive the event unconditionally; students and
    companies otherwise receive it only when their id is listed.
    """

    roles: Set[Role] = Field(default_factory=set)
    student_ids: Set[uuid.UUID] = Field(default_factory=set)
    company_ids: Set[uuid.UUID] = Field(default_factory=set)

    def includes(self, principal: Principal) -> bool:
        if principal.role in self.roles:
            return True
        if principal.is_student and principal.student_id in self.student_ids:
            return True
        if principal.is_company and principal.company_id in self.company_ids:
            return True
        return False

    @classmethod
    def for_application(
        cls,
        student_id: uuid.UUID,
        company_id: uuid.UUID,
        former_student_id: Optional[uuid.UUID] = None,
        former_company_id: Optional[uuid.UUID] = None,
    ) -> "Audience":
        """
        Admins plus the parties of one application.

        When an admin reassigns the application, the former parties are
        included too so their views drop it.
        """
        student_ids = {student_id}
        company_ids = {company_id}
        if former_student_id:
            student_ids.add(former_student_id)
        if former_company_id:
            company_ids.add(former_company_id)
        return cls(roles={Role.ADMIN}, student_ids=student_ids, company_ids=company_ids)

    @classmethod
    def for_opening(cls, company_id: uuid.UUID) -> "Audience":
        """Admins, the owning company, and every student (students self-filter by subscription)."""
        return cls(roles={Role.ADMIN, Role.STUDENT}, company_ids={company_id})

    @classmethod
    def for_admins(cls, student_id: Optional[uuid.UUID] = None) -> "Audience":
        return cls(
            roles={Role.ADMIN},
            student_ids={student_id} if student_id else set(),
        )


class ChangeEvent(BaseModel):
    """
    A change descriptor: action verb, affected ids and an entity-type hint.

    Never a delta. Receivers refetch their authorized collections in full.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    kind: EventKind
    action: str
    entity_type: EntityType
    entity_id: Optional[uuid.UUID] = None
    application_id: Optional[uuid.UUID] = None
    opening_id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None
    student_id: Optional[uuid.UUID] = None
    application: Optional[Dict[str, Any]] = None  # Snapshot after the change
    details: Dict[str, Any] = Field(default_factory=dict)
    emitted_at: datetime = Field(default_factory=datetime.utcnow)
    audience: Audience = Field(default_factory=Audience)

    def to_client(self) -> Dict[str, Any]:
        """Payload sent over the wire to a session (audience stays server-side)."""
        return self.model_dump(mode="json", exclude={"audience"})
