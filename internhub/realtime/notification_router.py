"""
Notification routing for connected clients.

Given the session role, an incoming event payload (as sent over the wire)
and what the client already has cached, decide which UI tab to flag.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Set

from internhub.core.security import Role
from internhub.models.application import Stage
from internhub.realtime.events import EventKind

# Tabs
DASHBOARD = "dashboard"
APPLICATIONS = "applications"
INTERNSHIPS = "internships"
COMPANY_APPLICATIONS = "company-applications"
COMPANY_OPENINGS = "company-openings"
COMPLAINTS = "complaints"
STUDENTS = "students"
COMPANIES = "companies"
AUDIT = "audit"

ADMIN_ENTITY_TARGETS = {
    "support": COMPLAINTS,
    "application": APPLICATIONS,
    "student": STUDENTS,
    "student_profile": STUDENTS,
    "company": COMPANIES,
    "opening": COMPANIES,
}


@dataclass
class ClientState:
    """What a client has cached from its last refetch."""

    subscribed_company_ids: Set[str] = field(default_factory=set)
    company_id: Optional[str] = None
    pending_request: bool = False
    stages: Iterable[str] = ()

    @property
    def has_moved_application(self) -> bool:
        return any(stage != Stage.APPLIED.value for stage in self.stages)


def _str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _route_student(event: Mapping[str, Any], state: ClientState) -> Optional[str]:
    kind = event.get("kind")
    if kind == EventKind.APPLICATIONS_CHANGED.value:
        if event.get("action") == "request" or state.pending_request:
            return APPLICATIONS
        snapshot = event.get("application") or {}
        if snapshot.get("stage") not in (None, Stage.APPLIED.value) or state.has_moved_application:
            return APPLICATIONS
        return DASHBOARD
    if kind == EventKind.OPENINGS_CHANGED.value:
        if event.get("action") == "created" and _str(event.get("company_id")) in state.subscribed_company_ids:
            return INTERNSHIPS
        return None
    return None


def _route_company(event: Mapping[str, Any], state: ClientState) -> Optional[str]:
    kind = event.get("kind")
    if kind == EventKind.APPLICATIONS_CHANGED.value:
        return COMPANY_APPLICATIONS
    if kind == EventKind.OPENINGS_CHANGED.value and state.company_id is not None:
        if _str(event.get("company_id")) == _str(state.company_id):
            return COMPANY_OPENINGS
    return None


def _route_admin(event: Mapping[str, Any]) -> Optional[str]:
    kind = event.get("kind")
    if kind == EventKind.ADMIN_CHANGED.value:
        return ADMIN_ENTITY_TARGETS.get(event.get("entity_type"), AUDIT)
    if kind == EventKind.APPLICATIONS_CHANGED.value:
        return APPLICATIONS
    if kind == EventKind.OPENINGS_CHANGED.value:
        return COMPANIES
    return None


def route_notification(
    role: Role,
    event: Mapping[str, Any],
    state: Optional[ClientState] = None,
) -> Optional[str]:
    """Tab to flag for this event, or None to leave the badge alone."""
    state = state or ClientState()
    if role == Role.STUDENT:
        return _route_student(event, state)
    if role == Role.COMPANY:
        return _route_company(event, state)
    if role == Role.ADMIN:
        return _route_admin(event)
    return None


class NotificationBadge:
    """Holds the latest routed target; the newest event always wins."""

    def __init__(self):
        self.target: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.target is not None

    def update(self, target: Optional[str]) -> Optional[str]:
        if target is not None:
            self.target = target
        return self.target

    def clear(self) -> None:
        self.target = None
