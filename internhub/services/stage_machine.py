"""
Application stage machine.

Applied -> Interviewing -> Offer -> Placed is the advance path. Any
non-terminal stage may go to Rejected (company) or Withdrawn (student);
Applied and Interviewing may go to Waitlisted, which returns to Interviewing.
Admins may take any edge. Ownership is checked by the caller.
"""

from typing import Dict, FrozenSet, Tuple

from internhub.core.exceptions import AuthorizationError, InvalidTransitionError
from internhub.core.security import Role
from internhub.models.application import Stage

NON_TERMINAL_STAGES: FrozenSet[Stage] = frozenset(
    {Stage.APPLIED, Stage.INTERVIEWING, Stage.OFFER, Stage.WAITLISTED}
)
TERMINAL_STAGES: FrozenSet[Stage] = frozenset(
    {Stage.PLACED, Stage.REJECTED, Stage.WITHDRAWN}
)


def _build_transitions() -> Dict[Tuple[Stage, Stage], FrozenSet[Role]]:
    company = frozenset({Role.COMPANY})
    student = frozenset({Role.STUDENT})

    edges = {
        (Stage.APPLIED, Stage.INTERVIEWING): company,
        (Stage.INTERVIEWING, Stage.OFFER): company,
        (Stage.OFFER, Stage.PLACED): company,
        (Stage.APPLIED, Stage.WAITLISTED): company,
        (Stage.INTERVIEWING, Stage.WAITLISTED): company,
        (Stage.WAITLISTED, Stage.INTERVIEWING): company,
    }
    for stage in NON_TERMINAL_STAGES:
        edges[(stage, Stage.REJECTED)] = company
        edges[(stage, Stage.WITHDRAWN)] = student
    return edges


# (from, to) -> roles allowed besides admin
TRANSITIONS = _build_transitions()


def is_terminal(stage: Stage) -> bool:
    return stage in TERMINAL_STAGES


def next_stages(stage: Stage) -> FrozenSet[Stage]:
    """Every stage reachable by one edge."""
    return frozenset(to for (frm, to) in TRANSITIONS if frm == stage)


def allowed_next_stages(role: Role, stage: Stage) -> FrozenSet[Stage]:
    """Stages this role may move an application to from `stage`."""
    if role == Role.ADMIN:
        return next_stages(stage)
    return frozenset(
        to for (frm, to), roles in TRANSITIONS.items() if frm == stage and role in roles
    )


def check_transition(role: Role, current: Stage, target: Stage) -> None:
    """
    Raise unless `role` may move an application from `current` to `target`.

    A missing edge is a conflict with the current state; an existing edge the
    role may not take is an authorization failure.
    """
    if is_terminal(current):
        raise InvalidTransitionError(f"Application is already {current.value}")
    roles = TRANSITIONS.get((current, target))
    if roles is None:
        raise InvalidTransitionError(
            f"Cannot move application from {current.value} to {target.value}"
        )
    if role != Role.ADMIN and role not in roles:
        raise AuthorizationError(
            f"Role {role.value} may not move application from {current.value} to {target.value}"
        )


def can_edit_essays(stage: Stage) -> bool:
    return stage == Stage.APPLIED
