"""
Application record store: creation gate, stage machine, edits, side effects.

Run: pytest tests/test_applications.py -v
"""

import pytest
from sqlalchemy import func, select

from internhub.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    RejectionLockError,
    ValidationError,
)
from internhub.models.application import Application, Stage
from internhub.models.audit_log import AuditLog
from internhub.models.notification import StudentNotification
from internhub.realtime.events import EventKind
from internhub.schemas.application import (
    ApplicationAdminUpdate,
    ApplicationCreate,
    ApplicationEdit,
)
from internhub.schemas.interview import InterviewSlotUpdate
from internhub.services.application_service import ApplicationService
from internhub.services.interview_service import InterviewService
from internhub.services.opening_service import OpeningService
from internhub.services.subscription_service import SubscriptionService


class FailingNotifier:
    def queue_stage_change(self, *args, **kwargs):
        raise RuntimeError("mail relay down")


@pytest.fixture
def apps(db, broadcaster, notifier):
    return ApplicationService(db, broadcaster, notifier)


@pytest.fixture
def subscriptions(db, broadcaster):
    return SubscriptionService(db, broadcaster)


@pytest.fixture
async def applied(apps, subscriptions, accounts):
    """An Applied application from `student` to `company`."""
    await subscriptions.subscribe(accounts.student, accounts.company.company_id)
    return await apps.create_application(
        accounts.student,
        ApplicationCreate(opening_id=accounts.opening_id, why_internship="I like backends"),
    )


async def _rows_for(db, student_id, company_id) -> int:
    result = await db.execute(
        select(func.count()).select_from(Application).where(
            Application.student_id == student_id,
            Application.company_id == company_id,
        )
    )
    return result.scalar()


class TestCreateApplication:

    async def test_requires_subscription(self, db, apps, accounts):
        with pytest.raises(AuthorizationError):
            await apps.create_application(accounts.student, ApplicationCreate(opening_id=accounts.opening_id))
        assert await _rows_for(db, accounts.student.student_id, accounts.company.company_id) == 0

    async def test_created_from_opening(self, applied, accounts):
        assert applied.stage == Stage.APPLIED
        assert applied.company_id == accounts.company.company_id
        assert applied.opening_id == accounts.opening_id
        assert applied.position == "Backend Intern"
        assert applied.department == "Engineering"
        assert applied.company_name == "Northwind Labs"
        assert applied.student_name == "Asha Verma"

    async def test_direct_company_application(self, apps, subscriptions, accounts):
        await subscriptions.subscribe(accounts.student, accounts.company.company_id)
        created = await apps.create_application(
            accounts.student,
            ApplicationCreate(company_id=accounts.company.company_id, position="Generalist"),
        )
        assert created.opening_id is None
        assert created.position == "Generalist"

    async def test_opening_and_company_must_agree(self, apps, subscriptions, accounts):
        await subscriptions.subscribe(accounts.student, accounts.company.company_id)
        with pytest.raises(ValidationError):
            await apps.create_application(
                accounts.student,
                ApplicationCreate(opening_id=accounts.opening_id, company_id=accounts.other_company.company_id),
            )

    async def test_only_students_apply(self, apps, accounts):
        with pytest.raises(AuthorizationError):
            await apps.create_application(accounts.company, ApplicationCreate(opening_id=accounts.opening_id))

    async def test_unsubscribing_keeps_applications(self, db, apps, subscriptions, applied, accounts):
        await subscriptions.unsubscribe(accounts.student, accounts.company.company_id)

        _, listed = await apps.list_applications(accounts.student)
        assert [a.id for a in listed] == [applied.id]

    async def test_emits_created_event(self, apps, subscriptions, broadcaster, accounts):
        company = broadcaster.connect(accounts.company)
        await subscriptions.subscribe(accounts.student, accounts.company.company_id)

        created = await apps.create_application(accounts.student, ApplicationCreate(opening_id=accounts.opening_id))

        events = company.pending()
        assert len(events) == 1
        assert events[0].kind == EventKind.APPLICATIONS_CHANGED
        assert events[0].action == "created"
        assert events[0].application_id == created.id


class TestRejectionLock:

    async def test_full_pipeline_scenario(self, db, apps, subscriptions, broadcaster, accounts):
        student, company = accounts.student, accounts.company
        await subscriptions.subscribe(student, company.company_id)
        openings = await OpeningService(db, broadcaster).list_openings(student)
        assert len(openings) == 1

        created = await apps.create_application(student, ApplicationCreate(opening_id=openings[0].id))
        assert created.stage == Stage.APPLIED

        await apps.change_stage(company, created.id, Stage.INTERVIEWING)
        _, mine = await apps.list_applications(student)
        assert mine[0].stage == Stage.INTERVIEWING

        await apps.change_stage(company, created.id, Stage.REJECTED)
        with pytest.raises(ConflictError):
            await apps.create_application(student, ApplicationCreate(opening_id=openings[0].id))
        assert await _rows_for(db, student.student_id, company.company_id) == 1

    async def test_lock_is_per_company(self, apps, subscriptions, applied, accounts):
        await apps.change_stage(accounts.company, applied.id, Stage.REJECTED)
        await subscriptions.subscribe(accounts.student, accounts.other_company.company_id)

        other = await apps.create_application(
            accounts.student, ApplicationCreate(opening_id=accounts.other_opening_id)
        )
        assert other.stage == Stage.APPLIED

    async def test_withdrawn_application_does_not_lock(self, apps, applied, accounts):
        await apps.change_stage(accounts.student, applied.id, Stage.WITHDRAWN)

        again = await apps.create_application(accounts.student, ApplicationCreate(opening_id=accounts.opening_id))
        assert again.id != applied.id

    async def test_admin_override_lifts_lock(self, apps, applied, accounts):
        await apps.change_stage(accounts.company, applied.id, Stage.REJECTED)
        with pytest.raises(RejectionLockError):
            await apps.create_application(accounts.student, ApplicationCreate(opening_id=accounts.opening_id))

        await apps.admin_override(accounts.admin, applied.id, ApplicationAdminUpdate(stage=Stage.WITHDRAWN))

        again = await apps.create_application(accounts.student, ApplicationCreate(opening_id=accounts.opening_id))
        assert again.stage == Stage.APPLIED


class TestChangeStage:

    async def test_student_cannot_take_company_edge(self, db, apps, applied, accounts):
        with pytest.raises(AuthorizationError):
            await apps.change_stage(accounts.student, applied.id, Stage.INTERVIEWING)

        row = await db.get(Application, applied.id)
        assert row.stage == Stage.APPLIED

    async def test_missing_edge_is_conflict(self, db, apps, applied, accounts):
        with pytest.raises(InvalidTransitionError):
            await apps.change_stage(accounts.company, applied.id, Stage.PLACED)

        row = await db.get(Application, applied.id)
        assert row.stage == Stage.APPLIED

    async def test_other_company_denied(self, apps, applied, accounts):
        with pytest.raises(AuthorizationError):
            await apps.change_stage(accounts.other_company, applied.id, Stage.INTERVIEWING)

    async def test_withdrawn_hidden_from_company(self, apps, applied, accounts):
        await apps.change_stage(accounts.student, applied.id, Stage.WITHDRAWN)

        _, company_view = await apps.list_applications(accounts.company)
        _, admin_view = await apps.list_applications(accounts.admin)
        assert company_view == []
        assert [a.stage for a in admin_view] == [Stage.WITHDRAWN]

    async def test_event_reaches_parties_only(self, apps, applied, broadcaster, accounts):
        channels = {
            "admin": broadcaster.connect(accounts.admin),
            "student": broadcaster.connect(accounts.student),
            "company": broadcaster.connect(accounts.company),
            "other_student": broadcaster.connect(accounts.other_student),
            "other_company": broadcaster.connect(accounts.other_company),
        }

        await apps.change_stage(accounts.company, applied.id, Stage.INTERVIEWING)

        received = {name: channel.pending() for name, channel in channels.items()}
        for name in ("admin", "student", "company"):
            assert len(received[name]) == 1
            event = received[name][0]
            assert event.kind == EventKind.APPLICATIONS_CHANGED
            assert event.application["stage"] == "Interviewing"
        assert received["other_student"] == []
        assert received["other_company"] == []

    async def test_stage_change_is_audited(self, db, apps, applied, accounts):
        await apps.change_stage(accounts.company, applied.id, Stage.INTERVIEWING)

        result = await db.execute(select(AuditLog).where(AuditLog.action_type == "application_stage"))
        entry = result.scalar_one()
        assert entry.entity_id == applied.id
        assert entry.details["before"] == "Applied"
        assert entry.details["after"] == "Interviewing"

    async def test_student_notified(self, apps, applied, accounts, notifier, session_factory):
        await apps.change_stage(accounts.company, applied.id, Stage.INTERVIEWING)
        await notifier.drain()

        async with session_factory() as fresh:
            result = await fresh.execute(
                select(StudentNotification).where(StudentNotification.student_id == accounts.student.student_id)
            )
            notifications = result.scalars().all()
        assert [n.type for n in notifications] == ["stage_change"]
        assert "Interviewing" in notifications[0].message

    async def test_failing_notifier_does_not_roll_back(self, db, broadcaster, applied, accounts, session_factory):
        apps = ApplicationService(db, broadcaster, FailingNotifier())

        updated = await apps.change_stage(accounts.company, applied.id, Stage.INTERVIEWING)

        assert updated.stage == Stage.INTERVIEWING
        async with session_factory() as fresh:
            row = await fresh.get(Application, applied.id)
        assert row.stage == Stage.INTERVIEWING


class TestEditApplication:

    async def test_student_edits_answers_while_applied(self, apps, applied, accounts):
        edited = await apps.edit_application(
            accounts.student, applied.id, ApplicationEdit(skills_fit="SQL, Python")
        )
        assert edited.skills_fit == "SQL, Python"
        assert edited.why_internship == "I like backends"

    async def test_student_locked_out_after_applied(self, apps, applied, accounts):
        await apps.change_stage(accounts.company, applied.id, Stage.INTERVIEWING)

        with pytest.raises(AuthorizationError):
            await apps.edit_application(accounts.student, applied.id, ApplicationEdit(skills_fit="late edit"))

    async def test_student_cannot_edit_notes(self, apps, applied, accounts):
        with pytest.raises(AuthorizationError):
            await apps.edit_application(accounts.student, applied.id, ApplicationEdit(notes="hire me"))

    async def test_company_edits_notes_only(self, apps, applied, accounts):
        edited = await apps.edit_application(accounts.company, applied.id, ApplicationEdit(notes="Strong SQL"))
        assert edited.notes == "Strong SQL"

        with pytest.raises(AuthorizationError):
            await apps.edit_application(accounts.company, applied.id, ApplicationEdit(career_goals="rewritten"))

    async def test_empty_update_rejected(self, apps, applied, accounts):
        with pytest.raises(ValidationError):
            await apps.edit_application(accounts.student, applied.id, ApplicationEdit())

    async def test_admin_edit_delegates_to_override(self, apps, applied, accounts):
        edited = await apps.edit_application(accounts.admin, applied.id, ApplicationEdit(notes="reviewed"))
        assert edited.notes == "reviewed"

    async def test_override_requires_admin(self, apps, applied, accounts):
        with pytest.raises(AuthorizationError):
            await apps.admin_override(accounts.company, applied.id, ApplicationAdminUpdate(stage=Stage.PLACED))

    async def test_override_may_jump_stages(self, apps, applied, accounts):
        updated = await apps.admin_override(accounts.admin, applied.id, ApplicationAdminUpdate(stage=Stage.PLACED))
        assert updated.stage == Stage.PLACED

    @pytest.mark.parametrize("field", ["student_id", "company_id", "stage"])
    async def test_override_rejects_empty_party_or_stage(self, apps, applied, accounts, field):
        with pytest.raises(ValidationError) as exc:
            await apps.admin_override(accounts.admin, applied.id, ApplicationAdminUpdate(**{field: None}))
        assert exc.value.field == field

    async def test_reassigning_company_moves_slot_and_tells_both_companies(
        self, db, apps, applied, broadcaster, accounts
    ):
        interviews = InterviewService(db, broadcaster)
        await interviews.upsert_slot(accounts.company, applied.id, InterviewSlotUpdate(mode="video"))
        former = broadcaster.connect(accounts.company)
        new = broadcaster.connect(accounts.other_company)

        await apps.admin_override(
            accounts.admin, applied.id, ApplicationAdminUpdate(company_id=accounts.other_company.company_id)
        )

        assert [e.action for e in former.pending()] == ["updated"]
        assert [e.action for e in new.pending()] == ["updated"]
        assert await interviews.list_slots(accounts.company) == []
        moved = await interviews.list_slots(accounts.other_company)
        assert [s.application_id for s in moved] == [applied.id]

    async def test_reassigning_student_tells_former_student(self, apps, applied, broadcaster, accounts):
        former = broadcaster.connect(accounts.student)

        await apps.admin_override(
            accounts.admin, applied.id, ApplicationAdminUpdate(student_id=accounts.other_student.student_id)
        )

        assert len(former.pending()) == 1
        _, mine = await apps.list_applications(accounts.student)
        assert mine == []


class TestListApplications:

    async def test_scope_must_match_role(self, apps, accounts):
        scope, _ = await apps.list_applications(accounts.student, "self")
        assert scope == "self"
        with pytest.raises(AuthorizationError):
            await apps.list_applications(accounts.student, "all")
        with pytest.raises(AuthorizationError):
            await apps.list_applications(accounts.company, "self")

    async def test_admin_filters(self, apps, applied, accounts):
        _, by_company = await apps.list_applications(accounts.admin, company_id=accounts.company.company_id)
        _, by_other = await apps.list_applications(accounts.admin, company_id=accounts.other_company.company_id)
        assert [a.id for a in by_company] == [applied.id]
        assert by_other == []

    async def test_get_application_ownership(self, apps, applied, accounts):
        assert (await apps.get_application(accounts.company, applied.id)).id == applied.id
        with pytest.raises(AuthorizationError):
            await apps.get_application(accounts.other_student, applied.id)
