"""
Clarification thread and interview slots.

Run: pytest tests/test_clarifications.py -v
"""

from datetime import date

import pytest
from sqlalchemy import func, select

from internhub.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from internhub.models.application import Stage
from internhub.models.clarification import ClarificationRequest
from internhub.realtime.events import EntityType, EventKind
from internhub.schemas.application import ApplicationCreate
from internhub.schemas.interview import InterviewSlotUpdate
from internhub.services.application_service import ApplicationService
from internhub.services.clarification_service import ClarificationService
from internhub.services.interview_service import InterviewService
from internhub.services.subscription_service import SubscriptionService


@pytest.fixture
def threads(db, broadcaster):
    return ClarificationService(db, broadcaster)


@pytest.fixture
async def application_id(db, broadcaster, accounts):
    await SubscriptionService(db, broadcaster).subscribe(accounts.student, accounts.company.company_id)
    created = await ApplicationService(db, broadcaster).create_application(
        accounts.student, ApplicationCreate(opening_id=accounts.opening_id)
    )
    return created.id


class TestClarificationThread:

    async def test_request_response_request(self, threads, application_id, accounts):
        await threads.send_request(accounts.company, application_id, "Please share your GPA")
        answered = await threads.respond(accounts.student, application_id, "3.8/4.0")
        assert answered.response_text == "3.8/4.0"
        assert answered.is_pending is False

        latest = await threads.send_request(accounts.company, application_id, "Also share transcript")

        assert latest.request_text == "Also share transcript"
        assert latest.response_text is None
        assert latest.is_pending is True

    async def test_thread_stays_single_row(self, threads, application_id, accounts):
        first = await threads.send_request(accounts.company, application_id, "One")
        second = await threads.send_request(accounts.admin, application_id, "Two")

        assert first.id == second.id
        assert len(await threads.list_requests(accounts.admin)) == 1

    async def test_respond_without_request(self, threads, application_id, accounts):
        with pytest.raises(NotFoundError):
            await threads.respond(accounts.student, application_id, "unprompted")

    async def test_empty_request_rejected(self, threads, application_id, accounts):
        with pytest.raises(ValidationError):
            await threads.send_request(accounts.company, application_id, "   ")

    async def test_students_cannot_send_requests(self, threads, application_id, accounts):
        with pytest.raises(AuthorizationError):
            await threads.send_request(accounts.student, application_id, "Can I ask you?")

    async def test_other_company_cannot_send(self, threads, application_id, accounts):
        with pytest.raises(AuthorizationError):
            await threads.send_request(accounts.other_company, application_id, "Hello")

    async def test_other_student_cannot_respond(self, threads, application_id, accounts):
        await threads.send_request(accounts.company, application_id, "Please share your GPA")
        with pytest.raises(AuthorizationError):
            await threads.respond(accounts.other_student, application_id, "4.0")

    async def test_get_thread_visibility(self, threads, application_id, accounts):
        assert await threads.get_thread(accounts.student, application_id) is None
        await threads.send_request(accounts.company, application_id, "Portfolio link?")

        assert (await threads.get_thread(accounts.student, application_id)).request_text == "Portfolio link?"
        assert (await threads.get_thread(accounts.admin, application_id)).company_name == "Northwind Labs"
        with pytest.raises(AuthorizationError):
            await threads.get_thread(accounts.other_company, application_id)

    async def test_list_requests_scoped(self, threads, application_id, accounts):
        await threads.send_request(accounts.company, application_id, "Portfolio link?")

        assert len(await threads.list_requests(accounts.student)) == 1
        assert len(await threads.list_requests(accounts.company)) == 1
        assert await threads.list_requests(accounts.other_student) == []
        assert await threads.list_requests(accounts.other_company) == []

    async def test_events_carry_thread_actions(self, threads, application_id, accounts, broadcaster):
        student = broadcaster.connect(accounts.student)

        await threads.send_request(accounts.company, application_id, "Please share your GPA")
        await threads.respond(accounts.student, application_id, "3.8/4.0")

        events = student.pending()
        assert [e.action for e in events] == ["request", "response"]
        assert all(e.kind == EventKind.APPLICATIONS_CHANGED for e in events)
        assert all(e.entity_type == EntityType.CLARIFICATION for e in events)


class TestInterviewSlots:

    async def test_upsert_creates_then_updates(self, db, broadcaster, application_id, accounts):
        interviews = InterviewService(db, broadcaster)

        slot = await interviews.upsert_slot(
            accounts.company,
            application_id,
            InterviewSlotUpdate(interview_date=date(2026, 11, 2), interview_time="14:30", mode="video"),
        )
        moved = await interviews.upsert_slot(
            accounts.company, application_id, InterviewSlotUpdate(interview_time="16:00")
        )

        assert moved.id == slot.id
        assert moved.interview_time == "16:00"
        assert moved.mode == "video"

    async def test_slot_does_not_move_stage(self, db, broadcaster, application_id, accounts):
        interviews = InterviewService(db, broadcaster)
        await interviews.upsert_slot(accounts.company, application_id, InterviewSlotUpdate(mode="onsite"))

        current = await ApplicationService(db, broadcaster).get_application(accounts.student, application_id)
        assert current.stage == Stage.APPLIED

    async def test_slots_scoped_by_role(self, db, broadcaster, application_id, accounts):
        interviews = InterviewService(db, broadcaster)
        await interviews.upsert_slot(accounts.company, application_id, InterviewSlotUpdate(mode="phone"))

        assert len(await interviews.list_slots(accounts.student)) == 1
        assert len(await interviews.list_slots(accounts.company)) == 1
        assert await interviews.list_slots(accounts.other_student) == []
        assert await interviews.list_slots(accounts.other_company) == []

    async def test_students_cannot_schedule(self, db, broadcaster, application_id, accounts):
        with pytest.raises(AuthorizationError):
            await InterviewService(db, broadcaster).upsert_slot(
                accounts.student, application_id, InterviewSlotUpdate(mode="video")
            )

    async def test_emits_interview_event(self, db, broadcaster, application_id, accounts):
        company = broadcaster.connect(accounts.company)
        await InterviewService(db, broadcaster).upsert_slot(
            accounts.admin, application_id, InterviewSlotUpdate(location="HQ")
        )

        events = company.pending()
        assert len(events) == 1
        assert events[0].action == "interview"
        assert events[0].entity_type == EntityType.INTERVIEW


class TestFirstWriteRaces:

    async def test_thread_created_elsewhere_is_reused(self, db, broadcaster, session_factory, application_id, accounts):
        threads = ClarificationService(db, broadcaster)
        async with session_factory() as other:
            await ClarificationService(other, broadcaster)._ensure_thread(application_id)
            await other.commit()

        # Our session still runs the creating insert; it must not collide
        sent = await threads.send_request(accounts.company, application_id, "Share your GPA")

        assert sent.request_text == "Share your GPA"
        assert await db.scalar(
            select(func.count()).select_from(ClarificationRequest).where(
                ClarificationRequest.application_id == application_id
            )
        ) == 1

    async def test_slot_created_elsewhere_is_updated(self, db, broadcaster, session_factory, application_id, accounts):
        async with session_factory() as other:
            await InterviewService(other, broadcaster).upsert_slot(
                accounts.admin, application_id, InterviewSlotUpdate(mode="phone")
            )

        slot = await InterviewService(db, broadcaster).upsert_slot(
            accounts.company, application_id, InterviewSlotUpdate(mode="video")
        )

        assert slot.mode == "video"
        assert len(await InterviewService(db, broadcaster).list_slots(accounts.admin)) == 1
