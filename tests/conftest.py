"""
Shared fixtures: a fresh SQLite database per test, seeded accounts and
principals for every role, and a broadcaster with recording sessions.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("DEADLINE_REMINDERS_ENABLED", "false")

from dataclasses import dataclass
from datetime import date, timedelta
from uuid import UUID

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from internhub.core.security import Principal, Role, create_access_token
from internhub.db.base import Base
from internhub import models  # noqa: F401
from internhub.models.company import Company
from internhub.models.opening import Opening
from internhub.models.student import Student
from internhub.models.user import User
from internhub.realtime.broadcaster import Broadcaster
from internhub.services.notification_service import NotificationDispatcher


@dataclass
class Accounts:
    admin: Principal
    student: Principal
    other_student: Principal
    company: Principal
    other_company: Principal
    opening_id: UUID
    other_opening_id: UUID

    def token(self, principal: Principal) -> str:
        return create_access_token({"sub": str(principal.user_id)})


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pipeline.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def broadcaster():
    return Broadcaster(max_queue_size=50)


@pytest.fixture
async def notifier(session_factory):
    dispatcher = NotificationDispatcher(session_factory, enabled=True)
    yield dispatcher
    await dispatcher.drain()


async def _user(db, email: str, role: Role) -> User:
    user = User(email=email, role=role.value, is_active=True)
    db.add(user)
    await db.flush()
    return user


async def _student(db, email: str, name: str) -> Principal:
    user = await _user(db, email, Role.STUDENT)
    student = Student(user_id=user.id, full_name=name, email=email)
    db.add(student)
    await db.flush()
    return Principal(user_id=user.id, role=Role.STUDENT, student_id=student.id)


async def _company(db, email: str, name: str) -> Principal:
    user = await _user(db, email, Role.COMPANY)
    company = Company(user_id=user.id, name=name, industry="Software", openings_count=1)
    db.add(company)
    await db.flush()
    return Principal(user_id=user.id, role=Role.COMPANY, company_id=company.id)


@pytest.fixture
async def accounts(db) -> Accounts:
    admin_user = await _user(db, "admin@test.local", Role.ADMIN)
    student = await _student(db, "asha@test.local", "Asha Verma")
    other_student = await _student(db, "ravi@test.local", "Ravi Kumar")
    company = await _company(db, "hr@northwind.local", "Northwind Labs")
    other_company = await _company(db, "hr@bluepeak.local", "BluePeak Health")

    opening = Opening(
        company_id=company.company_id,
        department="Engineering",
        role_title="Backend Intern",
        expectations="Python and SQL",
        slots=2,
        deadline=date.today() + timedelta(days=10),
    )
    other_opening = Opening(
        company_id=other_company.company_id,
        department="Product",
        role_title="Product Intern",
        expectations="User research",
        slots=1,
    )
    db.add_all([opening, other_opening])
    await db.commit()

    return Accounts(
        admin=Principal(user_id=admin_user.id, role=Role.ADMIN),
        student=student,
        other_student=other_student,
        company=company,
        other_company=other_company,
        opening_id=opening.id,
        other_opening_id=other_opening.id,
    )
