"""Sample data for local development and demos."""

from datetime import date, timedelta
from typing import Dict, List

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from internhub.core.security import Role
from internhub.models.company import Company
from internhub.models.opening import Opening
from internhub.models.student import Student
from internhub.models.user import User

logger = structlog.get_logger(__name__)

SAMPLE_ADMIN = "admin@internhub.local"

SAMPLE_COMPANIES = [
    {
        "email": "talent@northwind.local",
        "name": "Northwind Labs",
        "industry": "Software",
        "location": "Bengaluru",
        "overview": "Developer tooling and cloud infrastructure.",
        "openings": [
            {"department": "Engineering", "role_title": "Backend Intern", "expectations": "Python, SQL, HTTP APIs", "slots": 2},
            {"department": "Data", "role_title": "Analytics Intern", "expectations": "SQL and dashboards", "slots": 1},
        ],
    },
    {
        "email": "hr@bluepeak.local",
        "name": "BluePeak Health",
        "industry": "Healthcare",
        "location": "Pune",
        "overview": "Clinical operations software.",
        "openings": [
            {"department": "Product", "role_title": "Product Intern", "expectations": "User research, writing", "slots": 1},
        ],
    },
]

SAMPLE_STUDENTS = [
    {"email": "asha@student.local", "full_name": "Asha Verma", "phone": "9000000001"},
    {"email": "ravi@student.local", "full_name": "Ravi Kumar", "phone": "9000000002"},
]


async def _ensure_user(session: AsyncSession, email: str, role: Role) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(email=email, role=role.value, is_active=True)
        session.add(user)
        await session.flush()
    return user


async def seed(session: AsyncSession) -> Dict[str, List[str]]:
    """
    Insert sample accounts, companies and openings.

    Idempotent: rows are matched by email, so running it twice adds nothing.
    Returns the e-mails of the seeded accounts by role.
    """
    seeded: Dict[str, List[str]] = {"admin": [], "company": [], "student": []}

    await _ensure_user(session, SAMPLE_ADMIN, Role.ADMIN)
    seeded["admin"].append(SAMPLE_ADMIN)

    deadline = date.today() + timedelta(days=14)
    for sample in SAMPLE_COMPANIES:
        user = await _ensure_user(session, sample["email"], Role.COMPANY)
        result = await session.execute(select(Company).where(Company.user_id == user.id))
        if result.scalar_one_or_none() is None:
            company = Company(
                user_id=user.id,
                name=sample["name"],
                industry=sample["industry"],
                location=sample["location"],
                overview=sample["overview"],
                openings_count=len(sample["openings"]),
            )
            session.add(company)
            await session.flush()
            for opening in sample["openings"]:
                session.add(Opening(company_id=company.id, location=sample["location"], deadline=deadline, **opening))
        seeded["company"].append(sample["email"])

    for sample in SAMPLE_STUDENTS:
        user = await _ensure_user(session, sample["email"], Role.STUDENT)
        result = await session.execute(select(Student).where(Student.user_id == user.id))
        if result.scalar_one_or_none() is None:
            session.add(Student(user_id=user.id, **sample))
        seeded["student"].append(sample["email"])

    await session.commit()
    logger.info("sample_data_seeded", **{role: len(emails) for role, emails in seeded.items()})
    return seeded
