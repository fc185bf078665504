"""Security utilities: JWT, session principal, RBAC."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from internhub.config import settings
from internhub.core.exceptions import AuthenticationError, AuthorizationError
from internhub.db.session import get_db
from internhub.models.company import Company
from internhub.models.student import Student
from internhub.models.user import User

# HTTPBearer for simple token authentication in Swagger (just paste the access token)
security = HTTPBearer(auto_error=False)


class Role(str, Enum):
    """User roles."""

    ADMIN = "admin"
    COMPANY = "company"
    STUDENT = "student"


@dataclass(frozen=True)
class Principal:
    """Identity of the caller as supplied by the session provider."""

    user_id: uuid.UUID
    role: Role
    student_id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

    @property
    def is_company(self) -> bool:
        return self.role == Role.COMPANY


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_token(token: str) -> dict:
    """Decode and verify JWT token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise AuthenticationError("Could not validate credentials")
    if payload.get("type") != "access":
        raise AuthenticationError("Could not validate credentials")
    return payload


async def resolve_principal(db: AsyncSession, token: str) -> Principal:
    """
    Turn a bearer token into a Principal.

    The user row supplies the role; the linked student or company row
    supplies the identity every ownership check compares against.
    """
    payload = decode_token(token)

    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationError("Could not validate credentials")
    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        raise AuthenticationError("Could not validate credentials")

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if user is None:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthorizationError("Inactive user")

    try:
        role = Role(user.role)
    except ValueError:
        raise AuthorizationError(f"Unknown role: {user.role}")

    student_id = None
    company_id = None
    if role == Role.STUDENT:
        result = await db.execute(select(Student.id).where(Student.user_id == user.id))
        student_id = result.scalar_one_or_none()
    elif role == Role.COMPANY:
        result = await db.execute(select(Company.id).where(Company.user_id == user.id))
        company_id = result.scalar_one_or_none()

    return Principal(user_id=user.id, role=role, student_id=student_id, company_id=company_id)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Get current authenticated principal from Bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")
    return await resolve_principal(db, credentials.credentials)


def require_role(*allowed_roles: Role):
    """Dependency to check if the principal has one of the required roles."""

    async def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed_roles:
            raise AuthorizationError(
                f"Insufficient permissions. Required: {[r.value for r in allowed_roles]}"
            )
        return principal

    return role_checker
