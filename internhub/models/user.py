"""User model."""

from sqlalchemy import Boolean, Column, String

from internhub.db.base import Base


class User(Base):
    """User account; the role decides which pipeline view the session gets."""

    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="student")  # student, company, admin
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
