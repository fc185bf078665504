"""Student model."""

from sqlalchemy import Column, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from internhub.db.base import Base


class Student(Base):
    """Student profile model."""

    __tablename__ = "students"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), index=True)
    phone = Column(String(20))

    # Relationships
    user = relationship("User", backref="student_profile")
    applications = relationship("Application", back_populates="student", cascade="all, delete-orphan")
    subscriptions = relationship("Subscription", back_populates="student", cascade="all, delete-orphan")
    notifications = relationship("StudentNotification", back_populates="student", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Student {self.full_name}>"
