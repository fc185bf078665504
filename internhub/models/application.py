"""Application model."""

import enum

from sqlalchemy import Column, Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from internhub.db.base import Base


class Stage(str, enum.Enum):
    """Pipeline stage of an application."""

    APPLIED = "Applied"
    INTERVIEWING = "Interviewing"
    OFFER = "Offer"
    PLACED = "Placed"
    WAITLISTED = "Waitlisted"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"


ESSAY_FIELDS = ("why_internship", "skills_fit", "career_goals", "relevant_experience")


class Application(Base):
    """Internship application model."""

    __tablename__ = "applications"
    __table_args__ = (
        Index("idx_applications_student_company_stage", "student_id", "company_id", "stage"),
    )

    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    opening_id = Column(Uuid(as_uuid=True), ForeignKey("openings.id", ondelete="SET NULL"), nullable=True)

    position = Column(String(255))
    department = Column(String(255))

    # Status tracking
    stage = Column(
        Enum(Stage, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        default=Stage.APPLIED,
        nullable=False,
    )

    # Essay answers (student-editable while Applied)
    why_internship = Column(Text)
    skills_fit = Column(Text)
    career_goals = Column(Text)
    relevant_experience = Column(Text)

    # Company/admin notes
    notes = Column(Text)

    # Relationships
    student = relationship("Student", back_populates="applications")
    company = relationship("Company", back_populates="applications")
    clarification = relationship(
        "ClarificationRequest", back_populates="application", uselist=False, cascade="all, delete-orphan"
    )
    interview = relationship(
        "InterviewSlot", back_populates="application", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Application {self.student_id} -> {self.company_id} ({self.stage.value if self.stage else None})>"
