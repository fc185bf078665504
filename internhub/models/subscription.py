"""Student-to-company subscription model."""

from sqlalchemy import Column, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from internhub.db.base import Base


class Subscription(Base):
    """
    A student's opt-in to one company.

    Gates both opening visibility and application eligibility.
    Deleting it never touches existing applications.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("student_id", "company_id", name="unique_student_company_subscription"),
    )

    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    student = relationship("Student", back_populates="subscriptions")
    company = relationship("Company", back_populates="subscriptions")

    def __repr__(self):
        return f"<Subscription {self.student_id} -> {self.company_id}>"
