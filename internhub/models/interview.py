"""Interview slot attached to an application."""

from sqlalchemy import Column, Date, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from internhub.db.base import Base


class InterviewSlot(Base):
    """Scheduling record, one per application."""

    __tablename__ = "interview_slots"

    application_id = Column(
        Uuid(as_uuid=True), ForeignKey("applications.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    interview_date = Column(Date)
    interview_time = Column(String(20))  # "14:30"
    mode = Column(String(50))  # onsite, video, phone
    location = Column(String(500))

    # Relationships
    application = relationship("Application", back_populates="interview")

    def __repr__(self):
        return f"<InterviewSlot {self.application_id} {self.interview_date} {self.interview_time}>"
