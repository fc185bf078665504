"""Clarification request attached to an application."""

from sqlalchemy import Column, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from internhub.db.base import Base


class ClarificationRequest(Base):
    """
    One open company-to-student request per application.

    A new request_text always clears response_text, so at most one
    round-trip is open at a time. Pending means response_text is NULL.
    """

    __tablename__ = "clarification_requests"

    application_id = Column(
        Uuid(as_uuid=True), ForeignKey("applications.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    request_text = Column(Text, nullable=True)
    response_text = Column(Text, nullable=True)

    # Relationships
    application = relationship("Application", back_populates="clarification")

    @property
    def is_pending(self) -> bool:
        return self.request_text is not None and self.response_text is None

    def __repr__(self):
        return f"<ClarificationRequest {self.application_id} pending={self.is_pending}>"
