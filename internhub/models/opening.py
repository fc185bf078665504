"""Company opening model."""

from sqlalchemy import Column, Date, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from internhub.db.base import Base


class Opening(Base):
    """A published internship role."""

    __tablename__ = "openings"

    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    department = Column(String(255), nullable=False)
    role_title = Column(String(255))
    expectations = Column(Text, nullable=False)
    slots = Column(Integer)
    location = Column(String(255))
    deadline = Column(Date, index=True)

    # Relationships
    company = relationship("Company", back_populates="openings")

    def __repr__(self):
        return f"<Opening {self.role_title or self.department} @ {self.company_id}>"
