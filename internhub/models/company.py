"""Company model."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from internhub.db.base import Base


class Company(Base):
    """Member company model."""

    __tablename__ = "companies"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=True)
    name = Column(String(255), nullable=False, index=True)
    industry = Column(String(100))
    location = Column(String(255))
    overview = Column(Text)

    # Published openings, kept in step with the openings table
    openings_count = Column(Integer, default=0, nullable=False)

    # Relationships
    user = relationship("User", backref="company_profile")
    openings = relationship("Opening", back_populates="company", cascade="all, delete-orphan")
    applications = relationship("Application", back_populates="company", cascade="all, delete-orphan")
    subscriptions = relationship("Subscription", back_populates="company", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Company {self.name}>"
