"""
Student in-app notifications
Stage changes, new openings from followed companies, deadline reminders
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from internhub.db.base import Base


class StudentNotification(Base):
    """
    Notifications for students (stage changes, new openings, deadlines)
    """
    __tablename__ = "student_notifications"

    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)

    # Notification type
    type = Column(String(50), nullable=False)  # 'stage_change', 'new_opening', 'opening_deadline'

    # Content
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    # Optional deep link
    link = Column(String(500), nullable=True)  # UI tab to navigate to

    # Metadata
    data = Column(JSON, nullable=True)

    # Status
    read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)

    # Relationships
    student = relationship("Student", back_populates="notifications")

    # Indexes
    __table_args__ = (
        Index("idx_notifications_student", "student_id"),
        Index("idx_notifications_student_unread", "student_id", "read"),
        Index("idx_notifications_type", "type"),
    )

    def __repr__(self):
        return f"<StudentNotification(student_id={self.student_id}, type={self.type}, read={self.read})>"
