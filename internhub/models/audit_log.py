"""Audit log model."""

from sqlalchemy import JSON, Column, Index, String, Uuid

from internhub.db.base import Base


class AuditLog(Base):
    """Who did what to which entity."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_logs_entity", "entity_type", "entity_id"),
        Index("idx_audit_logs_created_at", "created_at"),
    )

    actor_user_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    action_type = Column(String(50), nullable=False)  # application_stage, subscription_add, ...
    entity_type = Column(String(50), nullable=False)  # application, opening, subscription, ...
    entity_id = Column(Uuid(as_uuid=True), nullable=True)
    details = Column(JSON, default=dict)

    def __repr__(self):
        return f"<AuditLog {self.action_type} {self.entity_type}:{self.entity_id}>"
