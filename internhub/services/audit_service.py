"""Audit sink."""

import uuid
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from internhub.models.audit_log import AuditLog

logger = structlog.get_logger(__name__)


class AuditService:
    """
    Persists audit rows after the triggering mutation has committed.

    A failed write is rolled back and logged; it never reaches the caller,
    so the mutation it describes stands.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        actor_user_id: Optional[uuid.UUID],
        action_type: str,
        entity_type: str,
        entity_id: Optional[uuid.UUID] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        entry = AuditLog(
            actor_user_id=actor_user_id,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
        )
        try:
            self.db.add(entry)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "audit_write_failed",
                action_type=action_type,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id else None,
                error=str(e),
            )
            return None
        return entry

    async def list_logs(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
        page: int = 1,
        page_size: int = 50,
    ):
        """Newest first; returns (total, rows)."""
        query = select(AuditLog)
        count_query = select(func.count()).select_from(AuditLog)
        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)
            count_query = count_query.where(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.where(AuditLog.entity_id == entity_id)
            count_query = count_query.where(AuditLog.entity_id == entity_id)

        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(AuditLog.created_at.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.db.execute(query)
        return total, result.scalars().all()
