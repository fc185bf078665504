"""
Admin API
Audit trail of every pipeline mutation and subscription overview
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from internhub.api.deps import get_audit_service, get_subscription_service
from internhub.config import settings
from internhub.core.security import Principal, Role, require_role
from internhub.schemas.audit import AuditLogListResponse, AuditLogResponse
from internhub.schemas.subscription import SubscriberSummary
from internhub.services.audit_service import AuditService
from internhub.services.subscription_service import SubscriptionService

router = APIRouter()


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    entity_type: Optional[str] = Query(None, description="application, opening, subscription, ..."),
    entity_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    principal: Principal = Depends(require_role(Role.ADMIN)),
    audit: AuditService = Depends(get_audit_service),
):
    """
    Paginated audit logs, newest first

    **Auth**: Admin
    """
    total, logs = await audit.list_logs(entity_type, entity_id, page, page_size)
    return AuditLogListResponse(
        total=total,
        page=page,
        page_size=page_size,
        logs=[AuditLogResponse.model_validate(log) for log in logs],
    )


@router.get("/subscriptions", response_model=List[SubscriberSummary])
async def subscriber_summary(
    principal: Principal = Depends(require_role(Role.ADMIN)),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Subscriber count per company, most followed first

    **Auth**: Admin
    """
    return await service.subscriber_summary(principal)
