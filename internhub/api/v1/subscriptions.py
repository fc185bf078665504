"""
Subscriptions API
Students follow member companies to see their openings and apply
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from internhub.api.deps import get_subscription_service
from internhub.core.security import Principal, Role, require_role
from internhub.schemas.subscription import (
    MemberCompanyListResponse,
    SubscriberCountResponse,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionStatus,
)
from internhub.services.subscription_service import SubscriptionService

router = APIRouter()


@router.get("", response_model=List[SubscriptionResponse])
async def list_subscriptions(
    principal: Principal = Depends(require_role(Role.STUDENT)),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return await service.list_subscriptions(principal)


@router.post("", response_model=SubscriptionStatus)
async def subscribe(
    subscription_in: SubscriptionCreate,
    principal: Principal = Depends(require_role(Role.STUDENT)),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Follow a company

    **Auth**: Student. Subscribing twice is harmless.
    """
    await service.subscribe(principal, subscription_in.company_id)
    return SubscriptionStatus(status="subscribed", company_id=subscription_in.company_id)


@router.delete("/{company_id}", response_model=SubscriptionStatus)
async def unsubscribe(
    company_id: UUID,
    principal: Principal = Depends(require_role(Role.STUDENT)),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Stop following a company; existing applications are kept"""
    await service.unsubscribe(principal, company_id)
    return SubscriptionStatus(status="unsubscribed", company_id=company_id)


@router.get("/companies", response_model=MemberCompanyListResponse)
async def list_member_companies(
    principal: Principal = Depends(require_role(Role.STUDENT)),
    service: SubscriptionService = Depends(get_subscription_service),
):
    companies = await service.list_member_companies(principal)
    return MemberCompanyListResponse(total=len(companies), companies=companies)


@router.get("/companies/{company_id}/count", response_model=SubscriberCountResponse)
async def subscriber_count(
    company_id: UUID,
    principal: Principal = Depends(require_role(Role.COMPANY, Role.ADMIN)),
    service: SubscriptionService = Depends(get_subscription_service),
):
    company_id, count = await service.subscriber_count(principal, company_id)
    return SubscriberCountResponse(company_id=company_id, count=count)
