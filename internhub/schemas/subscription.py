"""Pydantic schemas for company subscriptions"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class SubscriptionCreate(BaseModel):
    company_id: UUID


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    company_id: UUID
    created_at: Optional[datetime] = None


class SubscriptionStatus(BaseModel):
    status: str  # subscribed, unsubscribed
    company_id: UUID


class MemberCompanyResponse(BaseModel):
    id: UUID
    name: str
    industry: Optional[str] = None
    location: Optional[str] = None
    openings_count: int = 0
    subscribed: bool


class MemberCompanyListResponse(BaseModel):
    total: int
    companies: List[MemberCompanyResponse]


class SubscriberCountResponse(BaseModel):
    company_id: UUID
    count: int


class SubscriberSummary(BaseModel):
    company_id: UUID
    name: str
    subscriber_count: int
