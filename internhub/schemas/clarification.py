"""Pydantic schemas for the clarification thread"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ClarificationRequestCreate(BaseModel):
    request_text: str = Field(..., max_length=5000)


class ClarificationReply(BaseModel):
    response_text: str = Field(..., max_length=5000)


class ClarificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    request_text: Optional[str] = None
    response_text: Optional[str] = None
    is_pending: bool
    company_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    company_name: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ClarificationListResponse(BaseModel):
    total: int
    pending: int
    requests: List[ClarificationResponse]
