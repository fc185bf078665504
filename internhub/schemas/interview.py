"""Pydantic schemas for interview slots"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class InterviewSlotUpdate(BaseModel):
    interview_date: Optional[date] = None
    interview_time: Optional[str] = Field(None, max_length=20)
    mode: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=500)


class InterviewSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    company_id: UUID
    interview_date: Optional[date] = None
    interview_time: Optional[str] = None
    mode: Optional[str] = None
    location: Optional[str] = None
    updated_at: Optional[datetime] = None


class InterviewSlotListResponse(BaseModel):
    total: int
    interviews: List[InterviewSlotResponse]
