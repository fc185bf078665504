"""Pydantic schemas for the opening catalog"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class OpeningCreate(BaseModel):
    company_id: Optional[UUID] = Field(None, description="Required when an admin creates the opening")
    department: Optional[str] = Field(None, max_length=255)
    role_title: Optional[str] = Field(None, max_length=255)
    expectations: Optional[str] = Field(None, max_length=5000)
    slots: Optional[int] = Field(None, ge=1)
    location: Optional[str] = Field(None, max_length=255)
    deadline: Optional[date] = None


class OpeningResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    company_name: Optional[str] = None
    department: str
    role_title: Optional[str] = None
    expectations: str
    slots: Optional[int] = None
    location: Optional[str] = None
    deadline: Optional[date] = None
    created_at: datetime


class OpeningListResponse(BaseModel):
    total: int
    openings: List[OpeningResponse]
