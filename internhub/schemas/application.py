"""
Pydantic schemas for Application APIs
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from internhub.models.application import Stage


class EssayFieldsMixin(BaseModel):
    """Free-text answers a student writes when applying"""
    why_internship: Optional[str] = Field(None, max_length=5000)
    skills_fit: Optional[str] = Field(None, max_length=5000)
    career_goals: Optional[str] = Field(None, max_length=5000)
    relevant_experience: Optional[str] = Field(None, max_length=5000)


class ApplicationCreate(EssayFieldsMixin):
    """Apply to an opening (or directly to a company)"""
    opening_id: Optional[UUID] = Field(None, description="Opening being applied to")
    company_id: Optional[UUID] = Field(None, description="Used when no opening is given")
    position: Optional[str] = Field(None, max_length=255)
    department: Optional[str] = Field(None, max_length=255)


class ApplicationStageUpdate(BaseModel):
    stage: Stage


class ApplicationEdit(EssayFieldsMixin):
    """Partial update; which fields a role may touch is decided server-side"""
    position: Optional[str] = Field(None, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=5000)


class ApplicationAdminUpdate(ApplicationEdit):
    """Admin override: every field, any stage"""
    student_id: Optional[UUID] = None
    company_id: Optional[UUID] = None
    stage: Optional[Stage] = None


class ApplicationResponse(EssayFieldsMixin):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    company_id: UUID
    opening_id: Optional[UUID] = None
    position: Optional[str] = None
    department: Optional[str] = None
    stage: Stage
    notes: Optional[str] = None
    student_name: Optional[str] = None
    company_name: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ApplicationListResponse(BaseModel):
    total: int
    scope: str
    applications: List[ApplicationResponse]
