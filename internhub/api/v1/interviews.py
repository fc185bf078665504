"""Interview slots API"""

from uuid import UUID

from fastapi import APIRouter, Depends

from internhub.api.deps import get_interview_service
from internhub.core.security import Principal, Role, get_current_principal, require_role
from internhub.schemas.interview import InterviewSlotListResponse, InterviewSlotResponse, InterviewSlotUpdate
from internhub.services.interview_service import InterviewService

router = APIRouter()


@router.get("", response_model=InterviewSlotListResponse)
async def list_interviews(
    principal: Principal = Depends(get_current_principal),
    service: InterviewService = Depends(get_interview_service),
):
    slots = await service.list_slots(principal)
    return InterviewSlotListResponse(total=len(slots), interviews=slots)


@router.put("/{application_id}", response_model=InterviewSlotResponse)
async def upsert_interview(
    application_id: UUID,
    slot_in: InterviewSlotUpdate,
    principal: Principal = Depends(require_role(Role.COMPANY, Role.ADMIN)),
    service: InterviewService = Depends(get_interview_service),
):
    """
    Schedule or reschedule the interview for an application

    **Auth**: Owning company or admin
    """
    return await service.upsert_slot(principal, application_id, slot_in)
