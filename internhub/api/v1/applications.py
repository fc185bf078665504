"""
Applications API
Application lifecycle, stage machine and the clarification thread
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from internhub.api.deps import get_application_service, get_clarification_service
from internhub.core.security import Principal, Role, get_current_principal, require_role
from internhub.schemas.application import (
    ApplicationAdminUpdate,
    ApplicationCreate,
    ApplicationEdit,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStageUpdate,
)
from internhub.schemas.clarification import (
    ClarificationListResponse,
    ClarificationReply,
    ClarificationRequestCreate,
    ClarificationResponse,
)
from internhub.services.application_service import ApplicationService
from internhub.services.clarification_service import ClarificationService

router = APIRouter()


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def create_application(
    application_in: ApplicationCreate,
    principal: Principal = Depends(require_role(Role.STUDENT)),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Apply to an opening (or directly to a company)

    **Auth**: Student

    Requires a subscription to the company. A student whose earlier
    application to the same company was rejected cannot apply again.
    """
    return await service.create_application(principal, application_in)


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    scope: Optional[str] = Query(None, description="self, company or all"),
    company_id: Optional[UUID] = Query(None, description="Admin only"),
    student_id: Optional[UUID] = Query(None, description="Admin only"),
    principal: Principal = Depends(get_current_principal),
    service: ApplicationService = Depends(get_application_service),
):
    """
    List applications visible to the caller

    **Auth**: Any role. Students see their own, companies see theirs
    (withdrawn excluded), admins see all.
    """
    resolved_scope, applications = await service.list_applications(principal, scope, company_id, student_id)
    return ApplicationListResponse(total=len(applications), scope=resolved_scope, applications=applications)


@router.get("/requests", response_model=ClarificationListResponse)
async def list_requests(
    principal: Principal = Depends(get_current_principal),
    service: ClarificationService = Depends(get_clarification_service),
):
    """Clarification threads visible to the caller"""
    requests = await service.list_requests(principal)
    return ClarificationListResponse(
        total=len(requests),
        pending=sum(1 for r in requests if r.is_pending),
        requests=requests,
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: ApplicationService = Depends(get_application_service),
):
    return await service.get_application(principal, application_id)


@router.patch("/{application_id}/stage", response_model=ApplicationResponse)
async def change_stage(
    application_id: UUID,
    stage_in: ApplicationStageUpdate,
    principal: Principal = Depends(get_current_principal),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Move an application to another stage

    **Auth**: Owning company for pipeline moves, owning student to withdraw,
    admin for any edge.

    Returns 409 when no edge leads to the requested stage and 403 when the
    caller may not take the edge.
    """
    return await service.change_stage(principal, application_id, stage_in.stage)


@router.patch("/{application_id}", response_model=ApplicationResponse)
async def edit_application(
    application_id: UUID,
    application_in: ApplicationEdit,
    principal: Principal = Depends(get_current_principal),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Partial update

    Students edit their answers while the application is still Applied;
    companies edit notes.
    """
    return await service.edit_application(principal, application_id, application_in)


@router.put("/{application_id}", response_model=ApplicationResponse)
async def admin_update_application(
    application_id: UUID,
    application_in: ApplicationAdminUpdate,
    principal: Principal = Depends(require_role(Role.ADMIN)),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Admin override of any field, including the stage

    **Auth**: Admin. This is how a rejection lock is lifted.
    """
    return await service.admin_override(principal, application_id, application_in)


@router.get("/{application_id}/request", response_model=Optional[ClarificationResponse])
async def get_request(
    application_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: ClarificationService = Depends(get_clarification_service),
):
    return await service.get_thread(principal, application_id)


@router.post("/{application_id}/request", response_model=ClarificationResponse)
async def send_request(
    application_id: UUID,
    request_in: ClarificationRequestCreate,
    principal: Principal = Depends(require_role(Role.COMPANY, Role.ADMIN)),
    service: ClarificationService = Depends(get_clarification_service),
):
    """
    Ask the student for more information

    Replaces any earlier request and clears its answer.
    """
    return await service.send_request(principal, application_id, request_in.request_text)


@router.patch("/{application_id}/request-response", response_model=ClarificationResponse)
async def respond_to_request(
    application_id: UUID,
    reply_in: ClarificationReply,
    principal: Principal = Depends(require_role(Role.STUDENT)),
    service: ClarificationService = Depends(get_clarification_service),
):
    return await service.respond(principal, application_id, reply_in.response_text)
