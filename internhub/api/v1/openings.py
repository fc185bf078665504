"""
Openings API
Published internship roles; students only see subscribed companies
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from internhub.api.deps import get_opening_service
from internhub.core.security import Principal, Role, get_current_principal, require_role
from internhub.schemas.opening import OpeningCreate, OpeningListResponse, OpeningResponse
from internhub.services.opening_service import OpeningService

router = APIRouter()


@router.get("", response_model=OpeningListResponse)
async def list_openings(
    principal: Principal = Depends(get_current_principal),
    service: OpeningService = Depends(get_opening_service),
):
    openings = await service.list_openings(principal)
    return OpeningListResponse(total=len(openings), openings=openings)


@router.get("/company", response_model=OpeningListResponse)
async def list_company_openings(
    company_id: Optional[UUID] = Query(None, description="Required for admins"),
    principal: Principal = Depends(require_role(Role.COMPANY, Role.ADMIN)),
    service: OpeningService = Depends(get_opening_service),
):
    openings = await service.list_company_openings(principal, company_id)
    return OpeningListResponse(total=len(openings), openings=openings)


@router.post("", response_model=OpeningResponse, status_code=status.HTTP_201_CREATED)
async def create_opening(
    opening_in: OpeningCreate,
    principal: Principal = Depends(require_role(Role.COMPANY, Role.ADMIN)),
    service: OpeningService = Depends(get_opening_service),
):
    """
    Publish an opening

    **Auth**: Company (own openings) or admin (company_id in body).
    Subscribed students are notified.
    """
    return await service.create_opening(principal, opening_in)


@router.delete("/{opening_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_opening(
    opening_id: UUID,
    principal: Principal = Depends(require_role(Role.COMPANY, Role.ADMIN)),
    service: OpeningService = Depends(get_opening_service),
):
    await service.delete_opening(principal, opening_id)
