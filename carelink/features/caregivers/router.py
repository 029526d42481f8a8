# Caregivers Feature - Router

from fastapi import APIRouter, Depends, status
from carelink.features.caregivers.schemas import (
    CaregiverLinkEnvelope,
    CaregiverLinkListResponse,
    InviteCaregiverRequest,
    PermissionsUpdateRequest,
)
from carelink.features.caregivers.service import CaregiverService
from carelink.features.auth.dependencies import get_current_user
from carelink.features.auth.models import User


router = APIRouter(prefix="/caregivers", tags=["Caregivers"])


# ============== Patient Endpoints ==============

@router.post("/invite", response_model=CaregiverLinkEnvelope, status_code=status.HTTP_201_CREATED)
async def invite_caregiver(
    request: InviteCaregiverRequest,
    current_user: User = Depends(get_current_user)
):
    """
    Invite a caregiver by email.

    - **email**: Caregiver's email (must not be your own)
    - **relationship**: Free text, defaults to "Family"
    - **name**: Display name used until the caregiver registers
    - **permissions**: Six flags, all enabled by default
    """
    link = await CaregiverService.invite(
        patient=current_user,
        email=request.email,
        relationship=request.relationship,
        name=request.name,
        permissions=request.permissions,
    )

    return CaregiverLinkEnvelope(
        link=CaregiverService.to_response(link),
        message="Invitation sent successfully.",
    )


@router.get("", response_model=CaregiverLinkListResponse)
async def list_my_caregivers(current_user: User = Depends(get_current_user)):
    """Get every caregiver the current user has invited, in any status."""
    links = await CaregiverService.list_caregivers_of(str(current_user.id))

    return CaregiverLinkListResponse(links=links, total=len(links))


@router.patch("/{link_id}/permissions", response_model=CaregiverLinkEnvelope)
async def update_caregiver_permissions(
    link_id: str,
    request: PermissionsUpdateRequest,
    current_user: User = Depends(get_current_user)
):
    """Change what one of your caregivers may see and receive."""
    link = await CaregiverService.update_permissions(link_id, str(current_user.id), request)

    return CaregiverLinkEnvelope(link=CaregiverService.to_response(link))


# ============== Caregiver Endpoints ==============

@router.get("/patients", response_model=CaregiverLinkListResponse)
async def list_my_patients(current_user: User = Depends(get_current_user)):
    """Get the patients the current user actively cares for."""
    links = await CaregiverService.list_patients_of(current_user)

    return CaregiverLinkListResponse(links=links, total=len(links))


@router.post("/{link_id}/accept", response_model=CaregiverLinkEnvelope)
async def accept_invitation(
    link_id: str,
    current_user: User = Depends(get_current_user)
):
    """Accept a pending invitation sent to the current user."""
    link = await CaregiverService.respond_to_invitation(link_id, current_user, accept=True)

    return CaregiverLinkEnvelope(
        link=CaregiverService.to_response(link),
        message="Invitation accepted.",
    )


@router.post("/{link_id}/reject", response_model=CaregiverLinkEnvelope)
async def reject_invitation(
    link_id: str,
    current_user: User = Depends(get_current_user)
):
    """Reject a pending invitation sent to the current user."""
    link = await CaregiverService.respond_to_invitation(link_id, current_user, accept=False)

    return CaregiverLinkEnvelope(
        link=CaregiverService.to_response(link),
        message="Invitation rejected.",
    )
