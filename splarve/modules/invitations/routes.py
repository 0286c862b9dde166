from fastapi import APIRouter, Depends
from splarve.core.authority import RoleAuthority
from splarve.core.dependencies import (
    get_authority, get_company_store, get_current_user_id, get_optional_user, require_company_permission
)
from splarve.core.results import unwrap
from splarve.database.company_store import CompanyStore
from splarve.modules.invitations.schemas import (
    InvitationAction, InvitationCreate, InvitationCreatedResponse,
    InvitationDetailResponse, InvitationResolutionResponse
)
from splarve.modules.invitations.service import InvitationService
from typing import Dict, List, Optional

router = APIRouter(tags=["invitations"])


def get_invitation_service(
    store: CompanyStore = Depends(get_company_store),
    authority: RoleAuthority = Depends(get_authority)
) -> InvitationService:
    return InvitationService(store, authority)


# Company side
@router.get("/companies/{company_id}/invitations", response_model=List[InvitationDetailResponse])
async def list_company_invitations(
    company_id: str,
    user_data: Dict = Depends(require_company_permission("invite_users")),
    service: InvitationService = Depends(get_invitation_service)
):
    """List invitations sent by the company"""
    return unwrap(service.list_company_invitations(company_id, user_data["id"]))


@router.post("/companies/{company_id}/invitations", response_model=InvitationCreatedResponse, status_code=201)
async def create_invitation(
    company_id: str,
    invitation_data: InvitationCreate,
    user_data: Dict = Depends(get_current_user_id),
    authority: RoleAuthority = Depends(get_authority)
):
    """Invite an email address to join the company with a given role"""
    result = authority.create_invitation(
        company_id,
        user_data["id"],
        invitation_data.email,
        invitation_data.role,
        invitation_data.message
    )
    invitation = unwrap(result)
    return InvitationCreatedResponse(invitation=invitation, message=result.message, warnings=result.warnings)


@router.delete("/companies/{company_id}/invitations/{invitation_id}", response_model=InvitationResolutionResponse)
async def cancel_invitation(
    company_id: str,
    invitation_id: str,
    user_data: Dict = Depends(require_company_permission("invite_users")),
    service: InvitationService = Depends(get_invitation_service)
):
    """Cancel an open invitation"""
    result = service.cancel_invitation(company_id, invitation_id, user_data["id"])
    unwrap(result)
    return InvitationResolutionResponse(message=result.message)


# Invitee side
@router.get("/invitations", response_model=List[InvitationDetailResponse])
async def list_my_invitations(
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    """Pending invitations addressed to the current user"""
    return unwrap(service.list_my_invitations(user_data["id"]))


@router.post("/invitations/{invitation_id}/accept", response_model=InvitationResolutionResponse)
async def accept_invitation(
    invitation_id: str,
    user_data: Optional[Dict] = Depends(get_optional_user),
    authority: RoleAuthority = Depends(get_authority)
):
    """Accept an invitation. Without a session the invitation is pre-accepted and joined at first sign-in."""
    acting_user_id = user_data["id"] if user_data else None
    result = authority.resolve_invitation(invitation_id, InvitationAction.ACCEPT, acting_user_id)
    data = unwrap(result)
    if acting_user_id is None:
        return InvitationResolutionResponse(message=result.message, pre_accepted=True)
    return InvitationResolutionResponse(message=result.message, accepted=data)


@router.post("/invitations/{invitation_id}/reject", response_model=InvitationResolutionResponse)
async def reject_invitation(
    invitation_id: str,
    user_data: Optional[Dict] = Depends(get_optional_user),
    authority: RoleAuthority = Depends(get_authority)
):
    """Reject an invitation"""
    acting_user_id = user_data["id"] if user_data else None
    result = authority.resolve_invitation(invitation_id, InvitationAction.REJECT, acting_user_id)
    unwrap(result)
    return InvitationResolutionResponse(message=result.message)
