from enum import Enum
from pydantic import BaseModel, EmailStr
from typing import Optional, List
from datetime import datetime

from splarve.modules.companies.schemas import MembershipResponse


class InvitationStatus(str, Enum):
    PENDING = "pending"
    PRE_ACCEPTED = "pre_accepted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class InvitationAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class InvitationCreate(BaseModel):
    email: EmailStr
    role: str  # owner, admin, hr, social, member
    message: Optional[str] = None


class InvitationResponse(BaseModel):
    id: str
    company_id: str
    invited_by: Optional[str] = None
    email: str
    role_id: str
    status: InvitationStatus = InvitationStatus.PENDING
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    expires_at: datetime

    class Config:
        from_attributes = True

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class InvitationDetailResponse(InvitationResponse):
    role_name: Optional[str] = None
    company_name: Optional[str] = None
    company_handle: Optional[str] = None
    company_logo_url: Optional[str] = None


class AcceptedInvitationResponse(BaseModel):
    invitation_id: str
    membership: MembershipResponse
    role_name: str
    account_type_changed: bool = False


class InvitationCreatedResponse(BaseModel):
    invitation: InvitationResponse
    message: str
    warnings: List[str] = []


class InvitationResolutionResponse(BaseModel):
    success: bool = True
    message: str
    accepted: Optional[AcceptedInvitationResponse] = None
    pre_accepted: bool = False
