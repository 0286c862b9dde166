from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    handle: str = Field(min_length=2, max_length=40, pattern=r"^[a-z0-9][a-z0-9_-]*$")
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


class CompanyResponse(BaseModel):
    id: str
    name: str
    handle: str
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MembershipResponse(BaseModel):
    company_id: str
    user_id: str
    role_id: str
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    user_id: str
    role_id: str
    role_name: str = "Unknown"
    role_color: Optional[str] = None
    role_position: int = 0
    is_default_role: bool = False
    full_name: Optional[str] = None
    email: Optional[str] = None
    joined_at: Optional[datetime] = None


class MemberPermissionFlags(BaseModel):
    can_change_roles: bool = False
    can_change_regular_roles: bool = False
    can_remove_members: bool = False


class MembersListResponse(BaseModel):
    members: List[MemberResponse]
    user_permissions: MemberPermissionFlags


class MemberRoleChange(BaseModel):
    role_id: str


class MemberRoleChangeResponse(BaseModel):
    user_id: str
    role_id: str
    role_name: str
    message: str
