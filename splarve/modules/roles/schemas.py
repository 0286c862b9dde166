from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime


class RoleResponse(BaseModel):
    id: str
    company_id: str
    name: str
    color: Optional[str] = None
    position: int = 0
    is_default: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoleWithPermissionsResponse(RoleResponse):
    permissions: Dict[str, bool] = Field(default_factory=dict)


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    color: Optional[str] = None
    position: int = Field(default=0, ge=0)
    permissions: Dict[str, bool] = Field(default_factory=dict)


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=64)
    color: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)
    permissions: Optional[Dict[str, bool]] = None


class RoleDelete(BaseModel):
    transfer_to_role_id: str


class RoleDeleteResponse(BaseModel):
    deleted_role_id: str
    transfer_to_role_id: str
    transferred_members: int


class SystemPermissionResponse(BaseModel):
    name: str
    category: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class SystemPermissionsResponse(BaseModel):
    permissions: Dict[str, List[SystemPermissionResponse]]


class UserPermissionsResponse(BaseModel):
    company_id: str
    permissions: Dict[str, bool]
