from fastapi import APIRouter, Depends
from splarve.core.authority import RoleAuthority
from splarve.core.dependencies import get_authority, get_company_store, get_current_user_id, require_company_permission
from splarve.core.results import unwrap
from splarve.database.company_store import CompanyStore
from splarve.modules.roles.schemas import (
    RoleCreate, RoleUpdate, RoleWithPermissionsResponse, RoleDelete, RoleDeleteResponse,
    SystemPermissionsResponse, UserPermissionsResponse
)
from splarve.modules.roles.service import RoleService
from typing import Dict, List

router = APIRouter(prefix="/companies/{company_id}", tags=["roles"])


def get_role_service(
    store: CompanyStore = Depends(get_company_store),
    authority: RoleAuthority = Depends(get_authority)
) -> RoleService:
    return RoleService(store, authority)


@router.get("/roles", response_model=List[RoleWithPermissionsResponse])
async def list_roles(
    company_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service)
):
    """List company roles with their permissions"""
    return unwrap(service.list_roles(company_id, user_data["id"]))


@router.post("/roles", response_model=RoleWithPermissionsResponse, status_code=201)
async def create_role(
    company_id: str,
    role_data: RoleCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service)
):
    """Create a custom role"""
    return unwrap(service.create_role(company_id, role_data, user_data["id"]))


@router.get("/roles/{role_id}", response_model=RoleWithPermissionsResponse)
async def get_role(
    company_id: str,
    role_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service)
):
    return unwrap(service.get_role(company_id, role_id, user_data["id"]))


@router.put("/roles/{role_id}", response_model=RoleWithPermissionsResponse)
async def update_role(
    company_id: str,
    role_id: str,
    role_data: RoleUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service)
):
    """Update role attributes and grants"""
    return unwrap(service.update_role(company_id, role_id, role_data, user_data["id"]))


@router.delete("/roles/{role_id}", response_model=RoleDeleteResponse)
async def delete_role(
    company_id: str,
    role_id: str,
    role_delete: RoleDelete,
    user_data: Dict = Depends(get_current_user_id),
    authority: RoleAuthority = Depends(get_authority)
):
    """Delete a role, moving its members to transfer_to_role_id"""
    return unwrap(authority.delete_role(
        company_id, role_id, role_delete.transfer_to_role_id, acting_user_id=user_data["id"]
    ))


@router.get("/system-permissions", response_model=SystemPermissionsResponse)
async def get_system_permissions(
    company_id: str,
    user_data: Dict = Depends(require_company_permission("manage_roles")),
    service: RoleService = Depends(get_role_service)
):
    """Permission catalog grouped by category"""
    return unwrap(service.get_system_permissions(company_id, user_data["id"]))


@router.get("/user-permissions", response_model=UserPermissionsResponse)
async def get_user_permissions(
    company_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service)
):
    """Grant map of the caller's role in this company"""
    return unwrap(service.get_user_permissions(company_id, user_data["id"]))
