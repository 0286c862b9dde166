from fastapi import APIRouter, Depends
from splarve.core.authority import RoleAuthority
from splarve.core.dependencies import get_authority, get_company_store, get_current_user_id
from splarve.core.results import unwrap
from splarve.database.company_store import CompanyStore
from splarve.modules.companies.schemas import (
    CompanyCreate, CompanyResponse, MembersListResponse,
    MemberRoleChange, MemberRoleChangeResponse
)
from splarve.modules.companies.service import CompanyService
from typing import Dict

router = APIRouter(prefix="/companies", tags=["companies"])


def get_company_service(
    store: CompanyStore = Depends(get_company_store),
    authority: RoleAuthority = Depends(get_authority)
) -> CompanyService:
    return CompanyService(store, authority)


@router.post("", response_model=CompanyResponse, status_code=201)
async def create_company(
    company_data: CompanyCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: CompanyService = Depends(get_company_service)
):
    """Create a company; the creator becomes its Owner"""
    return unwrap(service.create_company(company_data, user_data["id"]))


@router.get("/lookup/{handle}", response_model=CompanyResponse)
async def lookup_company(
    handle: str,
    service: CompanyService = Depends(get_company_service)
):
    """Resolve a public company handle"""
    return unwrap(service.lookup_by_handle(handle))


@router.get("/{company_id}/members", response_model=MembersListResponse)
async def list_members(
    company_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: CompanyService = Depends(get_company_service)
):
    """List company members with what the caller may do to them"""
    return unwrap(service.list_members(company_id, user_data["id"]))


@router.delete("/{company_id}/members/{user_id}")
async def remove_member(
    company_id: str,
    user_id: str,
    user_data: Dict = Depends(get_current_user_id),
    authority: RoleAuthority = Depends(get_authority)
):
    """Remove a member from the company"""
    result = authority.remove_member(company_id, user_id, user_data["id"])
    unwrap(result)
    return {"success": True, "message": result.message}


@router.put("/{company_id}/members/{user_id}/role", response_model=MemberRoleChangeResponse)
async def change_member_role(
    company_id: str,
    user_id: str,
    role_change: MemberRoleChange,
    user_data: Dict = Depends(get_current_user_id),
    authority: RoleAuthority = Depends(get_authority)
):
    """Assign another company role to a member"""
    return unwrap(authority.change_member_role(user_data["id"], company_id, user_id, role_change.role_id))
