import logging
from typing import Optional

from splarve.config.permissions_config import DEFAULT_ROLES, get_default_role_grants
from splarve.core.authority import RoleAuthority
from splarve.core.results import ErrorKind, OperationResult
from splarve.database.company_store import CompanyStore
from splarve.modules.companies.schemas import (
    CompanyCreate, CompanyResponse, MemberPermissionFlags, MemberResponse, MembersListResponse
)

logger = logging.getLogger(__name__)


class CompanyService:
    def __init__(self, store: CompanyStore, authority: RoleAuthority):
        self.store = store
        self.authority = authority

    def create_company(self, company_data: CompanyCreate, user_id: str) -> OperationResult:
        """Create a company, seed its default roles and make the creator its Owner"""
        handle = company_data.handle.lower()
        if self.store.get_company_by_handle(handle) is not None:
            return OperationResult.fail(ErrorKind.CONFLICT, f"The handle '{handle}' is already taken")

        grants = get_default_role_grants()
        roles = [
            {
                "name": default_role["name"],
                "color": default_role["color"],
                "position": default_role["position"],
                "is_default": True,
                "permissions": grants[default_role["name"]]
            }
            for default_role in DEFAULT_ROLES
        ]

        # All or nothing: a company never exists without its roles and Owner
        company = self.store.create_company({
            "name": company_data.name,
            "handle": handle,
            "description": company_data.description,
            "website": company_data.website,
            "logo_url": company_data.logo_url,
            "created_by": user_id
        }, user_id, roles)
        logger.info(f"User {user_id} created company {company.handle} ({company.id})")
        return OperationResult.ok(data=company, message="Company created successfully")

    def lookup_by_handle(self, handle: str) -> OperationResult:
        company = self.store.get_company_by_handle(handle.lower())
        if company is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Company not found")
        return OperationResult.ok(data=company)

    def get_company(self, company_id: str) -> Optional[CompanyResponse]:
        return self.store.get_company(company_id)

    def list_members(self, company_id: str, user_id: str) -> OperationResult:
        """Members with their role and profile, plus what the caller may do to them"""
        if not self.authority.has_permission(user_id, company_id, "view_members"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to view members")

        memberships = self.store.list_memberships(company_id)
        roles = {role.id: role for role in self.store.list_roles(company_id)}
        profiles = {
            profile.id: profile
            for profile in self.store.list_user_profiles([m.user_id for m in memberships])
        }

        members = []
        for membership in memberships:
            role = roles.get(membership.role_id)
            profile = profiles.get(membership.user_id)
            members.append(MemberResponse(
                user_id=membership.user_id,
                role_id=membership.role_id,
                role_name=role.name if role else "Unknown",
                role_color=role.color if role else None,
                role_position=role.position if role else 0,
                is_default_role=role.is_default if role else False,
                full_name=profile.full_name if profile else None,
                email=profile.email if profile else None,
                joined_at=membership.joined_at
            ))
        members.sort(key=lambda m: m.role_position, reverse=True)

        flags = MemberPermissionFlags(
            can_change_roles=self.authority.has_permission(user_id, company_id, "change_user_roles"),
            can_change_regular_roles=self.authority.has_permission(user_id, company_id, "change_regular_user_roles"),
            can_remove_members=self.authority.has_permission(user_id, company_id, "remove_members")
        )
        return OperationResult.ok(data=MembersListResponse(members=members, user_permissions=flags))
