import logging
from typing import Dict, List, Optional

from splarve.config.permissions_config import PERMISSION_CATALOG
from splarve.core.authority import RoleAuthority
from splarve.core.results import ErrorKind, OperationResult
from splarve.database.company_store import CompanyStore
from splarve.modules.roles.schemas import (
    RoleCreate, RoleResponse, RoleUpdate, RoleWithPermissionsResponse,
    SystemPermissionResponse, SystemPermissionsResponse, UserPermissionsResponse
)

logger = logging.getLogger(__name__)

KNOWN_PERMISSIONS = {p["name"] for p in PERMISSION_CATALOG}


class RoleService:
    def __init__(self, store: CompanyStore, authority: RoleAuthority):
        self.store = store
        self.authority = authority

    def _with_permissions(self, role: RoleResponse) -> RoleWithPermissionsResponse:
        return RoleWithPermissionsResponse(
            **role.model_dump(),
            permissions=self.store.get_role_permissions(role.id)
        )

    def _actor_role(self, company_id: str, user_id: str) -> Optional[RoleResponse]:
        membership = self.store.get_membership(company_id, user_id)
        if membership is None:
            return None
        return self.store.get_role(company_id, membership.role_id)

    @staticmethod
    def _unknown_permissions(permissions: Dict[str, bool]) -> List[str]:
        return sorted(name for name in permissions if name not in KNOWN_PERMISSIONS)

    def list_roles(self, company_id: str, user_id: str) -> OperationResult:
        """Roles of the company, most senior first, each with its grant map"""
        if not self.authority.has_permission(user_id, company_id, "view_members"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to view roles")
        roles = self.store.list_roles(company_id)
        return OperationResult.ok(data=[self._with_permissions(role) for role in roles])

    def get_role(self, company_id: str, role_id: str, user_id: str) -> OperationResult:
        if not self.authority.has_permission(user_id, company_id, "view_members"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to view roles")
        role = self.store.get_role(company_id, role_id)
        if role is None:
            return OperationResult.fail(ErrorKind.ROLE_NOT_FOUND, "Role not found")
        return OperationResult.ok(data=self._with_permissions(role))

    def create_role(self, company_id: str, role_data: RoleCreate, user_id: str) -> OperationResult:
        """Create a custom role below the creator's own rank"""
        if not self.authority.has_permission(user_id, company_id, "manage_roles"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to manage roles")

        unknown = self._unknown_permissions(role_data.permissions)
        if unknown:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, f"Unknown permissions: {', '.join(unknown)}")

        actor_role = self._actor_role(company_id, user_id)
        if actor_role is None or role_data.position >= actor_role.position:
            return OperationResult.fail(
                ErrorKind.FORBIDDEN, "You cannot create a role equal to or higher than your own"
            )

        name = role_data.name.strip()
        if self.store.get_role_by_name(company_id, name) is not None:
            return OperationResult.fail(ErrorKind.CONFLICT, f"A role named {name} already exists")

        role = self.store.insert_role(company_id, name, role_data.color, role_data.position)
        # Grant map covers the whole catalog; anything not requested is disabled
        grants = {permission: False for permission in KNOWN_PERMISSIONS}
        grants.update(role_data.permissions)
        self.store.set_role_permissions(role.id, grants)

        logger.info(f"User {user_id} created role {role.name} ({role.id}) in {company_id}")
        return OperationResult.ok(data=self._with_permissions(role), message="Role created successfully")

    def update_role(self, company_id: str, role_id: str, role_data: RoleUpdate, user_id: str) -> OperationResult:
        if not self.authority.has_permission(user_id, company_id, "manage_roles"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to manage roles")

        role = self.store.get_role(company_id, role_id)
        if role is None:
            return OperationResult.fail(ErrorKind.ROLE_NOT_FOUND, "Role not found")

        actor_role = self._actor_role(company_id, user_id)
        if actor_role is None or not self.authority.can_assign_role(actor_role, role):
            return OperationResult.fail(
                ErrorKind.FORBIDDEN, "You cannot edit a role equal to or higher than your own"
            )

        update_data = {}
        if role_data.name is not None and role_data.name.strip() != role.name:
            if role.is_default:
                return OperationResult.fail(ErrorKind.FORBIDDEN, f"The default {role.name} role cannot be renamed")
            existing = self.store.get_role_by_name(company_id, role_data.name.strip())
            if existing is not None and existing.id != role.id:
                return OperationResult.fail(ErrorKind.CONFLICT, f"A role named {role_data.name.strip()} already exists")
            update_data["name"] = role_data.name.strip()
        if role_data.color is not None:
            update_data["color"] = role_data.color
        if role_data.position is not None:
            if role_data.position >= actor_role.position:
                return OperationResult.fail(
                    ErrorKind.FORBIDDEN, "You cannot move a role to or above your own"
                )
            update_data["position"] = role_data.position

        if role_data.permissions is not None:
            unknown = self._unknown_permissions(role_data.permissions)
            if unknown:
                return OperationResult.fail(ErrorKind.VALIDATION_ERROR, f"Unknown permissions: {', '.join(unknown)}")

        if update_data:
            role = self.store.update_role(role.id, update_data) or role
        if role_data.permissions:
            self.store.set_role_permissions(role.id, role_data.permissions)

        logger.info(f"User {user_id} updated role {role.name} ({role.id}) in {company_id}")
        return OperationResult.ok(data=self._with_permissions(role), message="Role updated successfully")

    def get_system_permissions(self, company_id: str, user_id: str) -> OperationResult:
        """Permission catalog grouped by category, for the role editor"""
        if not self.authority.has_permission(user_id, company_id, "manage_roles"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to manage roles")

        grouped: Dict[str, List[SystemPermissionResponse]] = {}
        for permission in self.store.list_system_permissions():
            grouped.setdefault(permission.category, []).append(permission)
        return OperationResult.ok(data=SystemPermissionsResponse(permissions=grouped))

    def get_user_permissions(self, company_id: str, user_id: str) -> OperationResult:
        if self.store.get_membership(company_id, user_id) is None:
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You are not a member of this company")
        return OperationResult.ok(data=UserPermissionsResponse(
            company_id=company_id,
            permissions=self.authority.get_user_permissions(user_id, company_id)
        ))
