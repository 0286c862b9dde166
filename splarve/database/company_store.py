"""
Row access for companies, roles, grants, memberships, invitations, job posts and user profiles.

Every Supabase call goes through ``_execute`` so that SDK / PostgREST errors
surface as StoreError with the failing action logged.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from supabase import Client

from splarve.modules.auth.schemas import UserProfileResponse
from splarve.modules.companies.schemas import CompanyResponse, MembershipResponse
from splarve.modules.invitations.schemas import InvitationResponse, InvitationStatus
from splarve.modules.job_posts.schemas import JobPostResponse
from splarve.modules.roles.schemas import RoleResponse, SystemPermissionResponse

logger = logging.getLogger(__name__)

OPEN_INVITATION_STATUSES = [InvitationStatus.PENDING.value, InvitationStatus.PRE_ACCEPTED.value]


class StoreError(Exception):
    """Unexpected datastore failure. Never carries SDK details to API callers."""

    def __init__(self, action: str):
        super().__init__(f"Datastore failure while {action}")
        self.action = action


class CompanyStore:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"Supabase error while {action}: {e}")
            raise StoreError(action) from e

    @staticmethod
    def _first(result) -> Optional[dict]:
        return result.data[0] if result and result.data else None

    @staticmethod
    def _rpc_row(result) -> Optional[dict]:
        """RPCs return a bare object or a one-row set depending on their declaration"""
        data = result.data if result else None
        if isinstance(data, list):
            return data[0] if data else None
        return data or None

    # Companies

    def get_company(self, company_id: str) -> Optional[CompanyResponse]:
        result = self._execute(
            self.supabase.table("companies").select("*").eq("id", company_id).limit(1),
            f"fetching company {company_id}",
        )
        row = self._first(result)
        return CompanyResponse(**row) if row else None

    def get_company_by_handle(self, handle: str) -> Optional[CompanyResponse]:
        result = self._execute(
            self.supabase.table("companies").select("*").eq("handle", handle).limit(1),
            f"looking up company handle {handle}",
        )
        row = self._first(result)
        return CompanyResponse(**row) if row else None

    def create_company(self, data: dict, owner_id: str, roles: List[dict]) -> CompanyResponse:
        """Company row, its default roles with grants and the Owner membership in one transaction (create_company RPC)"""
        action = f"creating company {data.get('handle')}"
        result = self._execute(
            self.supabase.rpc("create_company", {
                "p_company": data,
                "p_owner_id": owner_id,
                "p_roles": roles
            }),
            action,
        )
        row = self._rpc_row(result)
        if not isinstance(row, dict):
            logger.error(f"Unexpected create_company response: {result.data!r}")
            raise StoreError(action)
        return CompanyResponse(**row)

    def list_company_ids(self) -> List[str]:
        result = self._execute(
            self.supabase.table("companies").select("id"),
            "listing companies",
        )
        return [row["id"] for row in result.data or []]

    # Roles and grants

    def get_role(self, company_id: str, role_id: str) -> Optional[RoleResponse]:
        result = self._execute(
            self.supabase.table("company_roles")
                .select("*")
                .eq("id", role_id)
                .eq("company_id", company_id)
                .limit(1),
            f"fetching role {role_id}",
        )
        row = self._first(result)
        return RoleResponse(**row) if row else None

    def get_role_by_name(self, company_id: str, name: str) -> Optional[RoleResponse]:
        result = self._execute(
            self.supabase.table("company_roles")
                .select("*")
                .eq("company_id", company_id)
                .eq("name", name)
                .limit(1),
            f"fetching role {name}",
        )
        row = self._first(result)
        return RoleResponse(**row) if row else None

    def list_roles(self, company_id: str) -> List[RoleResponse]:
        result = self._execute(
            self.supabase.table("company_roles")
                .select("*")
                .eq("company_id", company_id)
                .order("position", desc=True),
            f"listing roles of company {company_id}",
        )
        return [RoleResponse(**row) for row in result.data or []]

    def insert_role(self, company_id: str, name: str, color: Optional[str], position: int, is_default: bool = False) -> RoleResponse:
        result = self._execute(
            self.supabase.table("company_roles").insert({
                "company_id": company_id,
                "name": name,
                "color": color,
                "position": position,
                "is_default": is_default
            }),
            f"creating role {name}",
        )
        return RoleResponse(**result.data[0])

    def update_role(self, role_id: str, fields: dict) -> Optional[RoleResponse]:
        fields = {**fields, "updated_at": datetime.now(timezone.utc).isoformat()}
        result = self._execute(
            self.supabase.table("company_roles").update(fields).eq("id", role_id),
            f"updating role {role_id}",
        )
        row = self._first(result)
        return RoleResponse(**row) if row else None

    def get_role_permissions(self, role_id: str) -> Dict[str, bool]:
        result = self._execute(
            self.supabase.table("company_role_permissions")
                .select("permission, enabled")
                .eq("role_id", role_id),
            f"fetching grants of role {role_id}",
        )
        return {row["permission"]: bool(row["enabled"]) for row in result.data or []}

    def is_permission_enabled(self, role_id: str, permission: str) -> bool:
        result = self._execute(
            self.supabase.table("company_role_permissions")
                .select("enabled")
                .eq("role_id", role_id)
                .eq("permission", permission)
                .limit(1),
            f"checking {permission} on role {role_id}",
        )
        row = self._first(result)
        return bool(row and row.get("enabled"))

    def set_role_permissions(self, role_id: str, grants: Dict[str, bool]) -> None:
        if not grants:
            return
        rows = [
            {"role_id": role_id, "permission": permission, "enabled": enabled}
            for permission, enabled in grants.items()
        ]
        self._execute(
            self.supabase.table("company_role_permissions").upsert(rows, on_conflict="role_id,permission"),
            f"writing grants of role {role_id}",
        )

    def delete_role_with_transfer(self, role_id: str, transfer_to_role_id: str) -> dict:
        """Reassign members and delete the role in one transaction (delete_company_role RPC).

        Returns the RPC verdict ``{"success": bool, "message": str}``.
        """
        action = f"deleting role {role_id}"
        result = self._execute(
            self.supabase.rpc("delete_company_role", {
                "p_role_id": role_id,
                "p_transfer_to_role_id": transfer_to_role_id
            }),
            action,
        )
        verdict = self._rpc_row(result)
        if not isinstance(verdict, dict) or "success" not in verdict:
            logger.error(f"Unexpected delete_company_role response: {result.data!r}")
            raise StoreError(action)
        return {"success": bool(verdict["success"]), "message": verdict.get("message") or ""}

    def list_system_permissions(self) -> List[SystemPermissionResponse]:
        result = self._execute(
            self.supabase.table("system_permissions")
                .select("*")
                .order("category")
                .order("name"),
            "listing system permissions",
        )
        return [SystemPermissionResponse(**row) for row in result.data or []]

    def upsert_system_permissions(self, permissions: List[dict]) -> int:
        result = self._execute(
            self.supabase.table("system_permissions").upsert(permissions, on_conflict="name"),
            "seeding system permissions",
        )
        return len(result.data or [])

    # Memberships

    def get_membership(self, company_id: str, user_id: str) -> Optional[MembershipResponse]:
        result = self._execute(
            self.supabase.table("company_members")
                .select("company_id, user_id, role_id, joined_at")
                .eq("company_id", company_id)
                .eq("user_id", user_id)
                .limit(1),
            f"fetching membership of {user_id}",
        )
        row = self._first(result)
        return MembershipResponse(**row) if row else None

    def list_memberships(self, company_id: str) -> List[MembershipResponse]:
        result = self._execute(
            self.supabase.table("company_members")
                .select("company_id, user_id, role_id, joined_at")
                .eq("company_id", company_id)
                .order("joined_at", desc=True),
            f"listing members of company {company_id}",
        )
        return [MembershipResponse(**row) for row in result.data or []]

    def update_membership_role(self, company_id: str, user_id: str, role_id: str) -> int:
        result = self._execute(
            self.supabase.table("company_members")
                .update({"role_id": role_id})
                .eq("company_id", company_id)
                .eq("user_id", user_id),
            f"changing role of {user_id}",
        )
        return len(result.data or [])

    def delete_membership(self, company_id: str, user_id: str) -> int:
        result = self._execute(
            self.supabase.table("company_members")
                .delete()
                .eq("company_id", company_id)
                .eq("user_id", user_id),
            f"removing {user_id} from company {company_id}",
        )
        return len(result.data or [])

    def count_members_with_role(self, company_id: str, role_id: str) -> int:
        result = self._execute(
            self.supabase.table("company_members")
                .select("user_id", count="exact")
                .eq("company_id", company_id)
                .eq("role_id", role_id),
            f"counting members with role {role_id}",
        )
        return result.count if result.count is not None else len(result.data or [])

    # Invitations

    def get_invitation(self, invitation_id: str) -> Optional[InvitationResponse]:
        result = self._execute(
            self.supabase.table("company_invitations").select("*").eq("id", invitation_id).limit(1),
            f"fetching invitation {invitation_id}",
        )
        row = self._first(result)
        return InvitationResponse(**row) if row else None

    def find_open_invitation(self, company_id: str, email: str) -> Optional[InvitationResponse]:
        result = self._execute(
            self.supabase.table("company_invitations")
                .select("*")
                .eq("company_id", company_id)
                .eq("email", email)
                .in_("status", OPEN_INVITATION_STATUSES)
                .limit(1),
            f"looking up open invitation for company {company_id}",
        )
        row = self._first(result)
        return InvitationResponse(**row) if row else None

    def insert_invitation(self, data: dict) -> InvitationResponse:
        result = self._execute(
            self.supabase.table("company_invitations").insert(data),
            f"creating invitation for company {data.get('company_id')}",
        )
        return InvitationResponse(**result.data[0])

    def list_company_invitations(self, company_id: str) -> List[InvitationResponse]:
        result = self._execute(
            self.supabase.table("company_invitations")
                .select("*")
                .eq("company_id", company_id)
                .order("created_at", desc=True),
            f"listing invitations of company {company_id}",
        )
        return [InvitationResponse(**row) for row in result.data or []]

    def list_invitations_for_email(self, email: str, statuses: Iterable[str]) -> List[InvitationResponse]:
        result = self._execute(
            self.supabase.table("company_invitations")
                .select("*")
                .eq("email", email)
                .in_("status", list(statuses))
                .order("created_at", desc=True),
            "listing invitations for user",
        )
        return [InvitationResponse(**row) for row in result.data or []]

    def delete_invitation(self, invitation_id: str, statuses: Iterable[str]) -> int:
        """Conditional delete; 0 means another request already resolved it"""
        result = self._execute(
            self.supabase.table("company_invitations")
                .delete()
                .eq("id", invitation_id)
                .in_("status", list(statuses)),
            f"deleting invitation {invitation_id}",
        )
        return len(result.data or [])

    def accept_invitation(self, invitation_id: str, user_id: str) -> Optional[MembershipResponse]:
        """Claim an open invitation, add the membership and promote a personal account in one
        transaction (accept_company_invitation RPC). None when the invitation was already resolved."""
        result = self._execute(
            self.supabase.rpc("accept_company_invitation", {
                "p_invitation_id": invitation_id,
                "p_user_id": user_id
            }),
            f"accepting invitation {invitation_id}",
        )
        row = self._rpc_row(result)
        return MembershipResponse(**row) if row else None

    def update_invitation_status(self, invitation_id: str, from_statuses: Iterable[str], to_status: str) -> int:
        result = self._execute(
            self.supabase.table("company_invitations")
                .update({"status": to_status, "updated_at": datetime.now(timezone.utc).isoformat()})
                .eq("id", invitation_id)
                .in_("status", list(from_statuses)),
            f"marking invitation {invitation_id} {to_status}",
        )
        return len(result.data or [])

    # Job posts

    def list_job_posts(self, company_id: str, published: Optional[bool] = None) -> List[JobPostResponse]:
        query = self.supabase.table("job_posts").select("*").eq("company_id", company_id)
        if published is not None:
            query = query.eq("published", published)
        result = self._execute(
            query.order("created_at", desc=True),
            f"listing job posts of company {company_id}",
        )
        return [JobPostResponse(**row) for row in result.data or []]

    def get_job_post(self, company_id: str, job_post_id: str) -> Optional[JobPostResponse]:
        result = self._execute(
            self.supabase.table("job_posts")
                .select("*")
                .eq("id", job_post_id)
                .eq("company_id", company_id)
                .limit(1),
            f"fetching job post {job_post_id}",
        )
        row = self._first(result)
        return JobPostResponse(**row) if row else None

    def insert_job_post(self, data: dict) -> JobPostResponse:
        result = self._execute(
            self.supabase.table("job_posts").insert(data),
            f"creating job post for company {data.get('company_id')}",
        )
        return JobPostResponse(**result.data[0])

    def update_job_post(self, job_post_id: str, fields: dict) -> Optional[JobPostResponse]:
        fields = {**fields, "updated_at": datetime.now(timezone.utc).isoformat()}
        result = self._execute(
            self.supabase.table("job_posts").update(fields).eq("id", job_post_id),
            f"updating job post {job_post_id}",
        )
        row = self._first(result)
        return JobPostResponse(**row) if row else None

    def delete_job_post(self, job_post_id: str) -> int:
        result = self._execute(
            self.supabase.table("job_posts").delete().eq("id", job_post_id),
            f"deleting job post {job_post_id}",
        )
        return len(result.data or [])

    # User profiles

    def get_user_profile(self, user_id: str) -> Optional[UserProfileResponse]:
        result = self._execute(
            self.supabase.table("user_profiles")
                .select("id, email, full_name, user_type")
                .eq("id", user_id)
                .limit(1),
            f"fetching profile {user_id}",
        )
        row = self._first(result)
        return UserProfileResponse(**row) if row else None

    def find_user_profile_by_email(self, email: str) -> Optional[UserProfileResponse]:
        # user_profiles.email is stored lower-case; exact match, no pattern characters
        result = self._execute(
            self.supabase.table("user_profiles")
                .select("id, email, full_name, user_type")
                .eq("email", email.strip().lower())
                .limit(1),
            "looking up profile by email",
        )
        row = self._first(result)
        return UserProfileResponse(**row) if row else None

    def list_user_profiles(self, user_ids: List[str]) -> List[UserProfileResponse]:
        if not user_ids:
            return []
        result = self._execute(
            self.supabase.table("user_profiles")
                .select("id, email, full_name, user_type")
                .in_("id", user_ids),
            "listing member profiles",
        )
        return [UserProfileResponse(**row) for row in result.data or []]

