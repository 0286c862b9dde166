import copy
import itertools
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from splarve.database.company_store import OPEN_INVITATION_STATUSES, StoreError
from splarve.modules.auth.schemas import AccountType, UserProfileResponse
from splarve.modules.companies.schemas import CompanyResponse, MembershipResponse
from splarve.modules.invitations.schemas import InvitationResponse, InvitationStatus
from splarve.modules.job_posts.schemas import JobPostResponse
from splarve.modules.roles.schemas import RoleResponse, SystemPermissionResponse


class FixedClock:
    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeCompanyStore:
    """In-memory stand-in for CompanyStore with the same method surface"""

    def __init__(self):
        self.companies: Dict[str, CompanyResponse] = {}
        self.roles: Dict[str, RoleResponse] = {}
        self.grants: Dict[str, Dict[str, bool]] = {}
        self.memberships: Dict[tuple, MembershipResponse] = {}
        self.invitations: Dict[str, InvitationResponse] = {}
        self.profiles: Dict[str, UserProfileResponse] = {}
        self.system_permissions: Dict[str, SystemPermissionResponse] = {}
        self.job_posts: Dict[str, JobPostResponse] = {}
        self._ids = itertools.count(1)

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    @contextmanager
    def _transaction(self):
        """Roll every table back if the block raises, like a database function would"""
        tables = ("companies", "roles", "grants", "memberships", "invitations", "profiles")
        snapshot = {name: copy.deepcopy(getattr(self, name)) for name in tables}
        try:
            yield
        except Exception:
            for name, rows in snapshot.items():
                setattr(self, name, rows)
            raise

    # Companies

    def get_company(self, company_id):
        return self.companies.get(company_id)

    def get_company_by_handle(self, handle):
        return next((c for c in self.companies.values() if c.handle == handle), None)

    def create_company(self, data, owner_id, roles):
        with self._transaction():
            if self.get_company_by_handle(data["handle"]) is not None:
                raise StoreError(f"creating company {data['handle']}")
            company = CompanyResponse(id=self._new_id("company"), **data)
            self.companies[company.id] = company
            owner_role = None
            for entry in roles:
                role = self.insert_role(
                    company.id, entry["name"], entry["color"], entry["position"], entry["is_default"]
                )
                self.set_role_permissions(role.id, entry["permissions"])
                if owner_role is None or role.position > owner_role.position:
                    owner_role = role
            self.insert_membership(company.id, owner_id, owner_role.id)
        return company

    def list_company_ids(self):
        return list(self.companies)

    # Roles and grants

    def get_role(self, company_id, role_id):
        role = self.roles.get(role_id)
        return role if role is not None and role.company_id == company_id else None

    def get_role_by_name(self, company_id, name):
        return next(
            (r for r in self.roles.values() if r.company_id == company_id and r.name == name),
            None,
        )

    def list_roles(self, company_id):
        roles = [r for r in self.roles.values() if r.company_id == company_id]
        return sorted(roles, key=lambda r: r.position, reverse=True)

    def insert_role(self, company_id, name, color, position, is_default=False):
        role = RoleResponse(
            id=self._new_id("role"),
            company_id=company_id,
            name=name,
            color=color,
            position=position,
            is_default=is_default,
        )
        self.roles[role.id] = role
        return role

    def update_role(self, role_id, fields):
        if role_id not in self.roles:
            return None
        self.roles[role_id] = self.roles[role_id].model_copy(update=fields)
        return self.roles[role_id]

    def get_role_permissions(self, role_id):
        return dict(self.grants.get(role_id, {}))

    def is_permission_enabled(self, role_id, permission):
        return self.grants.get(role_id, {}).get(permission, False)

    def set_role_permissions(self, role_id, grants):
        self.grants.setdefault(role_id, {}).update(grants)

    def delete_role_with_transfer(self, role_id, transfer_to_role_id):
        role = self.roles.get(role_id)
        target = self.roles.get(transfer_to_role_id)
        if role is None or target is None or role.company_id != target.company_id:
            return {"success": False, "message": "Role not found"}
        for key, membership in list(self.memberships.items()):
            if membership.role_id == role_id:
                self.memberships[key] = membership.model_copy(update={"role_id": transfer_to_role_id})
        del self.roles[role_id]
        self.grants.pop(role_id, None)
        return {"success": True, "message": "Role deleted successfully"}

    def list_system_permissions(self):
        return sorted(self.system_permissions.values(), key=lambda p: (p.category, p.name))

    def upsert_system_permissions(self, permissions):
        for permission in permissions:
            self.system_permissions[permission["name"]] = SystemPermissionResponse(**permission)
        return len(permissions)

    # Memberships

    def get_membership(self, company_id, user_id):
        return self.memberships.get((company_id, user_id))

    def list_memberships(self, company_id):
        return [m for (cid, _), m in self.memberships.items() if cid == company_id]

    def insert_membership(self, company_id, user_id, role_id):
        membership = MembershipResponse(
            company_id=company_id,
            user_id=user_id,
            role_id=role_id,
            joined_at=datetime.now(timezone.utc),
        )
        self.memberships[(company_id, user_id)] = membership
        return membership

    def update_membership_role(self, company_id, user_id, role_id):
        key = (company_id, user_id)
        if key not in self.memberships:
            return 0
        self.memberships[key] = self.memberships[key].model_copy(update={"role_id": role_id})
        return 1

    def delete_membership(self, company_id, user_id):
        return 1 if self.memberships.pop((company_id, user_id), None) else 0

    def count_members_with_role(self, company_id, role_id):
        return sum(1 for m in self.list_memberships(company_id) if m.role_id == role_id)

    # Invitations

    def get_invitation(self, invitation_id):
        return self.invitations.get(invitation_id)

    def find_open_invitation(self, company_id, email):
        return next(
            (
                i for i in self.invitations.values()
                if i.company_id == company_id
                and i.email == email
                and i.status in (InvitationStatus.PENDING, InvitationStatus.PRE_ACCEPTED)
            ),
            None,
        )

    def insert_invitation(self, data):
        invitation = InvitationResponse(id=self._new_id("invitation"), **data)
        self.invitations[invitation.id] = invitation
        return invitation

    def list_company_invitations(self, company_id):
        return [i for i in self.invitations.values() if i.company_id == company_id]

    def list_invitations_for_email(self, email, statuses: Iterable[str]):
        statuses = list(statuses)
        return [
            i for i in self.invitations.values()
            if i.email == email and i.status.value in statuses
        ]

    def delete_invitation(self, invitation_id, statuses):
        invitation = self.invitations.get(invitation_id)
        if invitation is None or invitation.status.value not in list(statuses):
            return 0
        del self.invitations[invitation_id]
        return 1

    def accept_invitation(self, invitation_id, user_id):
        with self._transaction():
            invitation = self.invitations.get(invitation_id)
            if self.delete_invitation(invitation_id, OPEN_INVITATION_STATUSES) == 0:
                return None
            membership = self.insert_membership(invitation.company_id, user_id, invitation.role_id)
            profile = self.profiles.get(user_id)
            if profile is not None and profile.user_type == AccountType.PERSONAL:
                self.set_user_type(user_id, AccountType.COMPANY.value)
        return membership

    def update_invitation_status(self, invitation_id, from_statuses, to_status):
        invitation = self.invitations.get(invitation_id)
        if invitation is None or invitation.status.value not in list(from_statuses):
            return 0
        self.invitations[invitation_id] = invitation.model_copy(
            update={"status": InvitationStatus(to_status)}
        )
        return 1

    # Job posts

    def list_job_posts(self, company_id, published=None):
        posts = [
            p for p in self.job_posts.values()
            if p.company_id == company_id and (published is None or p.published == published)
        ]
        return list(reversed(posts))

    def get_job_post(self, company_id, job_post_id):
        post = self.job_posts.get(job_post_id)
        return post if post is not None and post.company_id == company_id else None

    def insert_job_post(self, data):
        post = JobPostResponse(id=self._new_id("job"), **data)
        self.job_posts[post.id] = post
        return post

    def update_job_post(self, job_post_id, fields):
        if job_post_id not in self.job_posts:
            return None
        self.job_posts[job_post_id] = JobPostResponse(**{**self.job_posts[job_post_id].model_dump(), **fields})
        return self.job_posts[job_post_id]

    def delete_job_post(self, job_post_id):
        return 1 if self.job_posts.pop(job_post_id, None) else 0

    # User profiles

    def add_user(self, user_id, email, user_type=AccountType.PERSONAL, full_name=None):
        profile = UserProfileResponse(id=user_id, email=email, full_name=full_name, user_type=user_type)
        self.profiles[user_id] = profile
        return profile

    def get_user_profile(self, user_id):
        return self.profiles.get(user_id)

    def find_user_profile_by_email(self, email):
        email = email.strip().lower()
        return next((p for p in self.profiles.values() if p.email == email), None)

    def list_user_profiles(self, user_ids: List[str]):
        return [self.profiles[uid] for uid in user_ids if uid in self.profiles]

    def set_user_type(self, user_id, user_type):
        if user_id not in self.profiles:
            return 0
        self.profiles[user_id] = self.profiles[user_id].model_copy(
            update={"user_type": AccountType(user_type)}
        )
        return 1


class FakeEmailService:
    def __init__(self, succeed: bool = True, error: Optional[Exception] = None):
        self.succeed = succeed
        self.error = error
        self.invitations: List[dict] = []
        self.welcomes: List[dict] = []

    def send_invitation_email(self, **kwargs) -> bool:
        if self.error is not None:
            raise self.error
        self.invitations.append(kwargs)
        return self.succeed

    def send_welcome_email(self, user_name, user_email, account_type) -> bool:
        if self.error is not None:
            raise self.error
        self.welcomes.append({"user_name": user_name, "user_email": user_email, "account_type": account_type})
        return self.succeed


class BrokenChecker:
    """Permission oracle whose datastore is down"""

    def check(self, user_id, company_id, permission):
        raise StoreError(f"checking {permission}")
