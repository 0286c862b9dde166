"""
Company role-based access control.

RoleAuthority answers "can user U perform action A in company C" and runs the
guarded mutations on memberships, roles and invitations. Roles are ranked by
their integer ``position`` only; the legacy owner/admin/hr/social/member
identifiers resolve to the positions of the seeded default roles.

Every mutation returns an OperationResult. Only StoreError escapes.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Union

from splarve.config.permissions_config import (
    LEGACY_ROLE_NAMES,
    LEGACY_ROLE_RANKS,
    OWNER_ROLE_NAME,
    PROTECTED_ROLE_NAMES,
)
from splarve.config.settings import Settings, settings as default_settings
from splarve.core.results import ErrorKind, OperationResult
from splarve.database.company_store import OPEN_INVITATION_STATUSES, CompanyStore, StoreError
from splarve.modules.auth.schemas import AccountType, UserProfileResponse
from splarve.modules.companies.schemas import MemberRoleChangeResponse
from splarve.modules.invitations.schemas import (
    AcceptedInvitationResponse,
    InvitationAction,
    InvitationResponse,
    InvitationStatus,
)
from splarve.modules.notifications.email import EmailService
from splarve.modules.roles.schemas import RoleDeleteResponse, RoleResponse

logger = logging.getLogger(__name__)

RoleLike = Union[RoleResponse, str]


def role_rank(role: RoleLike) -> Optional[int]:
    """Rank of a role row (its position) or of a legacy identifier; None if unknown"""
    if isinstance(role, RoleResponse):
        return role.position
    if isinstance(role, str):
        return LEGACY_ROLE_RANKS.get(role.strip().lower())
    return None


def can_assign_role(acting_role: RoleLike, target_role: RoleLike) -> bool:
    """A role may only assign roles strictly below its own rank."""
    acting_rank = role_rank(acting_role)
    target_rank = role_rank(target_role)
    if acting_rank is None or target_rank is None:
        return False
    return acting_rank > target_rank


def is_owner_role(role: RoleResponse) -> bool:
    return role.is_default and role.name.lower() == OWNER_ROLE_NAME.lower()


def is_protected_role(role: RoleResponse) -> bool:
    return role.name.lower() in PROTECTED_ROLE_NAMES


def _same_email(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


class MembershipPermissionChecker:
    """Default permission oracle: membership -> role -> enabled grant (default deny)"""

    def __init__(self, store: CompanyStore):
        self.store = store

    def check(self, user_id: str, company_id: str, permission: str) -> bool:
        membership = self.store.get_membership(company_id, user_id)
        if membership is None:
            return False
        return self.store.is_permission_enabled(membership.role_id, permission)


class RoleAuthority:
    def __init__(
        self,
        store: CompanyStore,
        checker=None,
        email_service: Optional[EmailService] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.checker = checker or MembershipPermissionChecker(store)
        self.email_service = email_service
        self.settings = settings or default_settings
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # Decisions

    def has_permission(self, user_id: str, company_id: str, permission: str) -> bool:
        if not user_id or not company_id or not permission:
            return False
        try:
            return bool(self.checker.check(user_id, company_id, permission))
        except StoreError as e:
            logger.error(f"Permission check '{permission}' for {user_id} in {company_id} failed closed: {e}")
            return False

    def can_assign_role(self, acting_role: RoleLike, target_role: RoleLike) -> bool:
        return can_assign_role(acting_role, target_role)

    def get_user_permissions(self, user_id: str, company_id: str) -> Dict[str, bool]:
        membership = self.store.get_membership(company_id, user_id)
        if membership is None:
            return {}
        return self.store.get_role_permissions(membership.role_id)

    def can_manage_job_post(self, user_id: str, company_id: str, author_id: Optional[str]) -> bool:
        if self.has_permission(user_id, company_id, "manage_all_job_posts"):
            return True
        return bool(author_id) and author_id == user_id and self.has_permission(
            user_id, company_id, "manage_own_job_posts"
        )

    def _is_sole_owner(self, company_id: str, role: Optional[RoleResponse]) -> bool:
        if role is None or not is_owner_role(role):
            return False
        return self.store.count_members_with_role(company_id, role.id) <= 1

    # Memberships

    def change_member_role(
        self, acting_user_id: str, company_id: str, target_user_id: str, new_role_id: str
    ) -> OperationResult:
        new_role = self.store.get_role(company_id, new_role_id)
        if new_role is None:
            return OperationResult.fail(ErrorKind.ROLE_NOT_FOUND, "Role not found in this company")

        membership = self.store.get_membership(company_id, target_user_id)
        if membership is None:
            return OperationResult.fail(ErrorKind.MEMBER_NOT_FOUND, "Member not found in this company")

        if target_user_id == acting_user_id and not self.has_permission(acting_user_id, company_id, "manage_all_users"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You cannot change your own role")

        can_change_any = self.has_permission(acting_user_id, company_id, "change_user_roles")
        if not can_change_any and not self.has_permission(acting_user_id, company_id, "change_regular_user_roles"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to change user roles")

        current_role = self.store.get_role(company_id, membership.role_id)
        if not can_change_any:
            if current_role is not None and is_protected_role(current_role):
                return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to change this user's role")
            if is_protected_role(new_role):
                return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to assign a high-level role")

        if membership.role_id == new_role.id:
            return OperationResult.fail(ErrorKind.CONFLICT, f"Member already has the {new_role.name} role")

        if self._is_sole_owner(company_id, current_role):
            return OperationResult.fail(ErrorKind.LAST_OWNER, "Cannot change the role of the only owner of the company")

        if self.store.update_membership_role(company_id, target_user_id, new_role.id) == 0:
            return OperationResult.fail(ErrorKind.MEMBER_NOT_FOUND, "Member not found in this company")

        logger.info(f"User {acting_user_id} changed role of {target_user_id} in {company_id} to {new_role.name}")
        return OperationResult.ok(
            data=MemberRoleChangeResponse(
                user_id=target_user_id,
                role_id=new_role.id,
                role_name=new_role.name,
                message="User role updated successfully"
            ),
            message="User role updated successfully"
        )

    def remove_member(self, company_id: str, user_id: str, acting_user_id: str) -> OperationResult:
        # Outsiders get the same answer whoever the target is
        if self.store.get_membership(company_id, acting_user_id) is None:
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to remove members")

        membership = self.store.get_membership(company_id, user_id)
        if membership is None:
            return OperationResult.fail(ErrorKind.MEMBER_NOT_FOUND, "User is not a member of this company")

        # Checked before permissions: the last owner can never be removed
        role = self.store.get_role(company_id, membership.role_id)
        if self._is_sole_owner(company_id, role):
            return OperationResult.fail(ErrorKind.LAST_OWNER, "Cannot remove the only owner of the company")

        if not self.has_permission(acting_user_id, company_id, "remove_members"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to remove members")

        if self.store.delete_membership(company_id, user_id) == 0:
            return OperationResult.fail(ErrorKind.MEMBER_NOT_FOUND, "User is not a member of this company")

        logger.info(f"User {acting_user_id} removed {user_id} from company {company_id}")
        return OperationResult.ok(message="Member removed successfully")

    # Roles

    def delete_role(
        self,
        company_id: str,
        role_id: str,
        transfer_to_role_id: str,
        acting_user_id: Optional[str] = None,
    ) -> OperationResult:
        if acting_user_id is not None and not self.has_permission(acting_user_id, company_id, "manage_roles"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to manage roles")

        role = self.store.get_role(company_id, role_id)
        transfer_role = self.store.get_role(company_id, transfer_to_role_id) if transfer_to_role_id else None
        if role is None or transfer_role is None:
            return OperationResult.fail(ErrorKind.ROLE_NOT_FOUND, "One or both roles not found")

        if transfer_role.id == role.id:
            return OperationResult.fail(
                ErrorKind.INVALID_TRANSFER_TARGET, "Members must be transferred to a different role"
            )

        if role.is_default:
            return OperationResult.fail(ErrorKind.FORBIDDEN, f"The default {role.name} role cannot be deleted")

        transferred = self.store.count_members_with_role(company_id, role.id)
        outcome = self.store.delete_role_with_transfer(role.id, transfer_role.id)
        if not outcome["success"]:
            logger.warning(f"delete_company_role refused {role.id} in {company_id}: {outcome['message']}")
            return OperationResult.fail(
                ErrorKind.VALIDATION_ERROR, outcome["message"] or "The role could not be deleted"
            )

        logger.info(f"Deleted role {role.name} ({role.id}) in {company_id}; moved {transferred} member(s) to {transfer_role.name}")
        return OperationResult.ok(
            data=RoleDeleteResponse(
                deleted_role_id=role.id,
                transfer_to_role_id=transfer_role.id,
                transferred_members=transferred
            ),
            message=f"Role deleted, {transferred} member(s) moved to {transfer_role.name}"
        )

    # Invitations

    def create_invitation(
        self,
        company_id: str,
        inviter_id: str,
        email: str,
        role: str,
        message: Optional[str] = None,
    ) -> OperationResult:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, "A valid email is required")
        identifier = (role or "").strip().lower()
        if identifier not in LEGACY_ROLE_RANKS:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, "Valid role is required")

        if not self.has_permission(inviter_id, company_id, "invite_users"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to invite users")

        inviter_membership = self.store.get_membership(company_id, inviter_id)
        inviter_role = self.store.get_role(company_id, inviter_membership.role_id) if inviter_membership else None
        if inviter_role is None or not can_assign_role(inviter_role, identifier):
            return OperationResult.fail(
                ErrorKind.FORBIDDEN, "You cannot assign a role equal to or higher than your own"
            )

        company = self.store.get_company(company_id)
        if company is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Company not found")

        target_role = self.store.get_role_by_name(company_id, LEGACY_ROLE_NAMES[identifier])
        if target_role is None:
            return OperationResult.fail(ErrorKind.ROLE_NOT_FOUND, f"Role {identifier} not found in this company")

        invitee = self.store.find_user_profile_by_email(email)
        if invitee is not None and self.store.get_membership(company_id, invitee.id) is not None:
            return OperationResult.fail(ErrorKind.CONFLICT, "This user is already a member of the company")

        now = self._clock()
        existing = self.store.find_open_invitation(company_id, email)
        if existing is not None:
            if existing.status == InvitationStatus.PENDING and existing.is_expired(now):
                logger.info(f"Replacing expired invitation {existing.id} for company {company_id}")
                self.store.delete_invitation(existing.id, [InvitationStatus.PENDING.value])
            else:
                return OperationResult.fail(
                    ErrorKind.CONFLICT, "There is already a pending invitation for this email"
                )

        invitation = self.store.insert_invitation({
            "company_id": company_id,
            "invited_by": inviter_id,
            "email": email,
            "role_id": target_role.id,
            "status": InvitationStatus.PENDING.value,
            "message": message,
            "created_at": now.isoformat(),
            "expires_at": (now + timedelta(days=self.settings.invitation_ttl_days)).isoformat()
        })
        logger.info(f"User {inviter_id} invited {email} to company {company_id} as {target_role.name}")

        warnings = []
        if not self._dispatch_invitation_email(invitation, company, target_role, inviter_id):
            warnings.append("Invitation created, but the invitation email could not be sent")
        return OperationResult.ok(data=invitation, message="Invitation created", warnings=warnings)

    def _dispatch_invitation_email(self, invitation: InvitationResponse, company, role: RoleResponse, inviter_id: str) -> bool:
        if self.email_service is None:
            logger.warning(f"No email service configured; invitation {invitation.id} not emailed")
            return False
        try:
            inviter = self.store.get_user_profile(inviter_id)
            inviter_name = (inviter.full_name or inviter.email) if inviter else "A team member"
            return self.email_service.send_invitation_email(
                recipient_email=invitation.email,
                inviter_name=inviter_name,
                company_name=company.name,
                company_handle=company.handle,
                role=role.name,
                message=invitation.message,
                invitation_id=invitation.id,
            )
        except Exception as e:
            # Delivery problems never undo the invitation
            logger.warning(f"Invitation email for {invitation.id} failed: {e}")
            return False

    def resolve_invitation(
        self, invitation_id: str, action: Union[InvitationAction, str], acting_user_id: Optional[str] = None
    ) -> OperationResult:
        try:
            action = InvitationAction(action)
        except ValueError:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, "Action must be accept or reject")

        invitation = self.store.get_invitation(invitation_id)
        if invitation is None or invitation.status.value not in OPEN_INVITATION_STATUSES:
            return OperationResult.fail(ErrorKind.ALREADY_RESOLVED, "Invitation not found or already resolved")

        if action == InvitationAction.REJECT:
            return self._reject_invitation(invitation, acting_user_id)
        return self._accept_invitation(invitation, acting_user_id)

    def _reject_invitation(self, invitation: InvitationResponse, acting_user_id: Optional[str]) -> OperationResult:
        if acting_user_id is not None:
            profile = self.store.get_user_profile(acting_user_id)
            if profile is None or not _same_email(profile.email, invitation.email):
                return OperationResult.fail(ErrorKind.FORBIDDEN, "This invitation was sent to a different email address")

        if self.store.delete_invitation(invitation.id, OPEN_INVITATION_STATUSES) == 0:
            return OperationResult.fail(ErrorKind.ALREADY_RESOLVED, "Invitation not found or already resolved")

        logger.info(f"Invitation {invitation.id} to company {invitation.company_id} rejected")
        return OperationResult.ok(message="Invitation rejected")

    def _accept_invitation(self, invitation: InvitationResponse, acting_user_id: Optional[str]) -> OperationResult:
        if invitation.status == InvitationStatus.PENDING and invitation.is_expired(self._clock()):
            return OperationResult.fail(ErrorKind.INVITATION_EXPIRED, "This invitation has expired")

        if acting_user_id is None:
            return self._pre_accept_invitation(invitation)

        profile = self.store.get_user_profile(acting_user_id)
        if profile is None:
            return OperationResult.fail(ErrorKind.UNAUTHORIZED, "You must be logged in to accept invitations")
        if not _same_email(profile.email, invitation.email):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "This invitation was sent to a different email address")
        return self._complete_acceptance(invitation, profile)

    def _pre_accept_invitation(self, invitation: InvitationResponse) -> OperationResult:
        """Token-based accept before the invitee has an account"""
        if invitation.status == InvitationStatus.PRE_ACCEPTED:
            return OperationResult.fail(ErrorKind.ALREADY_RESOLVED, "Invitation already accepted, sign in to join the company")
        if self.store.find_user_profile_by_email(invitation.email) is not None:
            return OperationResult.fail(ErrorKind.UNAUTHORIZED, "You must be logged in to accept invitations")

        updated = self.store.update_invitation_status(
            invitation.id, [InvitationStatus.PENDING.value], InvitationStatus.PRE_ACCEPTED.value
        )
        if updated == 0:
            return OperationResult.fail(ErrorKind.ALREADY_RESOLVED, "Invitation not found or already resolved")
        return OperationResult.ok(
            data=invitation.model_copy(update={"status": InvitationStatus.PRE_ACCEPTED}),
            message="Invitation accepted, the membership is created at first sign-in"
        )

    def _complete_acceptance(self, invitation: InvitationResponse, profile: UserProfileResponse) -> OperationResult:
        if self.store.get_membership(invitation.company_id, profile.id) is not None:
            return OperationResult.fail(ErrorKind.CONFLICT, "You are already a member of this company")

        role = self.store.get_role(invitation.company_id, invitation.role_id)
        if role is None:
            return OperationResult.fail(ErrorKind.ROLE_NOT_FOUND, "The invited role no longer exists")

        # Claim, membership and user_type promotion commit together; None means a concurrent accept won
        membership = self.store.accept_invitation(invitation.id, profile.id)
        if membership is None:
            return OperationResult.fail(ErrorKind.ALREADY_RESOLVED, "Invitation not found or already resolved")

        account_type_changed = profile.user_type == AccountType.PERSONAL

        logger.info(f"User {profile.id} joined company {invitation.company_id} as {role.name}")
        return OperationResult.ok(
            data=AcceptedInvitationResponse(
                invitation_id=invitation.id,
                membership=membership,
                role_name=role.name,
                account_type_changed=account_type_changed
            ),
            message="Invitation accepted successfully"
        )

    def complete_pre_accepted_invitations(self, user_id: str) -> OperationResult:
        """First sign-in bootstrap: turn pre-accepted invitations into memberships"""
        profile = self.store.get_user_profile(user_id)
        if profile is None:
            return OperationResult.fail(ErrorKind.UNAUTHORIZED, "User profile not found")

        accepted: List[AcceptedInvitationResponse] = []
        invitations = self.store.list_invitations_for_email(
            profile.email.strip().lower(), [InvitationStatus.PRE_ACCEPTED.value]
        )
        for invitation in invitations:
            result = self._complete_acceptance(invitation, profile)
            if result.success:
                accepted.append(result.data)
                # user_type is already company after the first acceptance
                profile = profile.model_copy(update={"user_type": AccountType.COMPANY})
            else:
                logger.warning(f"Skipping pre-accepted invitation {invitation.id}: {result.message}")
        return OperationResult.ok(data=accepted, message=f"Joined {len(accepted)} company(ies)")
