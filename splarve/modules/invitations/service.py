import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from splarve.core.authority import RoleAuthority
from splarve.core.results import ErrorKind, OperationResult
from splarve.database.company_store import OPEN_INVITATION_STATUSES, CompanyStore
from splarve.modules.companies.schemas import CompanyResponse
from splarve.modules.invitations.schemas import InvitationDetailResponse, InvitationResponse, InvitationStatus
from splarve.modules.roles.schemas import RoleResponse

logger = logging.getLogger(__name__)


class InvitationService:
    def __init__(self, store: CompanyStore, authority: RoleAuthority):
        self.store = store
        self.authority = authority

    def _detail(
        self,
        invitation: InvitationResponse,
        company: Optional[CompanyResponse],
        role: Optional[RoleResponse]
    ) -> InvitationDetailResponse:
        return InvitationDetailResponse(
            **invitation.model_dump(),
            role_name=role.name if role else None,
            company_name=company.name if company else None,
            company_handle=company.handle if company else None,
            company_logo_url=company.logo_url if company else None
        )

    def list_company_invitations(self, company_id: str, user_id: str) -> OperationResult:
        """Invitations sent by the company, newest first"""
        if not self.authority.has_permission(user_id, company_id, "invite_users"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to view invitations")

        company = self.store.get_company(company_id)
        roles = {role.id: role for role in self.store.list_roles(company_id)}
        invitations = self.store.list_company_invitations(company_id)
        return OperationResult.ok(data=[
            self._detail(invitation, company, roles.get(invitation.role_id))
            for invitation in invitations
        ])

    def cancel_invitation(self, company_id: str, invitation_id: str, user_id: str) -> OperationResult:
        if not self.authority.has_permission(user_id, company_id, "invite_users"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to cancel invitations")

        invitation = self.store.get_invitation(invitation_id)
        if invitation is None or invitation.company_id != company_id:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Invitation not found")

        if self.store.delete_invitation(invitation.id, OPEN_INVITATION_STATUSES) == 0:
            return OperationResult.fail(ErrorKind.ALREADY_RESOLVED, "Invitation not found or already resolved")

        logger.info(f"User {user_id} cancelled invitation {invitation.id} in company {company_id}")
        return OperationResult.ok(message="Invitation cancelled")

    def list_my_invitations(self, user_id: str, now: Optional[datetime] = None) -> OperationResult:
        """Unexpired pending invitations addressed to the caller's email"""
        profile = self.store.get_user_profile(user_id)
        if profile is None:
            return OperationResult.fail(ErrorKind.UNAUTHORIZED, "User profile not found")

        now = now or datetime.now(timezone.utc)
        invitations = [
            invitation
            for invitation in self.store.list_invitations_for_email(
                profile.email.strip().lower(), [InvitationStatus.PENDING.value]
            )
            if not invitation.is_expired(now)
        ]

        companies: Dict[str, Optional[CompanyResponse]] = {}
        details = []
        for invitation in invitations:
            if invitation.company_id not in companies:
                companies[invitation.company_id] = self.store.get_company(invitation.company_id)
            role = self.store.get_role(invitation.company_id, invitation.role_id)
            details.append(self._detail(invitation, companies[invitation.company_id], role))
        return OperationResult.ok(data=details)
