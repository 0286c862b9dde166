"""
Core dependencies for route protection and company permission checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from splarve.core.authority import MembershipPermissionChecker, RoleAuthority
from splarve.database.company_store import CompanyStore
from splarve.database.supabase_client import get_supabase, get_service_supabase
from splarve.modules.auth.service import AuthService
from splarve.modules.notifications.email import EmailService
from supabase import Client
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _get_request_cache(request: Request) -> Dict[Any, Any]:
    """Return request-scoped cache for permission decisions."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


class CachedPermissionChecker:
    """Memoizes permission decisions for the lifetime of one request."""

    def __init__(self, checker, cache: Dict[Any, Any]):
        self.checker = checker
        self.cache = cache

    def check(self, user_id: str, company_id: str, permission: str) -> bool:
        key = ("permission", user_id, company_id, permission)
        if key not in self.cache:
            self.cache[key] = self.checker.check(user_id, company_id, permission)
        return self.cache[key]


def get_email_service() -> EmailService:
    return EmailService()


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    email_service: EmailService = Depends(get_email_service)
) -> AuthService:
    return AuthService(supabase, email_service)


def get_company_store(supabase: Client = Depends(get_service_supabase)) -> CompanyStore:
    """Store on the service-role client; authorization is enforced by RoleAuthority, not RLS"""
    return CompanyStore(supabase)


def get_authority(
    request: Request,
    store: CompanyStore = Depends(get_company_store),
    email_service: EmailService = Depends(get_email_service)
) -> RoleAuthority:
    checker = CachedPermissionChecker(MembershipPermissionChecker(store), _get_request_cache(request))
    return RoleAuthority(store, checker=checker, email_service=email_service)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[dict]:
    """Current user when a bearer token is sent, None for anonymous (emailed-link) requests"""
    if credentials is None:
        return None
    return auth_service.get_current_user(credentials.credentials)


def require_company_permission(required_permission: str):
    """Factory function to create a company-scoped permission check dependency"""
    def check_permission(
        company_id: str,
        user_data: dict = Depends(get_current_user_id),
        authority: RoleAuthority = Depends(get_authority)
    ) -> dict:
        """Dependency to check the user holds required_permission in company_id"""
        if not authority.has_permission(user_data["id"], company_id, required_permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {required_permission}"
            )
        return user_data
    return check_permission
