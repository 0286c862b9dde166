"""
Typed outcomes for company authorization operations.

Permission denials, hierarchy violations, missing rows and last-owner
protection are reported as failed results with a stable message, never
raised. Routers turn a failed result into an HTTPException.
"""

from enum import Enum
from typing import Any, List, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    ROLE_NOT_FOUND = "role_not_found"
    MEMBER_NOT_FOUND = "member_not_found"
    CONFLICT = "conflict"
    LAST_OWNER = "last_owner"
    ALREADY_RESOLVED = "already_resolved"
    INVITATION_EXPIRED = "invitation_expired"
    INVALID_TRANSFER_TARGET = "invalid_transfer_target"
    VALIDATION_ERROR = "validation_error"
    UPSTREAM_FAILURE = "upstream_failure"


ERROR_STATUS_CODES = {
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ROLE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.MEMBER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.LAST_OWNER: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_RESOLVED: status.HTTP_409_CONFLICT,
    ErrorKind.INVITATION_EXPIRED: status.HTTP_410_GONE,
    ErrorKind.INVALID_TRANSFER_TARGET: status.HTTP_400_BAD_REQUEST,
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UPSTREAM_FAILURE: status.HTTP_502_BAD_GATEWAY,
}


class OperationResult(BaseModel):
    success: bool
    error: Optional[ErrorKind] = None
    message: str = ""
    data: Any = None
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: Any = None, message: str = "", warnings: Optional[List[str]] = None) -> "OperationResult":
        return cls(success=True, data=data, message=message, warnings=warnings or [])

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "OperationResult":
        return cls(success=False, error=error, message=message)

    @property
    def status_code(self) -> int:
        if self.success:
            return status.HTTP_200_OK
        return ERROR_STATUS_CODES.get(self.error, status.HTTP_400_BAD_REQUEST)


def unwrap(result: OperationResult) -> Any:
    """Return the payload of a successful result, raise HTTPException for a failed one"""
    if not result.success:
        raise HTTPException(status_code=result.status_code, detail=result.message)
    return result.data
