from enum import Enum
from pydantic import BaseModel, EmailStr
from typing import Optional, List


class AccountType(str, Enum):
    PERSONAL = "personal"
    COMPANY = "company"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    joined_company_ids: List[str] = []


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = None
    user_type: AccountType = AccountType.PERSONAL


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str
    warnings: List[str] = []


class UserProfileResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    user_type: AccountType = AccountType.PERSONAL

    class Config:
        from_attributes = True
