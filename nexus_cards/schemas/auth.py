"""Auth request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class Login2FARequest(LoginRequest):
    code: str = Field(..., min_length=6, max_length=16, description="TOTP or backup code")


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email_verified: bool = False
    two_factor_enabled: bool = False
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"


class TwoFactorChallenge(BaseModel):
    requires_2fa: bool = True
    user_id: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class TwoFactorCode(BaseModel):
    code: str = Field(..., min_length=6, max_length=16)


class TwoFactorSetupResponse(BaseModel):
    secret: str
    otpauth_url: str
    qr_code: str


class BackupCodesResponse(BaseModel):
    backup_codes: list[str]


class MessageResponse(BaseModel):
    message: str
