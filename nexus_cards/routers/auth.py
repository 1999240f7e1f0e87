from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from nexus_cards.core.rate_limiter import rate_limit_ip
from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_auth_service, get_current_user, get_two_factor_service
from nexus_cards.schemas.auth import (
    AuthResponse,
    BackupCodesResponse,
    ForgotPasswordRequest,
    Login2FARequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TwoFactorChallenge,
    TwoFactorCode,
    TwoFactorSetupResponse,
    UserOut,
    VerifyEmailRequest,
)
from nexus_cards.services.auth_service import AuthResult, AuthService
from nexus_cards.services.two_factor_service import TwoFactorService

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(user=UserOut.model_validate(result.user), access_token=result.access_token)


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:register", limit=3, window_seconds=300)
    result = auth.register(payload.email, payload.password, payload.first_name, payload.last_name)
    return _auth_response(result)


@router.post("/login", response_model=AuthResponse | TwoFactorChallenge)
def login(payload: LoginRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:login", limit=5, window_seconds=60)
    outcome = auth.login(payload.email, payload.password)
    if isinstance(outcome, AuthResult):
        return _auth_response(outcome)
    return TwoFactorChallenge(user_id=outcome.user_id)


@router.post("/login/2fa", response_model=AuthResponse)
def login_2fa(payload: Login2FARequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:login", limit=5, window_seconds=60)
    return _auth_response(auth.login_2fa(payload.email, payload.password, payload.code))


@router.post("/logout", response_model=MessageResponse)
def logout(user: User = Depends(get_current_user)):
    # Tokens are stateless; the client drops its copy.
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(payload: ForgotPasswordRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "auth:forgot", limit=5, window_seconds=300)
    return MessageResponse(message=auth.forgot_password(payload.email))


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    auth.reset_password(payload.token, payload.password)
    return MessageResponse(message="Password updated")


@router.post("/email/verify", response_model=UserOut)
def verify_email(payload: VerifyEmailRequest, auth: AuthService = Depends(get_auth_service)):
    return auth.verify_email(payload.token)


@router.post("/email/resend-verification", response_model=MessageResponse)
def resend_verification(
    request: Request,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    rate_limit_ip(request, "auth:resend", limit=3, window_seconds=300)
    sent = auth.resend_verification(user.id)
    if not sent:
        return MessageResponse(message="Verification e-mail could not be sent, try again later")
    return MessageResponse(message="Verification e-mail sent")


@router.get("/email/verification-status")
def verification_status(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    return auth.verification_status(user.id)


# -------------------------------------- two-factor --------------------------------------
@router.post("/2fa/setup", response_model=TwoFactorSetupResponse)
def setup_2fa(user: User = Depends(get_current_user), two_factor: TwoFactorService = Depends(get_two_factor_service)):
    return two_factor.setup(user.id)


@router.post("/2fa/enable", response_model=BackupCodesResponse)
def enable_2fa(
    payload: TwoFactorCode,
    user: User = Depends(get_current_user),
    two_factor: TwoFactorService = Depends(get_two_factor_service),
):
    return BackupCodesResponse(backup_codes=two_factor.enable(user.id, payload.code))


@router.post("/2fa/disable", response_model=MessageResponse)
def disable_2fa(
    payload: TwoFactorCode,
    user: User = Depends(get_current_user),
    two_factor: TwoFactorService = Depends(get_two_factor_service),
):
    two_factor.disable(user.id, payload.code)
    return MessageResponse(message="2FA disabled")


@router.post("/2fa/backup-codes/regenerate", response_model=BackupCodesResponse)
def regenerate_backup_codes(
    payload: TwoFactorCode,
    user: User = Depends(get_current_user),
    two_factor: TwoFactorService = Depends(get_two_factor_service),
):
    return BackupCodesResponse(backup_codes=two_factor.regenerate_backup_codes(user.id, payload.code))
