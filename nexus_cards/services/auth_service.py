"""
Authentication and identity related use cases.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging

from nexus_cards.core.config import get_settings
from nexus_cards.core.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from nexus_cards.core.mailer import send_email
from nexus_cards.core.security import hash_password, needs_rehash, verify_password
from nexus_cards.core.tokens import create_access_token, mint_opaque_token
from nexus_cards.core.totp import match_backup_code, verify_totp
from nexus_cards.core.utils import absolute_url
from nexus_cards.db.models import User, as_utc, utcnow
from nexus_cards.repositories.billing import BillingRepository
from nexus_cards.repositories.users import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
FORGOT_PASSWORD_MESSAGE = "If that e-mail is registered, a reset link has been sent."


@dataclass
class AuthResult:
    user: User
    access_token: str


@dataclass
class TwoFactorRequired:
    user_id: str
    requires_2fa: bool = True


def issue_token(user: User) -> str:
    return create_access_token(user_id=user.id, email=user.email, role=user.role)


@dataclass
class AuthService:
    """Handles registration, login, verification and password reset flows."""

    def __post_init__(self):
        self.settings = get_settings()
        self.users = UserRepository()
        self.billing = BillingRepository()

    # -------------------------------------- helpers --------------------------------------
    def _token_expired(self, created_at: datetime | None, ttl_seconds: int) -> bool:
        if ttl_seconds <= 0:
            return False
        created = as_utc(created_at)
        if created is None:
            return True
        return created + timedelta(seconds=ttl_seconds) < datetime.now(timezone.utc)

    def _action_email_html(self, url: str, prompt: str, label: str) -> str:
        return f"""
        <p>Hello!</p>
        <p>{prompt}</p>
        <p><a href="{url}" style="background:#2563eb;color:#fff;padding:12px 18px;border-radius:8px;text-decoration:none;">{label}</a></p>
        <p>If the button does not work, copy this link into your browser:</p>
        <p><a href="{url}">{url}</a></p>
        <p>The Nexus Cards team</p>
        """

    def _send_verification(self, user: User, token: str) -> bool:
        verify_url = absolute_url(f"/verify-email?token={token}")
        return send_email(
            "Confirm your e-mail - Nexus Cards",
            user.email,
            self._action_email_html(verify_url, "Please confirm your e-mail address:", "Confirm my e-mail"),
            f"Confirm your e-mail: {verify_url}",
        )

    def _rehash_if_needed(self, user: User, password: str) -> None:
        if user.password_hash and needs_rehash(user.password_hash):
            self.users.update(user.id, password_hash=hash_password(password))

    def _check_credentials(self, email: str, password: str) -> User:
        user = self.users.get_by_email(email or "")
        if not user or not verify_password(password or "", user.password_hash):
            raise AuthenticationError("Invalid credentials")
        self._rehash_if_needed(user, password)
        return user

    # -------------------------------------- registration --------------------------------------
    def register(self, email: str, password: str, first_name: str | None = None, last_name: str | None = None) -> AuthResult:
        raw_email = (email or "").strip().lower()
        if not raw_email:
            raise ValidationError("Email is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if self.users.get_by_email(raw_email):
            raise ConflictError("Email already registered")
        role = "ADMIN" if raw_email in self.settings.admin_emails else "USER"
        token = mint_opaque_token()
        user = self.users.create(
            email=raw_email,
            password_hash=hash_password(password),
            first_name=(first_name or "").strip() or None,
            last_name=(last_name or "").strip() or None,
            role=role,
            email_verification_token=token,
            email_verification_sent_at=utcnow(),
        )
        self.billing.update_subscription(user.id, tier="FREE", status="ACTIVE")
        self._send_verification(user, token)
        logger.info("Registered user %s", user.id)
        return AuthResult(user=user, access_token=issue_token(user))

    # -------------------------------------- login --------------------------------------
    def login(self, email: str, password: str) -> AuthResult | TwoFactorRequired:
        user = self._check_credentials(email, password)
        if user.two_factor_enabled:
            return TwoFactorRequired(user_id=user.id)
        return AuthResult(user=user, access_token=issue_token(user))

    def login_2fa(self, email: str, password: str, code: str) -> AuthResult:
        user = self._check_credentials(email, password)
        if not user.two_factor_enabled or not user.two_factor_secret:
            raise ValidationError("Two-factor authentication is not enabled")
        if verify_totp(user.two_factor_secret, code):
            return AuthResult(user=user, access_token=issue_token(user))
        matched = match_backup_code(code, user.backup_codes or [])
        if matched is None:
            raise AuthenticationError("Invalid two-factor authentication code")
        remaining = [h for h in (user.backup_codes or []) if h != matched]
        user = self.users.update(user.id, backup_codes=remaining)
        logger.info("User %s logged in with a backup code (%d left)", user.id, len(remaining))
        return AuthResult(user=user, access_token=issue_token(user))

    def get_user(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    # -------------------------------------- verification --------------------------------------
    def verify_email(self, token: str) -> User:
        token_value = (token or "").strip()
        user = self.users.get_by_verification_token(token_value)
        if not user:
            raise ValidationError("Invalid or expired verification token")
        if self._token_expired(user.email_verification_sent_at, self.settings.email_verification_ttl_seconds):
            self.users.update(user.id, email_verification_token=None)
            raise ValidationError("Invalid or expired verification token")
        return self.users.update(
            user.id,
            email_verified=True,
            email_verification_token=None,
            email_verification_sent_at=None,
        )

    def resend_verification(self, user_id: str) -> bool:
        user = self.get_user(user_id)
        if user.email_verified:
            raise ValidationError("Email is already verified")
        token = mint_opaque_token()
        user = self.users.update(user.id, email_verification_token=token, email_verification_sent_at=utcnow())
        return self._send_verification(user, token)

    def verification_status(self, user_id: str) -> dict:
        user = self.get_user(user_id)
        return {"email": user.email, "email_verified": bool(user.email_verified)}

    # -------------------------------------- password reset --------------------------------------
    def forgot_password(self, email: str) -> str:
        """Always answers with the same message so callers cannot discover which accounts exist."""
        user = self.users.get_by_email(email or "")
        if user:
            token = mint_opaque_token()
            expires = utcnow() + timedelta(seconds=self.settings.password_reset_ttl)
            self.users.update(user.id, password_reset_token=token, password_reset_expires=expires)
            reset_url = absolute_url(f"/reset-password?token={token}")
            send_email(
                "Reset your password - Nexus Cards",
                user.email,
                self._action_email_html(
                    reset_url,
                    "We received a request to reset your password. If it was not you, ignore this message.",
                    "Reset password",
                ),
                f"Use this link to reset your password: {reset_url}",
            )
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, token: str, password: str) -> User:
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        user = self.users.get_by_reset_token((token or "").strip())
        expires = as_utc(user.password_reset_expires) if user else None
        if not user or expires is None or expires < datetime.now(timezone.utc):
            raise ValidationError("Invalid or expired reset token")
        return self.users.update(
            user.id,
            password_hash=hash_password(password),
            password_reset_token=None,
            password_reset_expires=None,
        )
