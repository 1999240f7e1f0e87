"""Two-factor authentication: setup, enable/disable and recovery codes."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from nexus_cards.core.errors import AuthenticationError, NotFoundError, ValidationError
from nexus_cards.core.totp import (
    generate_backup_codes,
    generate_secret,
    hash_backup_codes,
    match_backup_code,
    provisioning_uri,
    verify_totp,
)
from nexus_cards.db.models import User
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services.card_display import qr_data_url

logger = logging.getLogger(__name__)

BACKUP_CODE_COUNT = 8


@dataclass
class TwoFactorService:

    def __post_init__(self):
        self.users = UserRepository()

    def _user(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _require_enabled(self, user: User) -> None:
        if not user.two_factor_enabled or not user.two_factor_secret:
            raise ValidationError("2FA is not enabled")

    def setup(self, user_id: str) -> dict:
        user = self._user(user_id)
        if user.two_factor_enabled:
            raise ValidationError("2FA is already enabled")
        secret = generate_secret()
        self.users.update(user.id, two_factor_secret=secret)
        uri = provisioning_uri(secret, user.email)
        return {"secret": secret, "otpauth_url": uri, "qr_code": qr_data_url(uri)}

    def enable(self, user_id: str, code: str) -> list[str]:
        """Turn 2FA on; the returned backup codes are shown exactly once."""
        user = self._user(user_id)
        if user.two_factor_enabled:
            raise ValidationError("2FA is already enabled")
        if not user.two_factor_secret:
            raise ValidationError("2FA setup not initiated. Please generate a secret first.")
        if not verify_totp(user.two_factor_secret, code):
            raise AuthenticationError("Invalid 2FA code")
        codes = generate_backup_codes(BACKUP_CODE_COUNT)
        self.users.update(user.id, two_factor_enabled=True, backup_codes=hash_backup_codes(codes))
        logger.info("2FA enabled for user %s", user.id)
        return codes

    def verify(self, user_id: str, code: str) -> bool:
        """Check a TOTP code or consume a backup code."""
        user = self._user(user_id)
        self._require_enabled(user)
        if verify_totp(user.two_factor_secret, code):
            return True
        matched = match_backup_code(code, user.backup_codes or [])
        if matched is None:
            return False
        self.users.update(user.id, backup_codes=[h for h in user.backup_codes if h != matched])
        return True

    def disable(self, user_id: str, code: str) -> None:
        user = self._user(user_id)
        self._require_enabled(user)
        if not self.verify(user_id, code):
            raise AuthenticationError("Invalid 2FA code")
        self.users.update(user.id, two_factor_enabled=False, two_factor_secret=None, backup_codes=[])
        logger.info("2FA disabled for user %s", user.id)

    def regenerate_backup_codes(self, user_id: str, code: str) -> list[str]:
        user = self._user(user_id)
        self._require_enabled(user)
        if not verify_totp(user.two_factor_secret, code):
            raise AuthenticationError("Invalid 2FA code")
        codes = generate_backup_codes(BACKUP_CODE_COUNT)
        self.users.update(user.id, backup_codes=hash_backup_codes(codes))
        return codes
