from __future__ import annotations

from datetime import timedelta

import pytest

from nexus_cards.core import config as core_config
from nexus_cards.core.errors import AuthenticationError, ConflictError, ValidationError
from nexus_cards.core.tokens import decode_access_token
from nexus_cards.core.totp import totp_now
from nexus_cards.db.models import utcnow
from nexus_cards.repositories.billing import BillingRepository
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services.auth_service import FORGOT_PASSWORD_MESSAGE, AuthResult, AuthService, TwoFactorRequired
from nexus_cards.services.two_factor_service import TwoFactorService


def test_register_creates_free_subscription_and_sends_verification(sent_emails):
    result = AuthService().register("Ada@Example.com", "password123", "Ada", "Lovelace")

    assert result.user.email == "ada@example.com"
    assert result.user.role == "USER"
    assert decode_access_token(result.access_token).user_id == result.user.id
    assert BillingRepository().get_subscription(result.user.id).tier == "FREE"
    assert len(sent_emails) == 1
    assert sent_emails[0]["to"] == "ada@example.com"
    assert result.user.email_verification_token in sent_emails[0]["text"]


def test_register_rejects_duplicates_and_short_passwords():
    svc = AuthService()
    svc.register("ada@example.com", "password123")
    with pytest.raises(ConflictError):
        svc.register("ADA@example.com", "password123")
    with pytest.raises(ValidationError):
        svc.register("bob@example.com", "short")


def test_register_promotes_configured_admin_emails(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", "boss@example.com, other@example.com")
    core_config.get_settings.cache_clear()
    result = AuthService().register("boss@example.com", "password123")
    assert result.user.role == "ADMIN"


def test_login_success_and_bad_credentials():
    svc = AuthService()
    svc.register("ada@example.com", "password123")

    outcome = svc.login("ada@example.com", "password123")
    assert isinstance(outcome, AuthResult)
    with pytest.raises(AuthenticationError):
        svc.login("ada@example.com", "wrong-password")
    with pytest.raises(AuthenticationError):
        svc.login("nobody@example.com", "password123")


def test_login_with_2fa_requires_second_step():
    svc = AuthService()
    user = svc.register("ada@example.com", "password123").user
    two_factor = TwoFactorService()
    secret = two_factor.setup(user.id)["secret"]
    backup_codes = two_factor.enable(user.id, totp_now(secret))

    outcome = svc.login("ada@example.com", "password123")
    assert isinstance(outcome, TwoFactorRequired)
    assert outcome.user_id == user.id

    assert svc.login_2fa("ada@example.com", "password123", totp_now(secret)).user.id == user.id
    with pytest.raises(AuthenticationError):
        svc.login_2fa("ada@example.com", "password123", "000000" if totp_now(secret) != "000000" else "111111")

    # A backup code works exactly once.
    svc.login_2fa("ada@example.com", "password123", backup_codes[0])
    assert len(UserRepository().get(user.id).backup_codes) == 7
    with pytest.raises(AuthenticationError):
        svc.login_2fa("ada@example.com", "password123", backup_codes[0])


def test_verify_email_flow():
    svc = AuthService()
    user = svc.register("ada@example.com", "password123").user
    assert svc.verification_status(user.id) == {"email": "ada@example.com", "email_verified": False}

    verified = svc.verify_email(user.email_verification_token)
    assert verified.email_verified is True
    assert verified.email_verification_token is None
    with pytest.raises(ValidationError):
        svc.verify_email(user.email_verification_token)
    with pytest.raises(ValidationError):
        svc.resend_verification(user.id)


def test_expired_verification_token_is_rejected():
    svc = AuthService()
    user = svc.register("ada@example.com", "password123").user
    UserRepository().update(user.id, email_verification_sent_at=utcnow() - timedelta(days=2))
    with pytest.raises(ValidationError):
        svc.verify_email(user.email_verification_token)


def test_resend_verification_rotates_token(sent_emails):
    svc = AuthService()
    user = svc.register("ada@example.com", "password123").user
    assert svc.resend_verification(user.id) is True
    fresh = UserRepository().get(user.id)
    assert fresh.email_verification_token != user.email_verification_token
    assert len(sent_emails) == 2


def test_forgot_password_does_not_reveal_accounts(sent_emails):
    svc = AuthService()
    svc.register("ada@example.com", "password123")
    sent_emails.clear()

    assert svc.forgot_password("nobody@example.com") == FORGOT_PASSWORD_MESSAGE
    assert sent_emails == []
    assert svc.forgot_password("ada@example.com") == FORGOT_PASSWORD_MESSAGE
    assert len(sent_emails) == 1


def test_reset_password_with_valid_and_expired_tokens():
    svc = AuthService()
    user = svc.register("ada@example.com", "password123").user
    svc.forgot_password("ada@example.com")
    token = UserRepository().get(user.id).password_reset_token

    svc.reset_password(token, "new-password-1")
    assert isinstance(svc.login("ada@example.com", "new-password-1"), AuthResult)
    with pytest.raises(ValidationError):
        svc.reset_password(token, "another-pass")

    svc.forgot_password("ada@example.com")
    repo = UserRepository()
    token = repo.get(user.id).password_reset_token
    repo.update(user.id, password_reset_expires=utcnow() - timedelta(minutes=1))
    with pytest.raises(ValidationError):
        svc.reset_password(token, "another-pass")
