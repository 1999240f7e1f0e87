from __future__ import annotations

import pytest

from nexus_cards.core.errors import AuthenticationError, ValidationError
from nexus_cards.core.totp import totp_now
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services.two_factor_service import TwoFactorService


def _wrong_code(secret: str) -> str:
    return "000000" if totp_now(secret) != "000000" else "111111"


def test_setup_returns_secret_uri_and_qr(make_user):
    user = make_user()
    data = TwoFactorService().setup(user.id)
    assert data["otpauth_url"].startswith("otpauth://totp/")
    assert data["secret"] in data["otpauth_url"]
    assert data["qr_code"].startswith("data:image/png;base64,")
    assert UserRepository().get(user.id).two_factor_secret == data["secret"]


def test_enable_requires_setup_and_valid_code(make_user):
    user = make_user()
    svc = TwoFactorService()
    with pytest.raises(ValidationError):
        svc.enable(user.id, "123456")

    secret = svc.setup(user.id)["secret"]
    with pytest.raises(AuthenticationError):
        svc.enable(user.id, _wrong_code(secret))

    codes = svc.enable(user.id, totp_now(secret))
    stored = UserRepository().get(user.id)
    assert len(codes) == 8
    assert stored.two_factor_enabled is True
    assert len(stored.backup_codes) == 8
    assert codes[0] not in stored.backup_codes
    with pytest.raises(ValidationError):
        svc.setup(user.id)


def test_verify_consumes_backup_codes(make_user):
    user = make_user()
    svc = TwoFactorService()
    secret = svc.setup(user.id)["secret"]
    codes = svc.enable(user.id, totp_now(secret))

    assert svc.verify(user.id, totp_now(secret)) is True
    assert svc.verify(user.id, codes[1]) is True
    assert svc.verify(user.id, codes[1]) is False
    assert len(UserRepository().get(user.id).backup_codes) == 7


def test_regenerate_and_disable(make_user):
    user = make_user()
    svc = TwoFactorService()
    secret = svc.setup(user.id)["secret"]
    old_codes = svc.enable(user.id, totp_now(secret))

    new_codes = svc.regenerate_backup_codes(user.id, totp_now(secret))
    assert set(new_codes).isdisjoint(old_codes)
    assert svc.verify(user.id, old_codes[0]) is False

    with pytest.raises(AuthenticationError):
        svc.disable(user.id, _wrong_code(secret))
    svc.disable(user.id, totp_now(secret))
    stored = UserRepository().get(user.id)
    assert stored.two_factor_enabled is False
    assert stored.two_factor_secret is None
    assert stored.backup_codes == []
