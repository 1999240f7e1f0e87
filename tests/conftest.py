"""
Shared fixtures: every test runs against a fresh temporary SQLite database.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the package importable when running tests from a checkout.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nexus_cards.core import config as core_config
from nexus_cards.core.rate_limiter import reset_limits
from nexus_cards.core.security import hash_password
from nexus_cards.db import session as db_session
from nexus_cards.db.create_tables import create_all, drop_all
from nexus_cards.repositories.billing import BillingRepository
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services import auth_service as auth_module
from nexus_cards.services.auth_service import issue_token
from nexus_cards.services.card_service import CardService

PASSWORD = "s3cret-pass"


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    """Temporary SQLite database plus clean settings, engine and rate-limit state."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://cards.test")
    monkeypatch.setenv("APP_ENV", "test")
    for name in ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "ADMIN_EMAILS", "SMTP_HOST"):
        monkeypatch.delenv(name, raising=False)
    core_config.get_settings.cache_clear()
    db_session.reset_engine()
    reset_limits()

    drop_all()
    create_all()

    yield db_file

    drop_all()
    db_session.reset_engine()
    core_config.get_settings.cache_clear()
    reset_limits()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Capture outgoing e-mail instead of talking to SMTP."""
    outbox: list[dict] = []

    def fake_send(subject, to_email, html_body, text_body=None):
        outbox.append({"subject": subject, "to": to_email, "html": html_body, "text": text_body})
        return True

    monkeypatch.setattr(auth_module, "send_email", fake_send)
    return outbox


@pytest.fixture()
def make_user():
    users = UserRepository()
    billing = BillingRepository()
    counter = {"n": 0}

    def _make(tier: str = "FREE", role: str = "USER", email: str | None = None):
        counter["n"] += 1
        user = users.create(
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(PASSWORD),
            first_name="Test",
            last_name=f"User{counter['n']}",
            role=role,
        )
        if tier != "FREE":
            billing.update_subscription(user.id, tier=tier)
        return user

    return _make


@pytest.fixture()
def make_card():
    def _make(user, first_name: str = "Ada", last_name: str = "Lovelace", **extra):
        return CardService().create(user.id, {"first_name": first_name, "last_name": last_name, **extra})

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {issue_token(user)}"}

    return _headers


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    from nexus_cards.app import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
