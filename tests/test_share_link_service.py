from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import unquote

import pytest

from nexus_cards.core.errors import AuthenticationError, NotFoundError, PermissionDeniedError, ValidationError
from nexus_cards.repositories.share_links import ShareLinkRepository
from nexus_cards.services.activity_log_service import ActivityLogService
from nexus_cards.services.share_link_service import ShareLinkService, channel_urls


def _soon(days: int = 1) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


def test_create_hides_the_password_hash(make_user, make_card):
    user = make_user()
    card = make_card(user, status="DRAFT")
    link = ShareLinkService().create(user.id, {"card_id": card.id, "name": "Conference", "password": "hunter22"})

    assert link["url"] == f"https://cards.test/s/{link['token']}"
    assert link["has_password"] is True
    assert link["is_expired"] is False
    assert link["channel"] == "DIRECT"
    assert link["allow_contact_submission"] is True
    assert "password_hash" not in link
    assert len(link["token"]) >= 40


def test_create_checks_owner_expiry_and_password(make_user, make_card):
    owner = make_user()
    card = make_card(owner)
    svc = ShareLinkService()

    with pytest.raises(PermissionDeniedError):
        svc.create(make_user().id, {"card_id": card.id})
    with pytest.raises(NotFoundError):
        svc.create(owner.id, {"card_id": "missing"})
    with pytest.raises(ValidationError):
        svc.create(owner.id, {"card_id": card.id, "expires_at": _soon(-1)})
    with pytest.raises(ValidationError):
        svc.create(owner.id, {"card_id": card.id, "password": "abc"})
    with pytest.raises(ValidationError):
        svc.create(owner.id, {"card_id": card.id, "channel": "FAX"})


def test_open_counts_shares_and_checks_the_password(make_user, make_card):
    user = make_user()
    card = make_card(user, status="DRAFT")
    svc = ShareLinkService()
    link = svc.create(user.id, {"card_id": card.id, "password": "hunter22"})

    with pytest.raises(AuthenticationError) as missing:
        svc.open(link["token"])
    assert missing.value.code == "SHARE_LINK_PASSWORD_REQUIRED"
    with pytest.raises(AuthenticationError) as wrong:
        svc.open(link["token"], "nope-nope")
    assert wrong.value.code == "SHARE_LINK_PASSWORD_INVALID"

    shared = svc.open(link["token"], "hunter22")
    assert shared.card.id == card.id
    svc.open(link["token"], "hunter22")
    stored = svc.get(user.id, link["id"])
    assert stored["share_count"] == 2
    assert stored["last_accessed_at"] is not None


def test_revoked_and_expired_links_stop_working(make_user, make_card):
    user = make_user()
    card = make_card(user)
    svc = ShareLinkService()
    revoked = svc.create(user.id, {"card_id": card.id})
    expired = svc.create(user.id, {"card_id": card.id, "expires_at": _soon()})
    kept = svc.create(user.id, {"card_id": card.id, "channel": "WHATSAPP"})

    svc.revoke(user.id, revoked["id"])
    ShareLinkRepository().update(expired["id"], expires_at=_soon(-1))

    with pytest.raises(AuthenticationError) as gone:
        svc.open(revoked["token"])
    assert gone.value.code == "SHARE_LINK_REVOKED"
    with pytest.raises(AuthenticationError) as late:
        svc.open(expired["token"])
    assert late.value.code == "SHARE_LINK_EXPIRED"
    with pytest.raises(NotFoundError):
        svc.open("no-such-token")
    assert svc.find_usable(revoked["token"]) is None
    assert svc.find_usable(expired["token"]) is None

    listed = svc.list_for_card(user.id, card.id)
    assert [link["id"] for link in listed] == [kept["id"], expired["id"]]
    assert listed[1]["is_expired"] is True
    with pytest.raises(NotFoundError):
        svc.get(user.id, revoked["id"])

    actions = [entry.action for entry in ActivityLogService().recent(user.id)]
    assert actions.count("SHARE_LINK_CREATED") == 3
    assert "SHARE_LINK_REVOKED" in actions


def test_update_can_clear_the_password(make_user, make_card):
    user = make_user()
    card = make_card(user)
    svc = ShareLinkService()
    link = svc.create(user.id, {"card_id": card.id, "password": "hunter22"})

    updated = svc.update(user.id, link["id"], {"password": None, "allow_contact_submission": None, "name": "Booth"})
    assert updated["has_password"] is False
    assert updated["allow_contact_submission"] is True
    assert updated["name"] == "Booth"
    assert svc.open(link["token"]).card.id == card.id

    with pytest.raises(PermissionDeniedError):
        svc.update(make_user().id, link["id"], {"name": "Mine"})


def test_archived_cards_cannot_be_opened(make_user, make_card):
    user = make_user()
    card = make_card(user)
    svc = ShareLinkService()
    link = svc.create(user.id, {"card_id": card.id})
    svc.card_service.archive(card.id, user.id)
    with pytest.raises(NotFoundError):
        svc.open(link["token"])


def test_channel_urls_encode_link_and_title():
    urls = channel_urls("https://cards.test/s/abc", "Ada Lovelace")
    assert urls["whatsapp"].startswith("https://wa.me/?text=")
    assert "https%3A%2F%2Fcards.test%2Fs%2Fabc" in urls["linkedin"]
    assert unquote(urls["email"]).startswith("mailto:?subject=Ada Lovelace&body=Check out my digital business card")
    assert set(urls) == {"whatsapp", "telegram", "sms", "email", "linkedin"}
