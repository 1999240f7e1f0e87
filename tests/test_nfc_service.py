from __future__ import annotations

import pytest

from nexus_cards.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from nexus_cards.repositories.analytics import AnalyticsRepository
from nexus_cards.repositories.nfc import NfcTagRepository
from nexus_cards.services.nfc_service import NfcService


def _import_one(uid: str = "04a1b2c3d4") -> str:
    NfcService().import_tags([uid])
    return NfcTagRepository().get_by_uid(uid.upper()).id


def test_import_normalizes_and_skips_duplicates():
    svc = NfcService()
    first = svc.import_tags(["04aa", " 04AA ", "", "04bb", "x" * 65])
    assert first == {"imported": 2, "skipped": 2, "errors": [f"{'X' * 16}...: UID longer than 64 characters"]}

    second = svc.import_tags(["04AA", "04cc"])
    assert second["imported"] == 1
    assert second["skipped"] == 1
    assert svc.stats() == {"total": 3, "unassociated": 3, "associated": 0, "deactivated": 0}


def test_associate_and_resolve_redirects_with_uid(make_user, make_card):
    user = make_user()
    card = make_card(user)
    tag_id = _import_one()
    svc = NfcService()

    tag = svc.associate(tag_id, user.id, card.id)
    assert tag.status == "ASSOCIATED"
    assert tag.assigned_user_id == user.id

    result = svc.resolve("04a1b2c3d4", user_agent="Mozilla (Android)")
    assert result.action == "REDIRECT"
    assert result.redirect_url == f"/p/{card.slug}?uid=04A1B2C3D4"
    assert NfcTagRepository().get(tag_id).tap_count == 1
    event = AnalyticsRepository().recent(event_type="NFC_TAP")[0]
    assert event.card_id == card.id
    assert event.source == "NFC"


def test_resolve_unknown_unassociated_and_deactivated():
    svc = NfcService()
    assert svc.resolve("nope").status == "UNKNOWN"

    tag_id = _import_one("04dd")
    pending = svc.resolve("04dd")
    assert (pending.status, pending.action, pending.tag_id) == ("UNASSOCIATED", "SHOW_ASSOCIATION_SCREEN", tag_id)

    svc.revoke(tag_id)
    revoked = svc.resolve("04dd")
    assert (revoked.status, revoked.action) == ("DEACTIVATED", "SHOW_ERROR")


def test_associate_rules(make_user, make_card):
    owner, other = make_user(), make_user()
    card = make_card(owner)
    other_card = make_card(other, "Grace", "Hopper")
    tag_id = _import_one()
    svc = NfcService()

    with pytest.raises(PermissionDeniedError):
        svc.associate(tag_id, owner.id, other_card.id)
    svc.associate(tag_id, owner.id, card.id)
    with pytest.raises(PermissionDeniedError):
        svc.associate(tag_id, other.id, other_card.id)
    with pytest.raises(ConflictError):
        svc.associate(tag_id, owner.id, card.id)

    with pytest.raises(PermissionDeniedError):
        svc.disassociate(tag_id, other.id)
    tag = svc.disassociate(tag_id, owner.id)
    assert (tag.status, tag.card_id) == ("UNASSOCIATED", None)
    with pytest.raises(ValidationError):
        svc.disassociate(tag_id, owner.id)


def test_admin_assign_and_revoke(make_user, make_card):
    user = make_user(email="owner@example.com")
    tag_id = _import_one()
    svc = NfcService()

    assert svc.assign_to_user(tag_id, user_email="OWNER@example.com").assigned_user_id == user.id
    with pytest.raises(NotFoundError):
        svc.assign_to_user(tag_id, user_id="missing")
    with pytest.raises(ValidationError):
        svc.assign_to_user(tag_id)

    revoked = svc.revoke(tag_id)
    assert revoked.status == "DEACTIVATED"
    with pytest.raises(ValidationError):
        svc.assign_to_user(tag_id, user_id=user.id)
    with pytest.raises(PermissionDeniedError):
        svc.associate(tag_id, user.id, make_card(user).id)


def test_listing_for_owner_and_card(make_user, make_card):
    user = make_user("PRO")
    card_a = make_card(user)
    card_b = make_card(user, "Other", "Card")
    svc = NfcService()
    svc.import_tags(["01", "02", "03"])
    repo = NfcTagRepository()
    svc.associate(repo.get_by_uid("01").id, user.id, card_a.id)
    svc.associate(repo.get_by_uid("02").id, user.id, card_b.id)
    svc.assign_to_user(repo.get_by_uid("03").id, user_id=user.id)

    assert {t.uid for t in svc.list_for_user(user.id)} == {"01", "02", "03"}
    assert [t.uid for t in svc.list_for_card(card_a.id, user.id)] == ["01"]

    tags, total = svc.list_all(status="associated")
    assert total == 2
    assert {t.uid for t in tags} == {"01", "02"}
    tags, total = svc.list_all(skip=0, take=1)
    assert (len(tags), total) == (1, 3)
