from __future__ import annotations

import csv
import io
import json

from PIL import Image

from nexus_cards.core import config as core_config
from nexus_cards.integrations.stripe_gateway import WebhookSignatureError
from nexus_cards.repositories.nfc import NfcTagRepository
from nexus_cards.routers.deps import get_billing_service
from nexus_cards.services.billing_service import BillingService
from nexus_cards.services.nfc_service import NfcService

PASSWORD = "correct-horse-1"


def test_health_and_security_headers(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "env": "test"}
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert "default-src 'self'" in resp.headers["Content-Security-Policy"]


def test_register_login_and_me(client, sent_emails):
    resp = client.post(
        "/auth/register",
        json={"email": "New@Example.com", "password": PASSWORD, "first_name": "New", "last_name": "Person"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == "new@example.com"
    assert body["token_type"] == "bearer"
    assert len(sent_emails) == 1

    dup = client.post("/auth/register", json={"email": "new@example.com", "password": PASSWORD})
    assert dup.status_code == 409

    bad = client.post("/auth/login", json={"email": "new@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401

    token = client.post("/auth/login", json={"email": "new@example.com", "password": PASSWORD}).json()["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["first_name"] == "New"


def test_login_is_rate_limited(client, make_user):
    user = make_user()
    payload = {"email": user.email, "password": "wrong-pass"}
    codes = [client.post("/auth/login", json=payload).status_code for _ in range(6)]
    assert codes == [401] * 5 + [429]


def test_protected_routes_need_a_token(client):
    assert client.get("/cards").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"}).status_code == 401


def test_card_crud_and_tier_limit(client, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)

    created = client.post("/cards", json={"first_name": "Ada", "last_name": "Lovelace"}, headers=headers)
    assert created.status_code == 201
    card = created.json()
    assert card["slug"] == "ada-lovelace"

    again = client.post("/cards", json={"first_name": "Second", "last_name": "Card"}, headers=headers)
    assert again.status_code == 403
    assert again.json()["code"] == "CARD_LIMIT_REACHED"

    patched = client.patch(f"/cards/{card['id']}", json={"job_title": "Analyst"}, headers=headers)
    assert patched.json()["job_title"] == "Analyst"
    assert [c["id"] for c in client.get("/cards", headers=headers).json()] == [card["id"]]

    other = auth_headers(make_user())
    denied = client.get(f"/cards/{card['id']}", headers=other)
    assert denied.status_code == 403
    assert denied.json()["code"] == "CARD_ACCESS_DENIED"

    assert client.delete(f"/cards/{card['id']}", headers=headers).status_code == 204
    assert client.get("/cards", headers=headers).json() == []


def test_components_endpoints(client, make_user, make_card, auth_headers):
    user = make_user()
    card = make_card(user)
    headers = auth_headers(user)

    available = client.get("/components/available", headers=headers).json()
    assert available["max_components"] == 3

    about = client.post(f"/cards/{card.id}/components", json={"type": "ABOUT", "config": {"text": "Hi"}}, headers=headers)
    assert about.status_code == 201
    gallery = client.post(f"/cards/{card.id}/components", json={"type": "GALLERY"}, headers=headers)
    assert gallery.status_code == 403
    assert gallery.json()["code"] == "COMPONENT_NOT_IN_TIER"

    listed = client.get(f"/cards/{card.id}/components", headers=headers).json()
    assert [c["type"] for c in listed] == ["ABOUT"]


def test_public_page_vcard_and_qr(client, make_user, make_card):
    card = make_card(make_user(), job_title="Mathematician")

    page = client.get(f"/p/{card.slug}")
    assert page.status_code == 200
    assert "text/html" in page.headers["content-type"]
    assert "Ada Lovelace" in page.text
    assert f"/p/{card.slug}.vcf" in page.text

    vcf = client.get(f"/p/{card.slug}.vcf")
    assert vcf.headers["content-type"].startswith("text/vcard")
    assert 'filename="ada-lovelace.vcf"' in vcf.headers["content-disposition"]
    assert "FN:Ada Lovelace" in vcf.text

    qr = client.get(f"/p/{card.slug}/qr.png")
    assert qr.headers["content-type"] == "image/png"
    assert qr.content.startswith(b"\x89PNG")

    missing = client.get("/p/nobody-here")
    assert missing.status_code == 404
    assert "Card not found" in missing.text

    public = client.get(f"/public/cards/{card.slug}").json()
    assert public["card"]["first_name"] == "Ada"
    assert "user_id" not in public["card"]


def test_nfc_tap_redirects_to_card(client, make_user, make_card):
    user = make_user()
    card = make_card(user)
    svc = NfcService()
    svc.import_tags(["04AABBCC", "04DDEEFF"])
    svc.associate(NfcTagRepository().get_by_uid("04AABBCC").id, user.id, card.id)

    resp = client.get("/t/04aabbcc", follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == f"/p/{card.slug}?uid=04AABBCC"

    pending = client.get("/t/04DDEEFF")
    assert pending.status_code == 200
    assert "Tag not linked yet" in pending.text
    assert client.get("/t/unknown").status_code == 404

    resolved = client.get("/nfc/resolve/04AABBCC").json()
    assert resolved["action"] == "REDIRECT"


def test_public_contact_and_export(client, make_user, make_card, auth_headers):
    user = make_user()
    card = make_card(user)

    resp = client.post(
        f"/public/cards/{card.slug}/contacts",
        json={"first_name": "Grace", "last_name": "Hopper", "email": "grace@example.com"},
    )
    assert resp.status_code == 201

    click = client.post(f"/public/cards/{card.slug}/clicks", json={"url": "https://example.com"})
    assert click.status_code == 202

    headers = auth_headers(user)
    assert [c["first_name"] for c in client.get("/contacts", headers=headers).json()] == ["Grace"]

    export = client.post("/contacts/export", json={"format": "CSV"}, headers=headers)
    assert export.status_code == 200
    assert 'filename="contacts.csv"' in export.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(export.text)))
    assert rows[1][:3] == ["Grace", "Hopper", "grace@example.com"]

    report = client.get("/analytics", params={"timeRange": "7d"}, headers=headers).json()
    assert report["contact_exchanges"] == 1
    assert report["link_clicks"] == 1


def test_admin_routes_require_admin_role(client, make_user, auth_headers):
    user_headers = auth_headers(make_user())
    admin_headers = auth_headers(make_user(role="ADMIN"))

    assert client.get("/admin/settings", headers=user_headers).status_code == 403
    assert client.post("/nfc/admin/import", json={"uids": ["01"]}, headers=user_headers).status_code == 403

    created = client.post(
        "/admin/settings",
        json={"key": "signup.enabled", "value": True, "category": "auth"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    assert client.get("/admin/settings/signup.enabled", headers=admin_headers).json()["value"] is True

    imported = client.post("/nfc/admin/import", json={"uids": ["01", "01", "02"]}, headers=admin_headers).json()
    assert (imported["imported"], imported["skipped"]) == (2, 1)
    overview = client.get("/admin/analytics/overview", headers=admin_headers).json()
    assert overview["total_users"] == 2


def test_billing_is_503_without_stripe(client, make_user, auth_headers):
    resp = client.post("/billing/checkout-session", json={"tier": "PRO"}, headers=auth_headers(make_user()))
    assert resp.status_code == 503
    assert resp.json()["code"] == "BILLING_DISABLED"


def test_webhook_uses_the_raw_body(client):
    class Gateway:
        webhook_secret = "whsec_test"

        def construct_event(self, payload, signature):
            if signature != "t=1,v1=ok":
                raise WebhookSignatureError("bad signature")
            return json.loads(payload)

    client.app.dependency_overrides[get_billing_service] = lambda: BillingService(gateway=Gateway())
    body = json.dumps({"id": "evt_1", "type": "ping", "data": {"object": {}}})
    try:
        forged = client.post("/billing/webhook", content=body, headers={"stripe-signature": "nope"})
        assert forged.status_code == 400
        ok = client.post("/billing/webhook", content=body, headers={"stripe-signature": "t=1,v1=ok"})
        assert ok.json() == {"received": True, "duplicate": False}
        replay = client.post("/billing/webhook", content=body, headers={"stripe-signature": "t=1,v1=ok"})
        assert replay.json()["duplicate"] is True
    finally:
        client.app.dependency_overrides.clear()


def test_upload_and_serve_file(client, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    buffer = io.BytesIO()
    Image.new("RGB", (64, 64), (0, 128, 255)).save(buffer, format="PNG")

    resp = client.post(
        "/file-upload/profile-photo",
        files={"file": ("me.png", buffer.getvalue(), "image/png")},
        headers=headers,
    )
    assert resp.status_code == 201
    stored = resp.json()

    served = client.get(stored["url"])
    assert served.status_code == 200
    assert served.content.startswith(b"\xFF\xD8\xFF")

    bad = client.post("/file-upload/profile-photo", files={"file": ("x.png", b"not an image", "image/png")}, headers=headers)
    assert bad.status_code == 400

    assert client.delete(f"/file-upload/profile-photo/{stored['filename']}", headers=headers).status_code == 204
    assert client.get(stored["url"]).status_code == 404


def test_patch_with_explicit_nulls_keeps_required_fields(client, make_user, make_card, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    card = make_card(user)

    resp = client.patch(f"/cards/{card.id}", json={"status": None, "theme": None}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "PUBLISHED"
    assert resp.json()["theme"] == {}
    assert client.get(f"/cards/{card.id}", headers=headers).status_code == 200

    component = client.post(f"/cards/{card.id}/components", json={"type": "ABOUT"}, headers=headers).json()
    patched = client.patch(
        f"/cards/{card.id}/components/{component['id']}", json={"enabled": None, "order": None}, headers=headers
    )
    assert patched.status_code == 200
    assert patched.json()["enabled"] is True

    contact = client.post("/contacts", json={"first_name": "Grace", "last_name": "Hopper"}, headers=headers).json()
    patched = client.patch(f"/contacts/{contact['id']}", json={"favorite": None, "tags": None}, headers=headers)
    assert patched.status_code == 200
    assert patched.json()["favorite"] is False


def test_unarchive_past_the_card_limit_is_refused(client, make_user, make_card, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    first = make_card(user)
    assert client.delete(f"/cards/{first.id}", headers=headers).status_code == 204
    assert client.post("/cards", json={"first_name": "Second", "last_name": "Card"}, headers=headers).status_code == 201

    resp = client.patch(f"/cards/{first.id}", json={"status": "PUBLISHED"}, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "CARD_LIMIT_REACHED"
    assert len(client.get("/cards", headers=headers).json()) == 1


def test_profile_update(client, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    resp = client.patch(
        "/users/me/profile",
        json={"company": "Navy", "avatar_url": "https://img.test/me.png", "language": "en"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["company"] == "Navy"
    assert resp.json()["avatar_url"] == "https://img.test/me.png"
    assert client.get("/users/me", headers=headers).json()["language"] == "en"
    assert client.patch("/users/me/profile", json={"first_name": "A"}, headers=headers).status_code == 422


def test_admin_user_management(client, make_user, make_card, auth_headers):
    admin_headers = auth_headers(make_user(role="ADMIN", email="root@example.com"))
    user = make_user(email="grace@example.com")
    card = make_card(user)
    assert client.get("/admin/users", headers=auth_headers(user)).status_code == 403

    listed = client.get("/admin/users", params={"search": "GRACE"}, headers=admin_headers).json()
    assert listed["total"] == 1
    assert listed["users"][0]["subscription"]["tier"] == "FREE"
    assert "password_hash" not in listed["users"][0]

    override = client.patch(f"/admin/users/{user.id}/subscription", json={"tier": "PREMIUM"}, headers=admin_headers)
    assert override.json()["subscription"]["tier"] == "PREMIUM"
    user_headers = auth_headers(user)
    assert client.get("/components/available", headers=user_headers).json()["max_components"] == 999

    role = client.patch(f"/admin/users/{user.id}/role", json={"role": "ADMIN"}, headers=admin_headers)
    assert role.json()["role"] == "ADMIN"
    assert client.patch(f"/admin/users/{user.id}/role", json={"role": "OWNER"}, headers=admin_headers).status_code == 422

    client.get(f"/p/{card.slug}")
    usage = client.get(f"/admin/users/{user.id}/usage", headers=admin_headers).json()
    assert usage["tier"] == "PREMIUM"
    assert usage["cards"] == {"current": 1, "limit": -1, "percentage": 0.0}
    assert usage["recent_activity"]["card_views"] == 1

    details = client.get(f"/admin/users/{user.id}", headers=admin_headers).json()
    assert details["stats"] == {"cards_count": 1, "contacts_count": 0}
    stats = client.get("/admin/users/stats/overview", headers=admin_headers).json()
    assert stats["total_users"] == 2
    assert stats["admin_users"] == 2
    assert stats["by_tier"] == {"FREE": 1, "PRO": 0, "PREMIUM": 1}
    assert client.get("/admin/users/missing", headers=admin_headers).status_code == 404


def test_oversized_upload_is_rejected(client, make_user, auth_headers, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "16")
    core_config.get_settings.cache_clear()
    resp = client.post(
        "/file-upload/contact-attachment",
        files={"file": ("a.pdf", b"%PDF-" + b"x" * 1000, "application/pdf")},
        headers=auth_headers(make_user()),
    )
    assert resp.status_code == 400
    assert "exceeds" in resp.json()["detail"]


def test_share_links_end_to_end(client, make_user, make_card, auth_headers):
    user = make_user()
    card = make_card(user, status="DRAFT")
    headers = auth_headers(user)

    created = client.post("/share-links", json={"card_id": card.id, "channel": "EMAIL"}, headers=headers)
    assert created.status_code == 201
    link = created.json()
    token = link["token"]

    public = client.get(f"/public/share/{token}").json()
    assert public["requires_password"] is False
    assert public["card"]["first_name"] == "Ada"
    page = client.get(f"/s/{token}")
    assert page.status_code == 200
    assert "Ada Lovelace" in page.text

    urls = client.get(f"/share-links/{link['id']}/channel-urls", headers=headers).json()
    assert urls["linkedin"].endswith("cards.test%2Fs%2F" + token)

    locked = client.put(f"/share-links/{link['id']}", json={"password": "hunter22"}, headers=headers)
    assert locked.json()["has_password"] is True
    assert client.get(f"/public/share/{token}").json() == {
        "requires_password": True,
        "allow_contact_submission": True,
        "card": None,
        "components": [],
    }
    assert client.get(f"/s/{token}").status_code == 401
    wrong = client.post(f"/public/share/{token}/validate-password", json={"password": "nope-nope"})
    assert (wrong.status_code, wrong.json()["code"]) == (401, "SHARE_LINK_PASSWORD_INVALID")
    unlocked = client.post(f"/public/share/{token}/validate-password", json={"password": "hunter22"})
    assert unlocked.json()["card"]["id"] == card.id
    valid = client.post("/share-links/validate", json={"token": token, "password": "hunter22"}).json()
    assert valid == {"valid": True, "card_id": card.id, "allow_contact_submission": True}

    listed = client.get(f"/share-links/card/{card.id}", headers=headers).json()
    assert listed[0]["share_count"] == 4
    assert client.get(f"/share-links/card/{card.id}", headers=auth_headers(make_user())).status_code == 403

    assert client.delete(f"/share-links/{link['id']}", headers=headers).status_code == 204
    assert client.get(f"/share-links/card/{card.id}", headers=headers).json() == []
    assert client.get(f"/public/share/{token}").status_code == 401
    assert "Link unavailable" in client.get(f"/s/{token}").text


def test_admin_activity_log(client, make_user, auth_headers):
    admin = make_user(role="ADMIN")
    admin_headers = auth_headers(admin)
    user = make_user()
    client.patch(f"/admin/users/{user.id}/role", json={"role": "ADMIN"}, headers=admin_headers)
    client.patch(f"/admin/users/{user.id}/subscription", json={"tier": "PRO"}, headers=admin_headers)
    client.patch(f"/admin/users/{user.id}/subscription", json={"tier": "PREMIUM"}, headers=admin_headers)
    assert client.get("/admin/activity-logs", headers=auth_headers(make_user())).status_code == 403

    page = client.get("/admin/activity-logs", params={"action": "SUBSCRIPTION_OVERRIDDEN"}, headers=admin_headers)
    body = page.json()
    assert (body["total"], body["page"], body["total_pages"]) == (2, 1, 1)
    assert body["logs"][0]["metadata"] == {"tier": "PREMIUM"}
    assert body["logs"][0]["entity_id"] == user.id

    stats = client.get("/admin/activity-logs/stats", headers=admin_headers).json()
    assert stats == [{"action": "SUBSCRIPTION_OVERRIDDEN", "count": 2}, {"action": "USER_ROLE_CHANGED", "count": 1}]
    recent = client.get("/admin/activity-logs/recent", params={"user_id": admin.id, "limit": 1}, headers=admin_headers)
    assert [entry["action"] for entry in recent.json()] == ["SUBSCRIPTION_OVERRIDDEN"]
