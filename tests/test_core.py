from __future__ import annotations

import jwt
import pytest
from fastapi import HTTPException
from starlette.requests import Request

from nexus_cards.core import mailer
from nexus_cards.core.rate_limiter import FixedWindowLimiter, client_ip, rate_limit_ip
from nexus_cards.core.security import hash_password, verify_password
from nexus_cards.core.tokens import create_access_token, decode_access_token
from nexus_cards.core.totp import (
    generate_backup_codes,
    generate_secret,
    hash_backup_codes,
    match_backup_code,
    provisioning_uri,
    totp_now,
    verify_totp,
)
from nexus_cards.core.utils import absolute_url, device_type, normalize_external_url, visitor_hash


def _request(ip: str = "10.0.0.1", forwarded: str | None = None) -> Request:
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers, "client": (ip, 1234)})


def test_password_hash_roundtrip():
    stored = hash_password("correct horse")
    assert stored.startswith("$argon2")
    assert verify_password("correct horse", stored)
    assert not verify_password("wrong", stored)
    assert not verify_password("anything", None)


def test_access_token_carries_identity():
    token = create_access_token(user_id="u1", email="a@b.c", role="ADMIN")
    payload = decode_access_token(token)
    assert (payload.user_id, payload.email, payload.role) == ("u1", "a@b.c", "ADMIN")
    assert payload.expires_at > payload.issued_at


def test_expired_or_tampered_token_is_rejected():
    expired = create_access_token(user_id="u1", email="a@b.c", role="USER", ttl_seconds=-10)
    with pytest.raises(jwt.PyJWTError):
        decode_access_token(expired)
    forged = jwt.encode({"sub": "u1", "iat": 0, "exp": 4_000_000_000}, "not-the-secret", algorithm="HS256")
    with pytest.raises(jwt.PyJWTError):
        decode_access_token(forged)


def test_totp_accepts_codes_inside_the_window():
    secret = generate_secret()
    now = 1_700_000_000
    assert verify_totp(secret, totp_now(secret, timestamp=now), timestamp=now)
    assert verify_totp(secret, totp_now(secret, timestamp=now - 60), timestamp=now)
    assert not verify_totp(secret, totp_now(secret, timestamp=now - 300), timestamp=now)
    assert not verify_totp(secret, "12ab", timestamp=now)


def test_totp_known_vector():
    # RFC 6238 SHA1 test secret "12345678901234567890" at T=59 -> 94287082 (last 6 digits).
    secret = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
    assert totp_now(secret, timestamp=59) == "287082"


def test_provisioning_uri_has_issuer_and_secret():
    uri = provisioning_uri("ABC", "ada@example.com")
    assert uri.startswith("otpauth://totp/Nexus%20Cards%3Aada%40example.com?")
    assert "secret=ABC" in uri


def test_backup_codes_are_hashed_and_matched_case_insensitively():
    codes = generate_backup_codes(8)
    assert len(set(codes)) == 8
    hashes = hash_backup_codes(codes)
    assert codes[0] not in hashes
    assert match_backup_code(codes[0].lower().replace("-", ""), hashes) == hashes[0]
    assert match_backup_code("ZZZZ-ZZZZ", hashes) is None


def test_rate_limit_blocks_after_limit():
    req = _request()
    for _ in range(3):
        rate_limit_ip(req, "test", limit=3, window_seconds=60)
    with pytest.raises(HTTPException) as exc:
        rate_limit_ip(req, "test", limit=3, window_seconds=60)
    assert exc.value.status_code == 429
    assert exc.value.headers["Retry-After"] == "60"
    # Other clients keep their own budget.
    rate_limit_ip(_request("10.0.0.2"), "test", limit=3, window_seconds=60)


def test_fixed_window_resets_after_the_window():
    now = [100.0]
    limiter = FixedWindowLimiter(clock=lambda: now[0])
    assert limiter.hit("k", 1, 10) is None
    assert limiter.hit("k", 1, 10) == 10.0
    now[0] = 104.0
    assert limiter.hit("k", 1, 10) == 6.0
    now[0] = 110.0
    assert limiter.hit("k", 1, 10) is None


def test_client_ip_prefers_forwarded_header():
    assert client_ip(_request(forwarded="1.2.3.4, 10.0.0.1")) == "1.2.3.4"
    assert client_ip(_request("9.9.9.9")) == "9.9.9.9"


def test_url_helpers():
    assert absolute_url("/p/ada") == "https://cards.test/p/ada"
    assert absolute_url("https://other.test/x") == "https://other.test/x"
    assert normalize_external_url("example.com") == "https://example.com"
    assert normalize_external_url("mailto:a@b.c") == "mailto:a@b.c"
    assert normalize_external_url("  ") == ""


def test_device_type_and_visitor_hash():
    assert device_type("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0)") == "mobile"
    assert device_type("Mozilla/5.0 (iPad; CPU OS 17_0)") == "tablet"
    assert device_type("Mozilla/5.0 (X11; Linux x86_64)") == "desktop"
    assert visitor_hash("1.1.1.1", "ua") == visitor_hash("1.1.1.1", "ua")
    assert visitor_hash("1.1.1.1", "ua") != visitor_hash("1.1.1.2", "ua")


def test_send_email_skips_without_smtp():
    assert mailer.send_email("Hi", "a@b.c", "<p>hi</p>") is False
