"""TOTP helpers (RFC 6238) and recovery codes for two-factor auth."""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import struct
import time
from collections.abc import Iterable
from urllib.parse import quote

DIGITS = 6
PERIOD_SECONDS = 30
ISSUER = "Nexus Cards"


def generate_secret() -> str:
    """20 random bytes encoded as 32 base32 characters."""
    return base64.b32encode(secrets.token_bytes(20)).decode("ascii").rstrip("=")


def _decode_secret(secret: str) -> bytes:
    candidate = secret.strip().replace(" ", "").upper()
    padding = "=" * ((8 - len(candidate) % 8) % 8)
    return base64.b32decode(candidate + padding, casefold=True)


def _hotp(key: bytes, counter: int) -> str:
    digest = hmac.new(key, struct.pack(">Q", counter), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    code = struct.unpack(">I", digest[offset : offset + 4])[0] & 0x7FFFFFFF
    return str(code % (10**DIGITS)).zfill(DIGITS)


def totp_now(secret: str, *, timestamp: int | None = None) -> str:
    ts = int(time.time() if timestamp is None else timestamp)
    return _hotp(_decode_secret(secret), ts // PERIOD_SECONDS)


def verify_totp(secret: str, code: str, *, timestamp: int | None = None, window: int = 2) -> bool:
    """Accept codes up to ``window`` periods before or after now."""
    candidate = "".join(ch for ch in (code or "") if ch.isdigit())
    if len(candidate) != DIGITS:
        return False
    ts = int(time.time() if timestamp is None else timestamp)
    counter = ts // PERIOD_SECONDS
    key = _decode_secret(secret)
    return any(
        hmac.compare_digest(_hotp(key, counter + delta), candidate)
        for delta in range(-window, window + 1)
    )


def provisioning_uri(secret: str, account: str) -> str:
    label = quote(f"{ISSUER}:{account}")
    return f"otpauth://totp/{label}?secret={secret}&issuer={quote(ISSUER)}&digits={DIGITS}&period={PERIOD_SECONDS}"


def generate_backup_codes(count: int = 8) -> list[str]:
    alphabet = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
    codes: list[str] = []
    while len(codes) < count:
        code = "".join(secrets.choice(alphabet) for _ in range(4)) + "-" + "".join(secrets.choice(alphabet) for _ in range(4))
        if code not in codes:
            codes.append(code)
    return codes


def _normalize_backup_code(code: str) -> str:
    return "".join(ch for ch in (code or "").strip().upper() if ch.isalnum())


def hash_backup_code(code: str) -> str:
    digest = hashlib.sha256(_normalize_backup_code(code).encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def hash_backup_codes(codes: Iterable[str]) -> list[str]:
    return [hash_backup_code(code) for code in codes if _normalize_backup_code(code)]


def match_backup_code(candidate: str, hashes: Iterable[str]) -> str | None:
    """Return the stored hash matching ``candidate`` so the caller can consume it."""
    if len(_normalize_backup_code(candidate)) != 8:
        return None
    encoded = hash_backup_code(candidate)
    for expected in hashes:
        if hmac.compare_digest(encoded, expected):
            return expected
    return None
