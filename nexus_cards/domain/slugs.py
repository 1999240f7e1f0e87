"""Domain helpers for slug generation and validation."""
from __future__ import annotations

import re
import unicodedata
from typing import Callable

SLUG_PATTERN = re.compile(r"[a-z0-9](?:[a-z0-9-]{0,118}[a-z0-9])?")
RESERVED_SLUGS = {
    "admin",
    "api",
    "auth",
    "billing",
    "cards",
    "components",
    "contacts",
    "health",
    "nfc",
    "p",
    "public",
    "static",
    "t",
    "uploads",
    "users",
}


def slugify(value: str | None) -> str:
    """Lower-case ASCII slug: accents stripped, runs of other chars become '-'."""
    text = unicodedata.normalize("NFKD", value or "")
    text = text.encode("ascii", "ignore").decode("ascii").lower()
    text = re.sub(r"[^a-z0-9]+", "-", text).strip("-")
    return text[:100].strip("-") or "card"


def is_valid_slug(value: str | None) -> bool:
    """Return True when slug matches allowed pattern and is not reserved."""
    if not value:
        return False
    return bool(SLUG_PATTERN.fullmatch(value)) and value not in RESERVED_SLUGS


def unique_slug(first_name: str, last_name: str, exists: Callable[[str], bool]) -> str:
    """Slug for "first last"; numbered -1, -2, ... while ``exists`` reports a clash."""
    base = slugify(f"{first_name} {last_name}")
    if base in RESERVED_SLUGS:
        base = f"{base}-card"
    candidate = base
    counter = 1
    while exists(candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate
