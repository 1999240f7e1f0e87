"""
Utility helpers shared across routers/services.
"""

import hashlib
import re
from typing import Optional

from .config import get_settings

_TABLET_RE = re.compile(r"tablet|ipad", re.IGNORECASE)
_MOBILE_RE = re.compile(r"mobile|android|iphone", re.IGNORECASE)


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path into an absolute URL using PUBLIC_BASE_URL.
    """
    settings = get_settings()
    base_url = (base or settings.public_base_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def normalize_external_url(value: str) -> str:
    """
    Give user-provided links a scheme (https://) when missing.
    mailto: and tel: are kept untouched.
    """
    v = (value or "").strip()
    if not v:
        return ""
    if re.match(r"^(https?://|mailto:|tel:)", v, re.IGNORECASE):
        return v
    return "https://" + v.lstrip("/")


def device_type(user_agent: str | None) -> str:
    ua = user_agent or ""
    if _TABLET_RE.search(ua):
        return "tablet"
    if _MOBILE_RE.search(ua):
        return "mobile"
    return "desktop"


def visitor_hash(ip: str | None, user_agent: str | None) -> str:
    """Stable pseudonymous visitor id; the raw IP is never stored."""
    raw = f"{ip or ''}|{user_agent or ''}".encode("utf-8")
    return hashlib.sha256(raw).hexdigest()[:32]
