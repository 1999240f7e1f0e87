"""Helpers for the public card page: render model, vCard and QR code."""
from __future__ import annotations

import base64
import io
import re
from typing import Iterable, Optional

import qrcode

from nexus_cards.core.utils import absolute_url, normalize_external_url
from nexus_cards.db.models import Card, CardComponent, Contact
from nexus_cards.domain.css import sanitize_css

DEFAULT_AVATAR = "/static/img/avatar.svg"
DEFAULT_ACCENT = "#2563EB"

FONT_SCALES = {"S": "0.9", "M": "1", "L": "1.1", "XL": "1.2"}
RADIUS_PRESETS = {
    "rounded-none": "0",
    "rounded-sm": "4px",
    "rounded-md": "8px",
    "rounded-lg": "12px",
    "rounded-xl": "16px",
    "rounded-2xl": "24px",
    "rounded-full": "9999px",
}
SHADOW_PRESETS = {
    "none": "none",
    "sm": "0 1px 2px rgba(0,0,0,.08)",
    "md": "0 4px 12px rgba(0,0,0,.12)",
    "lg": "0 12px 32px rgba(0,0,0,.18)",
}


def _normalize_hex_color(value: str | None, fallback: str = DEFAULT_ACCENT) -> str:
    if not value:
        return fallback
    v = value.strip()
    if re.fullmatch(r"#([0-9a-fA-F]{6})", v):
        return v.upper()
    if re.fullmatch(r"[0-9a-fA-F]{6}", v):
        return ("#" + v).upper()
    return fallback


_CSS_COLOR = re.compile(r"#[0-9a-fA-F]{3,8}|[a-zA-Z]{1,30}|(?:rgb|rgba|hsl|hsla)\([0-9.,%\s]{1,60}\)")
_FONT_FAMILY = re.compile(r"[A-Za-z0-9 ,'\"_-]{1,100}")
_CSS_URL = re.compile(r"(?:https?://|/)[A-Za-z0-9._~:/?#\[\]@!$&*+,;=%-]{1,2000}")


def _css_color(value: str | None) -> str | None:
    v = (value or "").strip()
    return v if _CSS_COLOR.fullmatch(v) else None


def _css_url(value: str | None) -> str | None:
    """Absolute http(s) or root-relative URL with no quotes, parentheses or backslashes."""
    v = (value or "").strip()
    return v if _CSS_URL.fullmatch(v) else None


def _font_family(value: str | None) -> str | None:
    v = (value or "").strip()
    return v if _FONT_FAMILY.fullmatch(v) else None


def _hex_to_rgb_tuple(value: str) -> tuple[int, int, int]:
    v = value.lstrip("#")
    return int(v[0:2], 16), int(v[2:4], 16), int(v[4:6], 16)


def _pick_text_color(value: str) -> str:
    r, g, b = _hex_to_rgb_tuple(value)
    luminance = 0.299 * r + 0.587 * g + 0.114 * b
    return "#111827" if luminance > 140 else "#F9FAFB"


def full_name(card: Card) -> str:
    return f"{card.first_name or ''} {card.last_name or ''}".strip()


def public_url(slug: str) -> str:
    return absolute_url(f"/p/{slug}")


def theme_variables(card: Card) -> dict[str, str]:
    """CSS custom properties derived from the card theme and styling columns."""
    theme = card.theme or {}
    accent = _normalize_hex_color(theme.get("primaryColor") or theme.get("accent"))
    background = _normalize_hex_color(card.background_color or theme.get("backgroundColor"), "#FFFFFF")
    variables = {
        "--accent": accent,
        "--accent-contrast": _pick_text_color(accent),
        "--bg": background,
        "--text": _pick_text_color(background),
        "--font-scale": FONT_SCALES.get((card.font_size or "M").upper(), "1"),
        "--radius": RADIUS_PRESETS.get(card.border_radius or "", "12px"),
        "--shadow": SHADOW_PRESETS.get(card.shadow_preset or "", SHADOW_PRESETS["md"]),
    }
    font_family = _font_family(card.font_family)
    if font_family:
        variables["--font-family"] = font_family
    return variables


def background_style(card: Card) -> str:
    kind = (card.background_type or "solid").lower()
    image = _css_url(card.background_image)
    if kind == "image" and image:
        return f"background-image:url('{image}');background-size:cover;background-position:center"
    if kind == "gradient":
        theme = card.theme or {}
        start = _normalize_hex_color(theme.get("gradientStart") or card.background_color, "#FFFFFF")
        end = _normalize_hex_color(theme.get("gradientEnd"), "#E5E7EB")
        return f"background:linear-gradient(135deg,{start},{end})"
    return f"background-color:{_normalize_hex_color(card.background_color, '#FFFFFF')}"


def component_style(component: CardComponent) -> str:
    kind = (component.background_type or "").lower()
    start = _css_color(component.background_gradient_start)
    end = _css_color(component.background_gradient_end)
    image = _css_url(component.background_image_url)
    color = _css_color(component.background_color)
    if kind == "gradient" and start and end:
        return f"background:linear-gradient(135deg,{start},{end})"
    if kind == "image" and image:
        return f"background-image:url('{image}');background-size:cover"
    if color:
        return f"background-color:{color}"
    return ""


def social_links(card: Card) -> list[dict[str, str]]:
    links = card.social_links or {}
    return [
        {"platform": platform, "url": normalize_external_url(url)}
        for platform, url in links.items()
        if url
    ]


def build_render_context(card: Card, components: Iterable[CardComponent], *, nfc_uid: str | None = None) -> dict:
    """Everything templates/card.html needs; only enabled components are passed in."""
    css = sanitize_css(card.custom_css)
    variables = theme_variables(card)
    return {
        "card": card,
        "name": full_name(card),
        "avatar": card.avatar_url or DEFAULT_AVATAR,
        "components": [
            {"type": c.type, "config": c.config or {}, "style": component_style(c), "id": c.id}
            for c in components
        ],
        "css_vars": ";".join(f"{k}:{v}" for k, v in variables.items()),
        "background_style": background_style(card),
        "layout": card.layout or "centered",
        "custom_css": css.sanitized if css.is_valid else "",
        "social_links": social_links(card),
        "website": normalize_external_url(card.website or ""),
        "share_url": public_url(card.slug),
        "vcard_url": f"/p/{card.slug}.vcf",
        "qr_url": f"/p/{card.slug}/qr.png",
        "contact_endpoint": f"/public/cards/{card.slug}/contacts",
        "click_endpoint": f"/public/cards/{card.slug}/clicks",
        "nfc_uid": nfc_uid or "",
    }


# ---- vCard ----
def _vcard_escape(value: str | None) -> str:
    text = str(value or "")
    text = text.replace("\\", "\\\\").replace(";", "\\;").replace(",", "\\,")
    return text.replace("\r\n", "\\n").replace("\n", "\\n")


def _vcard_lines(
    *,
    first_name: str,
    last_name: str,
    org: str | None = None,
    title: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    url: str | None = None,
    note: str | None = None,
    photo_url: str | None = None,
    categories: Optional[list[str]] = None,
) -> list[str]:
    first = _vcard_escape(first_name)
    last = _vcard_escape(last_name)
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{last};{first};;;",
        f"FN:{f'{first} {last}'.strip()}",
    ]
    if org:
        lines.append(f"ORG:{_vcard_escape(org)}")
    if title:
        lines.append(f"TITLE:{_vcard_escape(title)}")
    if phone:
        lines.append(f"TEL;TYPE=CELL:{_vcard_escape(phone)}")
    if email:
        lines.append(f"EMAIL;TYPE=INTERNET:{_vcard_escape(email)}")
    if url:
        lines.append(f"URL:{url}")
    if photo_url:
        lines.append(f"PHOTO;VALUE=URI:{absolute_url(photo_url)}")
    if categories:
        lines.append("CATEGORIES:" + ",".join(_vcard_escape(c) for c in categories))
    if note:
        lines.append(f"NOTE:{_vcard_escape(note)}")
    lines.append("END:VCARD")
    return lines


def card_vcard(card: Card) -> str:
    lines = _vcard_lines(
        first_name=card.first_name,
        last_name=card.last_name,
        org=card.company,
        title=card.job_title,
        phone=card.phone,
        email=card.email,
        url=public_url(card.slug),
        note=card.bio,
        photo_url=card.avatar_url,
    )
    return "\r\n".join(lines) + "\r\n"


def contacts_vcard(contacts: Iterable[Contact]) -> str:
    lines: list[str] = []
    for contact in contacts:
        lines.extend(
            _vcard_lines(
                first_name=contact.first_name,
                last_name=contact.last_name,
                org=contact.company,
                title=contact.job_title,
                phone=contact.phone,
                email=contact.email,
                note=contact.notes,
                categories=list(contact.tags or []),
            )
        )
    return "\r\n".join(lines) + ("\r\n" if lines else "")


# ---- QR ----
def qr_png(data: str, *, box_size: int = 8) -> bytes:
    qr = qrcode.QRCode(version=None, error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=box_size, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def qr_data_url(data: str) -> str:
    return "data:image/png;base64," + base64.b64encode(qr_png(data, box_size=6)).decode("ascii")
