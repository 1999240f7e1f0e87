"""Subscription tiers and the feature gates attached to them."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Tier(str, Enum):
    FREE = "FREE"
    PRO = "PRO"
    PREMIUM = "PREMIUM"

    @classmethod
    def parse(cls, value: "str | Tier | None") -> "Tier":
        if isinstance(value, Tier):
            return value
        try:
            return cls((value or "FREE").upper())
        except ValueError:
            return cls.FREE

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {Tier.FREE: 0, Tier.PRO: 1, Tier.PREMIUM: 2}


class ComponentType(str, Enum):
    PROFILE = "PROFILE"
    ABOUT = "ABOUT"
    CONTACT = "CONTACT"
    SOCIAL_LINKS = "SOCIAL_LINKS"
    CUSTOM_LINKS = "CUSTOM_LINKS"
    GALLERY = "GALLERY"
    VIDEO = "VIDEO"
    CALENDAR = "CALENDAR"
    TESTIMONIALS = "TESTIMONIALS"
    SERVICES = "SERVICES"
    FORM = "FORM"


# Lowest tier on which each component type is available.
COMPONENT_MIN_TIER = {
    ComponentType.PROFILE: Tier.FREE,
    ComponentType.ABOUT: Tier.FREE,
    ComponentType.CONTACT: Tier.FREE,
    ComponentType.SOCIAL_LINKS: Tier.FREE,
    ComponentType.CUSTOM_LINKS: Tier.FREE,
    ComponentType.GALLERY: Tier.PRO,
    ComponentType.VIDEO: Tier.PRO,
    ComponentType.CALENDAR: Tier.PRO,
    ComponentType.TESTIMONIALS: Tier.PRO,
    ComponentType.SERVICES: Tier.PRO,
    ComponentType.FORM: Tier.PREMIUM,
}

COMPONENT_LIMITS = {Tier.FREE: 3, Tier.PRO: 8, Tier.PREMIUM: 999}

PREMIUM_BACKGROUND_TYPES = {"gradient", "image"}
PREMIUM_LAYOUTS = {"image-first", "compact"}


@dataclass(frozen=True)
class TierLimits:
    """Account-wide quotas. ``None`` means unlimited."""

    cards: Optional[int]
    contacts: Optional[int]
    analytics_retention_days: Optional[int]


TIER_LIMITS = {
    Tier.FREE: TierLimits(cards=1, contacts=50, analytics_retention_days=7),
    Tier.PRO: TierLimits(cards=5, contacts=None, analytics_retention_days=90),
    Tier.PREMIUM: TierLimits(cards=None, contacts=None, analytics_retention_days=None),
}


def _component_type(value) -> Optional[ComponentType]:
    try:
        return ComponentType(str(value).upper())
    except ValueError:
        return None


def can_use_component(component_type, tier) -> bool:
    ctype = _component_type(component_type)
    if ctype is None:
        return False
    return Tier.parse(tier).rank >= COMPONENT_MIN_TIER[ctype].rank


def component_limit(tier) -> int:
    return COMPONENT_LIMITS[Tier.parse(tier)]


def limits_for(tier) -> TierLimits:
    return TIER_LIMITS[Tier.parse(tier)]


def allowed_components(tier) -> list[str]:
    current = Tier.parse(tier)
    return [c.value for c in ComponentType if current.rank >= COMPONENT_MIN_TIER[c].rank]


def styling_violations(tier, data: dict) -> list[str]:
    """Names of styling fields in ``data`` the tier is not allowed to set."""
    current = Tier.parse(tier)
    problems: list[str] = []
    if current.rank < Tier.PRO.rank:
        if str(data.get("background_type") or "").lower() in PREMIUM_BACKGROUND_TYPES:
            problems.append("background_type")
        if str(data.get("layout") or "").lower() in PREMIUM_LAYOUTS:
            problems.append("layout")
    if current is not Tier.PREMIUM and data.get("custom_css"):
        problems.append("custom_css")
    return problems


def unlimited_as_int(value: Optional[int]) -> int:
    return -1 if value is None else value
