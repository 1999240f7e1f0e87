"""
Card use cases: CRUD, slugs, social links, styling and the public view.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from sqlalchemy.exc import SQLAlchemyError

from nexus_cards.core.errors import NotFoundError, PermissionDeniedError, TierLimitError, ValidationError
from nexus_cards.core.utils import normalize_external_url
from nexus_cards.db.models import Card, CardComponent
from nexus_cards.domain.css import sanitize_css
from nexus_cards.domain.slugs import is_valid_slug, unique_slug
from nexus_cards.domain.tiers import Tier, limits_for, styling_violations
from nexus_cards.repositories.cards import CardRepository
from nexus_cards.repositories.components import ComponentRepository
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "first_name",
    "last_name",
    "job_title",
    "company",
    "email",
    "phone",
    "website",
    "bio",
    "avatar_url",
    "cover_image_url",
    "template_id",
    "theme",
    "status",
)
# Columns that cannot be cleared; an explicit null leaves them unchanged.
NON_NULLABLE_FIELDS = ("status", "theme")
STYLING_FIELDS = (
    "background_type",
    "background_color",
    "background_image",
    "layout",
    "font_family",
    "font_size",
    "border_radius",
    "shadow_preset",
)


@dataclass
class PublicCard:
    card: Card
    components: list[CardComponent] = field(default_factory=list)


def _clean_social_links(links: dict | None) -> dict[str, str]:
    cleaned: dict[str, str] = {}
    for platform, url in (links or {}).items():
        key = str(platform or "").strip().lower()
        value = normalize_external_url(str(url or ""))
        if key and value:
            cleaned[key] = value
    return cleaned


@dataclass
class CardService:

    def __post_init__(self):
        self.cards = CardRepository()
        self.components = ComponentRepository()
        self.users = UserRepository()
        self.analytics = AnalyticsService()

    # -------------------------------------- owner CRUD --------------------------------------
    def _check_card_limit(self, user_id: str) -> None:
        tier = self.users.tier_for(user_id)
        limit = limits_for(tier).cards
        if limit is not None and self.cards.count_active_for_user(user_id) >= limit:
            logger.info("Card limit reached for user %s on tier %s", user_id, tier)
            raise TierLimitError(
                f"Your {tier} plan allows up to {limit} card(s). Upgrade to create more.",
                code="CARD_LIMIT_REACHED",
            )

    def create(self, user_id: str, data: dict) -> Card:
        self._check_card_limit(user_id)
        first_name = (data.get("first_name") or "").strip()
        last_name = (data.get("last_name") or "").strip()
        if not first_name or not last_name:
            raise ValidationError("First and last name are required")
        values = {k: data[k] for k in EDITABLE_FIELDS if k in data and data[k] is not None}
        values.update(first_name=first_name, last_name=last_name)
        values.setdefault("status", "PUBLISHED")
        values.setdefault("theme", {})
        return self.cards.create(
            user_id=user_id,
            slug=unique_slug(first_name, last_name, self.cards.slug_exists),
            social_links=_clean_social_links(data.get("social_links")),
            **values,
        )

    def list(self, user_id: str) -> list[Card]:
        return self.cards.list_for_user(user_id)

    def get(self, card_id: str, user_id: str) -> Card:
        card = self.cards.get(card_id)
        if not card:
            raise NotFoundError("Card not found", code="CARD_NOT_FOUND")
        if card.user_id != user_id:
            raise PermissionDeniedError("You do not have access to this card", code="CARD_ACCESS_DENIED")
        return card

    def update(self, card_id: str, user_id: str, data: dict) -> Card:
        card = self.get(card_id, user_id)
        values = {
            k: data[k] for k in EDITABLE_FIELDS if k in data and not (k in NON_NULLABLE_FIELDS and data[k] is None)
        }
        for name in ("first_name", "last_name"):
            if name in values and not (values[name] or "").strip():
                raise ValidationError("First and last name cannot be empty")
        if values.get("status", card.status) != "ARCHIVED" and card.status == "ARCHIVED":
            self._check_card_limit(user_id)
        first_name = values.get("first_name", card.first_name)
        last_name = values.get("last_name", card.last_name)
        if (first_name, last_name) != (card.first_name, card.last_name):
            values["slug"] = unique_slug(
                first_name, last_name, lambda slug: self.cards.slug_exists(slug, exclude_id=card.id)
            )
        if "social_links" in data:
            values["social_links"] = _clean_social_links(data.get("social_links"))
        if not values:
            return card
        return self.cards.update(card.id, **values)

    def archive(self, card_id: str, user_id: str) -> Card:
        card = self.get(card_id, user_id)
        return self.cards.update(card.id, status="ARCHIVED")

    # -------------------------------------- social links --------------------------------------
    def get_social_links(self, card_id: str, user_id: str) -> dict[str, str]:
        return dict(self.get(card_id, user_id).social_links or {})

    def update_social_links(self, card_id: str, user_id: str, links: dict) -> dict[str, str]:
        card = self.get(card_id, user_id)
        updated = self.cards.update(card.id, social_links=_clean_social_links(links))
        return dict(updated.social_links or {})

    # -------------------------------------- styling --------------------------------------
    def update_styling(self, card_id: str, user_id: str, data: dict) -> Card:
        card = self.get(card_id, user_id)
        tier = self.users.tier_for(user_id)
        values = {k: data[k] for k in STYLING_FIELDS if k in data}
        blocked = styling_violations(tier, values)
        if blocked:
            logger.info("Styling %s rejected for user %s on tier %s", blocked, user_id, tier)
            raise TierLimitError(
                f"{', '.join(blocked)} requires a higher plan than {tier}",
                code="STYLING_NOT_ALLOWED_FOR_TIER",
            )
        if not values:
            return card
        updated = self.cards.update(card.id, **values)
        try:
            self.analytics.log_styling_updated(card.id, user_id=user_id, tier=tier, changed_fields=sorted(values))
        except SQLAlchemyError:
            logger.exception("Failed to log card_styling_updated for card %s", card.id)
        return updated

    def update_custom_css(self, card_id: str, user_id: str, css: str | None) -> Card:
        card = self.get(card_id, user_id)
        tier = self.users.tier_for(user_id)
        if css and Tier.parse(tier) is not Tier.PREMIUM:
            raise TierLimitError("Custom CSS requires the PREMIUM plan", code="CUSTOM_CSS_NOT_ALLOWED")
        result = sanitize_css(css)
        if not result.is_valid:
            raise ValidationError("Custom CSS validation failed: " + "; ".join(result.errors), code="CUSTOM_CSS_INVALID")
        return self.cards.update(card.id, custom_css=result.sanitized or None)

    # -------------------------------------- public --------------------------------------
    def get_public(self, slug: str) -> PublicCard:
        slug = (slug or "").strip().lower()
        card = self.cards.get_by_slug(slug) if is_valid_slug(slug) else None
        if not card:
            raise NotFoundError("Card not found", code="CARD_NOT_FOUND")
        if card.status != "PUBLISHED":
            raise PermissionDeniedError("This card is not published", code="CARD_NOT_PUBLISHED")
        return PublicCard(card=card, components=self.components.list_for_card(card.id, enabled_only=True))

    def record_view(
        self,
        slug: str,
        *,
        nfc_uid: str | None = None,
        source: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
        referrer: str | None = None,
    ) -> None:
        card = self.cards.get_by_slug(slug)
        if not card:
            raise NotFoundError("Card not found", code="CARD_NOT_FOUND")
        self.cards.increment_views(card.id)
        metadata = {"nfc_uid": nfc_uid} if nfc_uid else {}
        try:
            self.analytics.log_view(
                card.id,
                source="NFC" if nfc_uid else (source or "DIRECT"),
                ip=ip,
                user_agent=user_agent,
                referrer=referrer,
                metadata=metadata,
            )
        except SQLAlchemyError:
            logger.exception("Failed to log view for card %s", card.id)
