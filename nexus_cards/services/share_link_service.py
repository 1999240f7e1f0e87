"""
Share links: unguessable tokens that open one card, optionally behind a
password and an expiry date.

Revoking a link keeps the row (for its share count) and hides it from the
owner's list. Opening a link counts as one share.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from urllib.parse import quote

from nexus_cards.core.errors import AuthenticationError, NotFoundError, ValidationError
from nexus_cards.core.security import hash_password, verify_password
from nexus_cards.core.tokens import mint_opaque_token
from nexus_cards.core.utils import absolute_url
from nexus_cards.db.models import Card, CardComponent, ShareLink, as_utc, utcnow
from nexus_cards.repositories.cards import CardRepository
from nexus_cards.repositories.components import ComponentRepository
from nexus_cards.repositories.share_links import ShareLinkRepository
from nexus_cards.services.activity_log_service import ActivityLogService
from nexus_cards.services.card_service import CardService

logger = logging.getLogger(__name__)

CHANNELS = ("DIRECT", "WHATSAPP", "TELEGRAM", "SMS", "EMAIL", "LINKEDIN", "QR", "NFC")
MIN_PASSWORD_LENGTH = 6
VIEW_FIELDS = (
    "id",
    "card_id",
    "token",
    "name",
    "channel",
    "expires_at",
    "allow_contact_submission",
    "share_count",
    "last_accessed_at",
    "created_at",
)


@dataclass
class SharedCard:
    link: ShareLink
    card: Card
    components: list[CardComponent] = field(default_factory=list)


def share_url(token: str) -> str:
    return absolute_url(f"/s/{token}")


def channel_urls(url: str, card_title: str) -> dict[str, str]:
    """Prefilled share intents for the messaging apps a card is usually sent through."""
    link = quote(url, safe="")
    message = quote(f"Check out my digital business card: {card_title}", safe="")
    return {
        "whatsapp": f"https://wa.me/?text={message}%20{link}",
        "telegram": f"https://t.me/share/url?url={link}&text={message}",
        "sms": f"sms:?body={message}%20{link}",
        "email": f"mailto:?subject={quote(card_title, safe='')}&body={message}%20{link}",
        "linkedin": f"https://www.linkedin.com/sharing/share-offsite/?url={link}",
    }


def _is_expired(link: ShareLink) -> bool:
    expires_at = as_utc(link.expires_at)
    return expires_at is not None and expires_at < utcnow()


def _future_expiry(value):
    expires_at = as_utc(value)
    if expires_at is not None and expires_at <= utcnow():
        raise ValidationError("Expiration date must be in the future", code="SHARE_LINK_EXPIRY_IN_PAST")
    return expires_at


def _password_hash(password: str) -> str:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return hash_password(password)


@dataclass
class ShareLinkService:

    def __post_init__(self):
        self.links = ShareLinkRepository()
        self.cards = CardRepository()
        self.components = ComponentRepository()
        self.card_service = CardService()
        self.activity = ActivityLogService()

    def view(self, link: ShareLink) -> dict:
        data = {name: getattr(link, name) for name in VIEW_FIELDS}
        data["url"] = share_url(link.token)
        data["is_expired"] = _is_expired(link)
        data["has_password"] = bool(link.password_hash)
        return data

    def _owned(self, link_id: str, user_id: str) -> ShareLink:
        link = self.links.get(link_id)
        if not link or link.revoked_at is not None:
            raise NotFoundError("Share link not found", code="SHARE_LINK_NOT_FOUND")
        # Raises for cards the user does not own.
        self.card_service.get(link.card_id, user_id)
        return link

    # -------------------------------------- owner --------------------------------------
    def create(self, user_id: str, data: dict) -> dict:
        card = self.card_service.get(data.get("card_id") or "", user_id)
        channel = (data.get("channel") or "DIRECT").upper()
        if channel not in CHANNELS:
            raise ValidationError(f"Channel must be one of {', '.join(CHANNELS)}")
        password = data.get("password")
        allow_contacts = data.get("allow_contact_submission")
        link = self.links.create(
            card_id=card.id,
            token=mint_opaque_token(),
            name=data.get("name"),
            password_hash=_password_hash(password) if password else None,
            expires_at=_future_expiry(data.get("expires_at")),
            allow_contact_submission=True if allow_contacts is None else bool(allow_contacts),
            channel=channel,
        )
        logger.info("User %s created share link %s for card %s", user_id, link.id, card.id)
        self.activity.log("SHARE_LINK_CREATED", user_id=user_id, entity_type="SHARE_LINK", entity_id=link.id)
        return self.view(link)

    def list_for_card(self, user_id: str, card_id: str) -> list[dict]:
        card = self.card_service.get(card_id, user_id)
        return [self.view(link) for link in self.links.list_active_for_card(card.id)]

    def get(self, user_id: str, link_id: str) -> dict:
        return self.view(self._owned(link_id, user_id))

    def update(self, user_id: str, link_id: str, data: dict) -> dict:
        """Apply a partial update; an explicit null password removes the password."""
        link = self._owned(link_id, user_id)
        values = {}
        if "name" in data:
            values["name"] = data["name"]
        if "expires_at" in data:
            values["expires_at"] = _future_expiry(data["expires_at"])
        if data.get("allow_contact_submission") is not None:
            values["allow_contact_submission"] = bool(data["allow_contact_submission"])
        if "password" in data:
            values["password_hash"] = _password_hash(data["password"]) if data["password"] else None
        if not values:
            return self.view(link)
        return self.view(self.links.update(link.id, **values))

    def revoke(self, user_id: str, link_id: str) -> None:
        link = self._owned(link_id, user_id)
        self.links.update(link.id, revoked_at=utcnow())
        logger.info("User %s revoked share link %s", user_id, link.id)
        self.activity.log("SHARE_LINK_REVOKED", user_id=user_id, entity_type="SHARE_LINK", entity_id=link.id)

    def channel_urls(self, user_id: str, link_id: str) -> dict[str, str]:
        link = self._owned(link_id, user_id)
        card = self.cards.get(link.card_id)
        return channel_urls(share_url(link.token), f"{card.first_name} {card.last_name}")

    # -------------------------------------- visitors --------------------------------------
    def find_usable(self, token: str) -> ShareLink | None:
        """The link behind a token, or None when it is unknown, revoked or expired."""
        link = self.links.get_by_token((token or "").strip())
        if not link or link.revoked_at is not None or _is_expired(link):
            return None
        return link

    def open(self, token: str, password: str | None = None) -> SharedCard:
        link = self.links.get_by_token((token or "").strip())
        if not link:
            raise NotFoundError("Share link not found", code="SHARE_LINK_NOT_FOUND")
        if link.revoked_at is not None:
            raise AuthenticationError("This share link has been revoked", code="SHARE_LINK_REVOKED")
        if _is_expired(link):
            raise AuthenticationError("This share link has expired", code="SHARE_LINK_EXPIRED")
        if link.password_hash:
            if not password:
                raise AuthenticationError("Password required", code="SHARE_LINK_PASSWORD_REQUIRED")
            if not verify_password(password, link.password_hash):
                raise AuthenticationError("Invalid password", code="SHARE_LINK_PASSWORD_INVALID")
        card = self.cards.get(link.card_id)
        if not card or card.status == "ARCHIVED":
            raise NotFoundError("Card not found", code="CARD_NOT_FOUND")
        self.links.record_access(link.id)
        return SharedCard(link=link, card=card, components=self.components.list_for_card(card.id, enabled_only=True))
