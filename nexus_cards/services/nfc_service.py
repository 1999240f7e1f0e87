"""
NFC tag inventory (admin), card association (owners) and tap resolution (public).
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, Optional
from urllib.parse import quote

from sqlalchemy.exc import SQLAlchemyError

from nexus_cards.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from nexus_cards.db.models import NfcTag
from nexus_cards.repositories.cards import CardRepository
from nexus_cards.repositories.nfc import NfcTagRepository
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)


@dataclass
class ResolveResult:
    status: str
    action: str
    message: str
    tag_id: Optional[str] = None
    card_slug: Optional[str] = None
    redirect_url: Optional[str] = None


def normalize_uid(uid: str | None) -> str:
    return (uid or "").strip().upper()


@dataclass
class NfcService:

    def __post_init__(self):
        self.tags = NfcTagRepository()
        self.cards = CardRepository()
        self.users = UserRepository()
        self.analytics = AnalyticsService()

    def _tag(self, tag_id: str) -> NfcTag:
        tag = self.tags.get(tag_id)
        if not tag:
            raise NotFoundError("NFC tag not found")
        return tag

    # -------------------------------------- admin --------------------------------------
    def import_tags(self, uids: Iterable[str]) -> dict:
        seen: set[str] = set()
        fresh: list[str] = []
        skipped = 0
        errors: list[str] = []
        for raw in uids:
            uid = normalize_uid(raw)
            if not uid:
                skipped += 1
                continue
            if len(uid) > 64:
                errors.append(f"{uid[:16]}...: UID longer than 64 characters")
                continue
            if uid in seen:
                skipped += 1
                continue
            seen.add(uid)
            fresh.append(uid)
        existing = self.tags.existing_uids(fresh)
        skipped += len(existing)
        imported = self.tags.create_many(uid for uid in fresh if uid not in existing)
        logger.info("NFC import: %d imported, %d skipped, %d errors", imported, skipped, len(errors))
        return {"imported": imported, "skipped": skipped, "errors": errors}

    def assign_to_user(self, tag_id: str, *, user_id: str | None = None, user_email: str | None = None) -> NfcTag:
        tag = self._tag(tag_id)
        if tag.status == "DEACTIVATED":
            raise ValidationError("Cannot assign a deactivated tag")
        if user_id:
            user = self.users.get(user_id)
        elif user_email:
            user = self.users.get_by_email(user_email)
        else:
            raise ValidationError("Either user_id or user_email must be provided")
        if not user:
            raise NotFoundError("User not found")
        return self.tags.update(tag.id, assigned_user_id=user.id)

    def revoke(self, tag_id: str) -> NfcTag:
        tag = self._tag(tag_id)
        return self.tags.update(tag.id, card_id=None, status="DEACTIVATED")

    def list_all(self, status: str | None = None, skip: int = 0, take: int = 50) -> tuple[list[NfcTag], int]:
        return self.tags.list(status=(status or "").upper() or None, skip=max(skip, 0), take=min(max(take, 1), 200))

    def stats(self) -> dict:
        counts = self.tags.count_by_status()
        return {
            "total": sum(counts.values()),
            "unassociated": counts.get("UNASSOCIATED", 0),
            "associated": counts.get("ASSOCIATED", 0),
            "deactivated": counts.get("DEACTIVATED", 0),
        }

    # -------------------------------------- owners --------------------------------------
    def associate(self, tag_id: str, user_id: str, card_id: str) -> NfcTag:
        tag = self._tag(tag_id)
        if tag.status == "DEACTIVATED":
            raise PermissionDeniedError("This tag has been deactivated")
        if tag.assigned_user_id and tag.assigned_user_id != user_id:
            raise PermissionDeniedError("This tag is assigned to another account")
        card = self.cards.get(card_id)
        if not card:
            raise NotFoundError("Card not found")
        if card.user_id != user_id:
            raise PermissionDeniedError("You can only associate tags with your own cards")
        if tag.card_id:
            raise ConflictError("This tag is already associated with a card. Please disassociate it first.")
        return self.tags.update(tag.id, card_id=card.id, assigned_user_id=user_id, status="ASSOCIATED")

    def disassociate(self, tag_id: str, user_id: str) -> NfcTag:
        tag = self._tag(tag_id)
        if not tag.card_id:
            raise ValidationError("Tag is not associated with any card")
        card = self.cards.get(tag.card_id)
        if not card:
            raise NotFoundError("Associated card not found")
        if card.user_id != user_id:
            raise PermissionDeniedError("You can only disassociate tags from your own cards")
        return self.tags.update(tag.id, card_id=None, status="UNASSOCIATED")

    def list_for_user(self, user_id: str) -> list[NfcTag]:
        card_ids = [c.id for c in self.cards.list_for_user(user_id, include_archived=True)]
        return self.tags.list_for_user(user_id, card_ids)

    def list_for_card(self, card_id: str, user_id: str) -> list[NfcTag]:
        card = self.cards.get(card_id)
        if not card:
            raise NotFoundError("Card not found")
        if card.user_id != user_id:
            raise PermissionDeniedError("You do not have access to this card")
        return self.tags.list_for_card(card.id)

    # -------------------------------------- public --------------------------------------
    def resolve(
        self,
        uid: str,
        *,
        ip: str | None = None,
        user_agent: str | None = None,
        referrer: str | None = None,
    ) -> ResolveResult:
        value = normalize_uid(uid)
        tag = self.tags.get_by_uid(value) if value else None
        if not tag:
            return ResolveResult("UNKNOWN", "SHOW_ERROR", "This NFC tag is not registered in the system")
        if tag.status == "DEACTIVATED":
            return ResolveResult("DEACTIVATED", "SHOW_ERROR", "This NFC tag has been deactivated")
        card = self.cards.get(tag.card_id) if tag.card_id else None
        if not card:
            return ResolveResult(
                "UNASSOCIATED", "SHOW_ASSOCIATION_SCREEN", "This tag is not linked to a card yet", tag_id=tag.id
            )
        self.tags.record_tap(tag.id)
        try:
            self.analytics.log_event(
                card.id,
                "NFC_TAP",
                source="NFC",
                ip=ip,
                user_agent=user_agent,
                referrer=referrer,
                metadata={"nfc_uid": tag.uid, "tag_id": tag.id},
            )
        except SQLAlchemyError:
            logger.exception("Failed to log NFC tap for tag %s", tag.id)
        return ResolveResult(
            "ASSOCIATED",
            "REDIRECT",
            "Redirecting to card",
            tag_id=tag.id,
            card_slug=card.slug,
            redirect_url=f"/p/{card.slug}?uid={quote(tag.uid)}",
        )
