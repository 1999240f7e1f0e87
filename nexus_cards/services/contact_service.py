"""
Contact capture, manual entry, bulk import, export and CRUD.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
import io
import logging
from typing import Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError

from nexus_cards.core.errors import NotFoundError, PermissionDeniedError, TierLimitError, ValidationError
from nexus_cards.db.models import Card, Contact, as_utc, utcnow
from nexus_cards.domain.tiers import limits_for
from nexus_cards.repositories.cards import CardRepository
from nexus_cards.repositories.contacts import ContactRepository
from nexus_cards.repositories.users import UserRepository
from nexus_cards.schemas.contacts import ContactRow
from nexus_cards.services.analytics_service import AnalyticsService
from nexus_cards.services.card_display import contacts_vcard

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "First Name",
    "Last Name",
    "Email",
    "Phone",
    "Company",
    "Job Title",
    "Notes",
    "Category",
    "Tags",
    "Favorite",
    "Source",
    "Exchanged At",
]
UPDATABLE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "company",
    "job_title",
    "notes",
    "category",
    "tags",
    "favorite",
)
NON_NULLABLE_FIELDS = ("tags", "favorite")


@dataclass
class ExportFile:
    content: str
    media_type: str
    filename: str


def _row_error_message(exc: SchemaValidationError) -> str:
    parts = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{where}: {err.get('msg')}" if where else str(err.get("msg")))
    return "; ".join(parts)


@dataclass
class ContactService:

    def __post_init__(self):
        self.contacts = ContactRepository()
        self.cards = CardRepository()
        self.users = UserRepository()
        self.analytics = AnalyticsService()

    # -------------------------------------- helpers --------------------------------------
    def _ensure_capacity(self, user_id: str, adding: int = 1) -> None:
        tier = self.users.tier_for(user_id)
        limit = limits_for(tier).contacts
        if limit is None:
            return
        if self.contacts.count_for_user(user_id) + adding > limit:
            logger.info("Contact limit reached for user %s on tier %s", user_id, tier)
            raise TierLimitError(
                f"Your {tier} plan allows up to {limit} contacts. Upgrade to add more.",
                code="CONTACT_LIMIT_REACHED",
            )

    def _default_card(self, user_id: str) -> Card:
        cards = self.cards.list_for_user(user_id)
        if not cards:
            raise ValidationError("You must have at least one card to add contacts")
        return next((c for c in cards if c.status == "PUBLISHED"), cards[0])

    def _owned(self, contact_id: str, user_id: str) -> Contact:
        contact = self.contacts.get(contact_id)
        if not contact:
            raise NotFoundError("Contact not found")
        if contact.user_id != user_id:
            raise PermissionDeniedError("You do not have access to this contact")
        return contact

    # -------------------------------------- capture --------------------------------------
    def submit(
        self,
        slug: str,
        data: dict,
        *,
        nfc_uid: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
        referrer: str | None = None,
    ) -> Contact:
        """Store a contact posted from a public card page."""
        card = self.cards.get_by_slug((slug or "").strip().lower())
        if not card:
            raise NotFoundError("Card not found")
        if card.status != "PUBLISHED":
            raise ValidationError("This card is not accepting contacts")
        self._ensure_capacity(card.user_id)
        source = "NFC" if nfc_uid else "FORM"
        metadata = {"user_agent": user_agent} if user_agent else {}
        if nfc_uid:
            metadata["nfc_uid"] = nfc_uid
        contact = self.contacts.create(
            user_id=card.user_id,
            card_id=card.id,
            first_name=data["first_name"],
            last_name=data["last_name"],
            email=data.get("email"),
            phone=data.get("phone"),
            company=data.get("company"),
            job_title=data.get("job_title"),
            notes=data.get("notes"),
            tags=[],
            source=source,
            meta=metadata,
        )
        try:
            self.analytics.log_contact_exchange(
                card.id, source=source, ip=ip, user_agent=user_agent, referrer=referrer, metadata={"contact_id": contact.id}
            )
        except SQLAlchemyError:
            logger.exception("Failed to log contact exchange for card %s", card.id)
        return contact

    def create_manual(self, user_id: str, data: dict) -> Contact:
        self._ensure_capacity(user_id)
        card = self._default_card(user_id)
        return self.contacts.create(
            user_id=user_id,
            card_id=card.id,
            first_name=data["first_name"],
            last_name=data["last_name"],
            email=data.get("email"),
            phone=data.get("phone"),
            company=data.get("company"),
            job_title=data.get("job_title"),
            notes=data.get("notes"),
            category=data.get("category"),
            tags=list(data.get("tags") or []),
            favorite=bool(data.get("favorite")),
            source=data.get("source") or "MANUAL",
            meta={"source": "manual", "created_by": user_id},
        )

    def import_contacts(
        self, user_id: str, rows: list[dict], tags: Optional[list[str]] = None, favorite: bool = False
    ) -> dict:
        """Insert every valid row; invalid rows are reported with their 1-based index."""
        self._ensure_capacity(user_id, adding=len(rows))
        card = self._default_card(user_id)
        imported: list[Contact] = []
        errors: list[dict] = []
        imported_at = utcnow().isoformat()
        for index, raw in enumerate(rows, start=1):
            try:
                row = ContactRow.model_validate(raw)
            except SchemaValidationError as exc:
                errors.append({"row": index, "data": raw, "error": _row_error_message(exc)})
                continue
            try:
                imported.append(
                    self.contacts.create(
                        user_id=user_id,
                        card_id=card.id,
                        tags=list(tags or []),
                        favorite=favorite,
                        source="IMPORTED",
                        meta={"source": "import", "imported_at": imported_at},
                        **row.model_dump(),
                    )
                )
            except SQLAlchemyError as exc:
                logger.warning("Import row %d failed for user %s: %s", index, user_id, exc)
                errors.append({"row": index, "data": raw, "error": "Could not save contact"})
        return {"success": len(imported), "failed": len(errors), "imported": imported, "errors": errors}

    # -------------------------------------- CRUD --------------------------------------
    def list(
        self,
        user_id: str,
        *,
        tags: Optional[list[str]] = None,
        category: str | None = None,
        favorites_only: bool = False,
        search: str | None = None,
    ) -> list[Contact]:
        return self.contacts.list_for_user(
            user_id, tags=tags, category=category, favorites_only=favorites_only, search=search
        )

    def get(self, contact_id: str, user_id: str) -> Contact:
        return self._owned(contact_id, user_id)

    def update(self, contact_id: str, user_id: str, data: dict) -> Contact:
        contact = self._owned(contact_id, user_id)
        values = {
            k: data[k] for k in UPDATABLE_FIELDS if k in data and not (k in NON_NULLABLE_FIELDS and data[k] is None)
        }
        for name in ("first_name", "last_name"):
            if name in values and not values[name]:
                raise ValidationError("First and last name cannot be empty")
        if not values:
            return contact
        return self.contacts.update(contact.id, **values)

    def delete(self, contact_id: str, user_id: str) -> None:
        contact = self._owned(contact_id, user_id)
        self.contacts.delete(contact.id)

    # -------------------------------------- export --------------------------------------
    def export(
        self,
        user_id: str,
        fmt: str,
        *,
        tags: Optional[list[str]] = None,
        category: str | None = None,
        favorites_only: bool = False,
    ) -> ExportFile:
        contacts = self.list(user_id, tags=tags, category=category, favorites_only=favorites_only)
        kind = (fmt or "").upper()
        if kind == "CSV":
            return ExportFile(to_csv(contacts), "text/csv; charset=utf-8", "contacts.csv")
        if kind == "VCF":
            return ExportFile(contacts_vcard(contacts), "text/vcard; charset=utf-8", "contacts.vcf")
        raise ValidationError("Invalid export format")


def to_csv(contacts: list[Contact]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\r\n")
    writer.writerow(CSV_HEADERS)
    for c in contacts:
        exchanged = as_utc(c.exchanged_at)
        writer.writerow(
            [
                c.first_name,
                c.last_name,
                c.email or "",
                c.phone or "",
                c.company or "",
                c.job_title or "",
                c.notes or "",
                c.category or "",
                "; ".join(c.tags or []),
                "Yes" if c.favorite else "No",
                c.source or "FORM",
                exchanged.isoformat() if exchanged else "",
            ]
        )
    return buf.getvalue()
