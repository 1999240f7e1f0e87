"""Contacts captured from cards or added by their owners."""
from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import delete, func, or_, select

from nexus_cards.db.models import Contact
from nexus_cards.db.session import get_session


class ContactRepository:

    def count_for_user(self, user_id: str) -> int:
        with get_session() as session:
            stmt = select(func.count(Contact.id)).where(Contact.user_id == user_id)
            return session.execute(stmt).scalar_one()

    def get(self, contact_id: str) -> Optional[Contact]:
        with get_session() as session:
            return session.get(Contact, contact_id)

    def create(self, **fields) -> Contact:
        contact = Contact(**fields)
        with get_session() as session:
            session.add(contact)
            session.commit()
            session.refresh(contact)
            return contact

    def update(self, contact_id: str, **fields) -> Optional[Contact]:
        with get_session() as session:
            contact = session.get(Contact, contact_id)
            if not contact:
                return None
            for key, value in fields.items():
                setattr(contact, key, value)
            session.commit()
            session.refresh(contact)
            return contact

    def delete(self, contact_id: str) -> None:
        with get_session() as session:
            session.execute(delete(Contact).where(Contact.id == contact_id))
            session.commit()

    def list_for_user(
        self,
        user_id: str,
        *,
        tags: Iterable[str] | None = None,
        category: str | None = None,
        favorites_only: bool = False,
        search: str | None = None,
    ) -> list[Contact]:
        with get_session() as session:
            stmt = select(Contact).where(Contact.user_id == user_id)
            if category:
                stmt = stmt.where(Contact.category == category)
            if favorites_only:
                stmt = stmt.where(Contact.favorite.is_(True))
            if search:
                pattern = f"%{search.strip()}%"
                stmt = stmt.where(
                    or_(
                        Contact.first_name.ilike(pattern),
                        Contact.last_name.ilike(pattern),
                        Contact.email.ilike(pattern),
                        Contact.company.ilike(pattern),
                    )
                )
            stmt = stmt.order_by(Contact.exchanged_at.desc())
            contacts = list(session.execute(stmt).scalars().all())
        # JSON array containment differs per backend; filter tags here.
        wanted = {t for t in (tags or []) if t}
        if wanted:
            contacts = [c for c in contacts if wanted.intersection(c.tags or [])]
        return contacts
