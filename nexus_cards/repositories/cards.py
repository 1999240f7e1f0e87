"""Cards."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select, update

from nexus_cards.db.models import Card, utcnow
from nexus_cards.db.session import get_session


class CardRepository:

    def get(self, card_id: str) -> Optional[Card]:
        with get_session() as session:
            return session.get(Card, card_id)

    def get_by_slug(self, slug: str) -> Optional[Card]:
        with get_session() as session:
            stmt = select(Card).where(Card.slug == slug)
            return session.execute(stmt).scalar_one_or_none()

    def slug_exists(self, slug: str, exclude_id: str | None = None) -> bool:
        with get_session() as session:
            stmt = select(Card.id).where(Card.slug == slug)
            if exclude_id:
                stmt = stmt.where(Card.id != exclude_id)
            return session.execute(stmt.limit(1)).first() is not None

    def list_for_user(self, user_id: str, include_archived: bool = False) -> list[Card]:
        with get_session() as session:
            stmt = select(Card).where(Card.user_id == user_id)
            if not include_archived:
                stmt = stmt.where(Card.status != "ARCHIVED")
            stmt = stmt.order_by(Card.created_at.desc())
            return list(session.execute(stmt).scalars().all())

    def count_active_for_user(self, user_id: str) -> int:
        with get_session() as session:
            stmt = select(func.count(Card.id)).where(Card.user_id == user_id, Card.status != "ARCHIVED")
            return session.execute(stmt).scalar_one()

    def ids_by_owner(self) -> dict[str, list[str]]:
        with get_session() as session:
            rows = session.execute(select(Card.user_id, Card.id)).all()
        owners: dict[str, list[str]] = {}
        for user_id, card_id in rows:
            owners.setdefault(user_id, []).append(card_id)
        return owners

    def create(self, **fields) -> Card:
        card = Card(**fields)
        with get_session() as session:
            session.add(card)
            session.commit()
            session.refresh(card)
            return card

    def update(self, card_id: str, **fields) -> Optional[Card]:
        with get_session() as session:
            card = session.get(Card, card_id)
            if not card:
                return None
            for key, value in fields.items():
                setattr(card, key, value)
            session.commit()
            session.refresh(card)
            return card

    def increment_views(self, card_id: str) -> None:
        now = utcnow()
        with get_session() as session:
            stmt = (
                update(Card)
                .where(Card.id == card_id)
                .values(view_count=Card.view_count + 1, last_viewed_at=now)
            )
            session.execute(stmt)
            session.commit()

    def count(self) -> int:
        with get_session() as session:
            return session.execute(select(func.count(Card.id))).scalar_one()

    def top_by_views(self, limit: int = 10) -> list[Card]:
        with get_session() as session:
            stmt = select(Card).order_by(Card.view_count.desc(), Card.created_at).limit(limit)
            return list(session.execute(stmt).scalars().all())
