"""Card components."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func, select

from nexus_cards.db.models import CardComponent
from nexus_cards.db.session import get_session


class ComponentRepository:

    def list_for_card(self, card_id: str, enabled_only: bool = False) -> list[CardComponent]:
        with get_session() as session:
            stmt = select(CardComponent).where(CardComponent.card_id == card_id)
            if enabled_only:
                stmt = stmt.where(CardComponent.enabled.is_(True))
            stmt = stmt.order_by(CardComponent.order.asc(), CardComponent.created_at.asc())
            return list(session.execute(stmt).scalars().all())

    def get(self, component_id: str) -> Optional[CardComponent]:
        with get_session() as session:
            return session.get(CardComponent, component_id)

    def count_for_card(self, card_id: str) -> int:
        with get_session() as session:
            stmt = select(func.count(CardComponent.id)).where(CardComponent.card_id == card_id)
            return session.execute(stmt).scalar_one()

    def max_order(self, card_id: str) -> Optional[int]:
        with get_session() as session:
            stmt = select(func.max(CardComponent.order)).where(CardComponent.card_id == card_id)
            return session.execute(stmt).scalar_one_or_none()

    def create(self, **fields) -> CardComponent:
        component = CardComponent(**fields)
        with get_session() as session:
            session.add(component)
            session.commit()
            session.refresh(component)
            return component

    def update(self, component_id: str, **fields) -> Optional[CardComponent]:
        with get_session() as session:
            component = session.get(CardComponent, component_id)
            if not component:
                return None
            for key, value in fields.items():
                setattr(component, key, value)
            session.commit()
            session.refresh(component)
            return component

    def delete(self, component_id: str) -> None:
        with get_session() as session:
            session.execute(delete(CardComponent).where(CardComponent.id == component_id))
            session.commit()

    def reorder(self, card_id: str, orders: dict[str, int]) -> list[CardComponent]:
        """Apply every ``id -> order`` pair in a single transaction."""
        with get_session() as session:
            stmt = select(CardComponent).where(
                CardComponent.card_id == card_id, CardComponent.id.in_(list(orders))
            )
            for component in session.execute(stmt).scalars():
                component.order = orders[component.id]
            session.commit()
        return self.list_for_card(card_id)
