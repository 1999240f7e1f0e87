"""Raw analytics events."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, func, select

from nexus_cards.db.models import AnalyticsEvent
from nexus_cards.db.session import get_session


class AnalyticsRepository:

    def add(self, **fields) -> AnalyticsEvent:
        event = AnalyticsEvent(**fields)
        with get_session() as session:
            session.add(event)
            session.commit()
            session.refresh(event)
            return event

    def events_for_cards(self, card_ids: Iterable[str], since: Optional[datetime] = None) -> list[AnalyticsEvent]:
        ids = list(card_ids)
        if not ids:
            return []
        with get_session() as session:
            stmt = select(AnalyticsEvent).where(AnalyticsEvent.card_id.in_(ids))
            if since is not None:
                stmt = stmt.where(AnalyticsEvent.timestamp >= since)
            stmt = stmt.order_by(AnalyticsEvent.timestamp.asc())
            return list(session.execute(stmt).scalars().all())

    def count_by_type(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict[str, int]:
        with get_session() as session:
            stmt = select(AnalyticsEvent.event_type, func.count(AnalyticsEvent.id))
            if start is not None:
                stmt = stmt.where(AnalyticsEvent.timestamp >= start)
            if end is not None:
                stmt = stmt.where(AnalyticsEvent.timestamp <= end)
            rows = session.execute(stmt.group_by(AnalyticsEvent.event_type)).all()
        return {event_type: count for event_type, count in rows}

    def recent(self, skip: int = 0, take: int = 50, event_type: str | None = None) -> list[AnalyticsEvent]:
        with get_session() as session:
            stmt = select(AnalyticsEvent)
            if event_type:
                stmt = stmt.where(AnalyticsEvent.event_type == event_type)
            stmt = stmt.order_by(AnalyticsEvent.timestamp.desc()).offset(skip).limit(take)
            return list(session.execute(stmt).scalars().all())

    def delete_older_than(self, card_ids: Iterable[str], cutoff: datetime) -> int:
        ids = list(card_ids)
        if not ids:
            return 0
        with get_session() as session:
            stmt = delete(AnalyticsEvent).where(
                AnalyticsEvent.card_id.in_(ids), AnalyticsEvent.timestamp < cutoff
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount or 0
