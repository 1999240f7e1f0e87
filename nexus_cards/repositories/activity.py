"""Audit trail of account and admin actions."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select

from nexus_cards.db.models import ActivityLog
from nexus_cards.db.session import get_session


def _filtered(stmt, *, user_id=None, action=None, entity_type=None, start=None, end=None):
    if user_id:
        stmt = stmt.where(ActivityLog.user_id == user_id)
    if action:
        stmt = stmt.where(ActivityLog.action == action)
    if entity_type:
        stmt = stmt.where(ActivityLog.entity_type == entity_type)
    if start is not None:
        stmt = stmt.where(ActivityLog.timestamp >= start)
    if end is not None:
        stmt = stmt.where(ActivityLog.timestamp <= end)
    return stmt


class ActivityLogRepository:

    def add(self, **fields) -> ActivityLog:
        entry = ActivityLog(**fields)
        with get_session() as session:
            session.add(entry)
            session.commit()
            session.refresh(entry)
            return entry

    def query(
        self,
        *,
        skip: int = 0,
        take: int = 50,
        user_id: str | None = None,
        action: str | None = None,
        entity_type: str | None = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> tuple[list[ActivityLog], int]:
        filters = dict(user_id=user_id, action=action, entity_type=entity_type, start=start, end=end)
        with get_session() as session:
            total = session.execute(_filtered(select(func.count(ActivityLog.id)), **filters)).scalar_one()
            stmt = _filtered(select(ActivityLog), **filters).order_by(ActivityLog.timestamp.desc())
            rows = session.execute(stmt.offset(skip).limit(take)).scalars().all()
            return list(rows), total

    def count_by_action(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[tuple[str, int]]:
        with get_session() as session:
            count = func.count(ActivityLog.id)
            stmt = _filtered(select(ActivityLog.action, count), start=start, end=end)
            rows = session.execute(stmt.group_by(ActivityLog.action).order_by(count.desc(), ActivityLog.action)).all()
        return [(action, n) for action, n in rows]
