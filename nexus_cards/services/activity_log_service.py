"""
Audit trail for account and admin actions.

Entries are written after the action has succeeded. A failed write is logged
and never undoes the action it describes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import math
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from nexus_cards.db.models import ActivityLog
from nexus_cards.repositories.activity import ActivityLogRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class ActivityLogService:

    def __post_init__(self):
        self.entries = ActivityLogRepository()

    def log(
        self,
        action: str,
        *,
        user_id: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        metadata: dict | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> Optional[ActivityLog]:
        try:
            return self.entries.add(
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                meta=metadata or {},
                ip_address=ip,
                user_agent=user_agent,
            )
        except SQLAlchemyError:
            logger.exception("Failed to record activity %s for user %s", action, user_id)
            return None

    def query(
        self,
        *,
        user_id: str | None = None,
        action: str | None = None,
        entity_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        logs, total = self.entries.query(
            skip=(page - 1) * limit,
            take=limit,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            start=start,
            end=end,
        )
        return {
            "logs": logs,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit),
        }

    def action_stats(self, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
        return [{"action": action, "count": n} for action, n in self.entries.count_by_action(start, end)]

    def recent(self, user_id: str | None = None, limit: int = 10) -> list[ActivityLog]:
        logs, _ = self.entries.query(take=min(max(limit, 1), MAX_PAGE_SIZE), user_id=user_id)
        return logs
