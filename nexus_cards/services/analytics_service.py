"""
Analytics event logging and the aggregated reports built from raw events.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Optional

from nexus_cards.core.errors import NotFoundError, PermissionDeniedError
from nexus_cards.core.utils import device_type, visitor_hash
from nexus_cards.db.models import AnalyticsEvent, as_utc
from nexus_cards.domain.tiers import limits_for
from nexus_cards.repositories.analytics import AnalyticsRepository
from nexus_cards.repositories.cards import CardRepository
from nexus_cards.repositories.users import UserRepository

logger = logging.getLogger(__name__)

RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_RANGE_DAYS = 365
TOP_REFERRERS = 5


def days_for_range(value: str | None) -> int:
    return RANGE_DAYS.get((value or "").strip().lower(), DEFAULT_RANGE_DAYS)


def _series(counter: Counter, limit: int | None = None) -> list[dict]:
    return [{"label": label, "value": value} for label, value in counter.most_common(limit)]


@dataclass
class AnalyticsService:

    def __post_init__(self):
        self.events = AnalyticsRepository()
        self.cards = CardRepository()
        self.users = UserRepository()

    # -------------------------------------- logging --------------------------------------
    def log_event(
        self,
        card_id: str,
        event_type: str,
        *,
        source: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
        referrer: str | None = None,
        link_url: str | None = None,
        metadata: dict | None = None,
    ) -> AnalyticsEvent:
        return self.events.add(
            card_id=card_id,
            event_type=event_type,
            source=source,
            visitor_hash=visitor_hash(ip, user_agent) if (ip or user_agent) else None,
            referrer=referrer or None,
            device_type=device_type(user_agent) if user_agent else None,
            link_url=link_url,
            meta=dict(metadata or {}),
        )

    def log_view(self, card_id: str, **kwargs) -> AnalyticsEvent:
        return self.log_event(card_id, "VIEW", **kwargs)

    def log_link_click(self, card_id: str, link_url: str, **kwargs) -> AnalyticsEvent:
        return self.log_event(card_id, "LINK_CLICK", link_url=link_url, **kwargs)

    def log_contact_exchange(self, card_id: str, **kwargs) -> AnalyticsEvent:
        return self.log_event(card_id, "CONTACT_EXCHANGE", **kwargs)

    def log_styling_updated(self, card_id: str, *, user_id: str, tier: str, changed_fields: list[str]) -> AnalyticsEvent:
        return self.log_event(
            card_id,
            "card_styling_updated",
            metadata={"user_id": user_id, "tier": tier, "changed_fields": changed_fields},
        )

    # -------------------------------------- reports --------------------------------------
    def retention_days(self, user_id: str) -> Optional[int]:
        return limits_for(self.users.tier_for(user_id)).analytics_retention_days

    def _owned_card_ids(self, user_id: str, card_id: str | None) -> list[str]:
        if card_id:
            card = self.cards.get(card_id)
            if not card:
                raise NotFoundError("Card not found")
            if card.user_id != user_id:
                raise PermissionDeniedError("You do not have access to this card")
            return [card.id]
        return [c.id for c in self.cards.list_for_user(user_id, include_archived=True)]

    def user_report(self, user_id: str, days: int, card_id: str | None = None, *, now: datetime | None = None) -> dict:
        """Totals and chart series for the owner's cards over the last ``days`` days."""
        retention = self.retention_days(user_id)
        effective = max(1, days if retention is None else min(days, retention))
        now = now or datetime.now(timezone.utc)
        first_day = (now - timedelta(days=effective - 1)).date()
        since = datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)

        events = self.events.events_for_cards(self._owned_card_ids(user_id, card_id), since)
        views = [e for e in events if e.event_type == "VIEW"]
        per_day = Counter(as_utc(e.timestamp).date().isoformat() for e in views)
        referrers = Counter((e.referrer or "").strip() or "Direct" for e in views)
        devices = Counter(e.device_type or "unknown" for e in views)

        return {
            "days": effective,
            "views": len(views),
            "unique_visitors": len({e.visitor_hash for e in views if e.visitor_hash}),
            "contact_exchanges": sum(1 for e in events if e.event_type == "CONTACT_EXCHANGE"),
            "link_clicks": sum(1 for e in events if e.event_type == "LINK_CLICK"),
            "nfc_taps": sum(1 for e in events if e.event_type == "NFC_TAP"),
            "views_over_time": [
                {"label": day.isoformat(), "value": per_day.get(day.isoformat(), 0)}
                for day in (first_day + timedelta(days=i) for i in range(effective))
            ],
            "top_referrers": _series(referrers, TOP_REFERRERS),
            "device_breakdown": _series(devices),
        }

    # -------------------------------------- admin --------------------------------------
    def global_overview(self, start: datetime | None = None, end: datetime | None = None) -> dict:
        by_type = self.events.count_by_type(start, end)
        return {
            "total_events": sum(by_type.values()),
            "events_by_type": by_type,
            "total_cards": self.cards.count(),
            "total_users": self.users.count(),
        }

    def top_cards(self, limit: int = 10) -> list[dict]:
        return [
            {"card_id": c.id, "slug": c.slug, "name": f"{c.first_name} {c.last_name}".strip(), "views": c.view_count}
            for c in self.cards.top_by_views(limit)
        ]

    def recent_events(self, skip: int = 0, take: int = 50, event_type: str | None = None) -> list[AnalyticsEvent]:
        return self.events.recent(skip, take, event_type)

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete events older than each owner's retention window."""
        now = now or datetime.now(timezone.utc)
        removed = 0
        for user_id, card_ids in self.cards.ids_by_owner().items():
            retention = self.retention_days(user_id)
            if retention is None:
                continue
            removed += self.events.delete_older_than(card_ids, now - timedelta(days=retention))
        logger.info("Purged %d expired analytics events", removed)
        return removed
