"""
Profile edits for the signed-in user and account management for admins.

Admins can search accounts, change roles and override a subscription tier
without going through Stripe.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging

from nexus_cards.core.errors import NotFoundError, ValidationError
from nexus_cards.db.models import Subscription, User
from nexus_cards.domain.tiers import Tier, limits_for, unlimited_as_int
from nexus_cards.repositories.analytics import AnalyticsRepository
from nexus_cards.repositories.billing import BillingRepository
from nexus_cards.repositories.cards import CardRepository
from nexus_cards.repositories.contacts import ContactRepository
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services.activity_log_service import ActivityLogService

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "phone", "company", "job_title", "avatar_url", "timezone", "language")
PUBLIC_USER_FIELDS = (
    "id",
    "email",
    "role",
    "email_verified",
    "two_factor_enabled",
    "created_at",
) + PROFILE_FIELDS
SUBSCRIPTION_VIEW_FIELDS = ("tier", "status", "cancel_at_period_end", "current_period_end")
SUBSCRIPTION_OVERRIDE_FIELDS = ("tier", "status", "stripe_customer_id", "stripe_subscription_id")
ROLES = ("USER", "ADMIN")
RECENT_ACTIVITY_DAYS = 7
MAX_PAGE_SIZE = 100


def _percentage(current: int, limit: int | None) -> float:
    if not limit:
        return 0.0
    return round(current / limit * 100, 1)


@dataclass
class UserService:

    def __post_init__(self):
        self.users = UserRepository()
        self.billing = BillingRepository()
        self.cards = CardRepository()
        self.contacts = ContactRepository()
        self.events = AnalyticsRepository()
        self.activity = ActivityLogService()

    def _require(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    def _admin_view(self, user: User, subscription: Subscription | None = None) -> dict:
        view = {name: getattr(user, name) for name in PUBLIC_USER_FIELDS}
        subscription = subscription or self.billing.get_subscription(user.id)
        view["subscription"] = (
            {name: getattr(subscription, name) for name in SUBSCRIPTION_VIEW_FIELDS} if subscription else None
        )
        return view

    # -------------------------------------- profile --------------------------------------
    def profile(self, user_id: str) -> User:
        return self._require(user_id)

    def update_profile(self, user_id: str, data: dict) -> User:
        user = self._require(user_id)
        values = {k: data[k] for k in PROFILE_FIELDS if k in data}
        if not values:
            return user
        return self.users.update(user.id, **values)

    # -------------------------------------- admin --------------------------------------
    def list_users(
        self,
        *,
        skip: int = 0,
        take: int = 20,
        search: str | None = None,
        role: str | None = None,
        tier: str | None = None,
    ) -> dict:
        skip = max(skip, 0)
        take = min(max(take, 1), MAX_PAGE_SIZE)
        users, total = self.users.search(
            skip=skip, take=take, search=(search or "").strip() or None, role=role or None, tier=tier or None
        )
        return {"users": [self._admin_view(u) for u in users], "total": total, "skip": skip, "take": take}

    def details(self, user_id: str) -> dict:
        user = self._require(user_id)
        view = self._admin_view(user)
        view["stats"] = {
            "cards_count": self.cards.count_active_for_user(user.id),
            "contacts_count": self.contacts.count_for_user(user.id),
        }
        return view

    def update_role(self, user_id: str, role: str, *, admin_id: str | None = None) -> dict:
        if role not in ROLES:
            raise ValidationError(f"Role must be one of {', '.join(ROLES)}")
        user = self._require(user_id)
        updated = self.users.update(user.id, role=role)
        logger.info("Admin %s changed role of user %s from %s to %s", admin_id, user.id, user.role, role)
        self.activity.log(
            "USER_ROLE_CHANGED",
            user_id=admin_id,
            entity_type="USER",
            entity_id=user.id,
            metadata={"from": user.role, "to": role},
        )
        return self._admin_view(updated)

    def update_subscription(self, user_id: str, data: dict, *, admin_id: str | None = None) -> dict:
        """Override tier, status or Stripe ids; existing cards and components are left in place."""
        user = self._require(user_id)
        values = {k: data[k] for k in SUBSCRIPTION_OVERRIDE_FIELDS if data.get(k) is not None}
        if "tier" in values:
            values["tier"] = Tier.parse(values["tier"]).value
        if not values:
            return self._admin_view(user)
        subscription = self.billing.update_subscription(user.id, **values)
        logger.info("Admin %s overrode subscription of user %s: %s", admin_id, user.id, sorted(values))
        self.activity.log(
            "SUBSCRIPTION_OVERRIDDEN",
            user_id=admin_id,
            entity_type="USER",
            entity_id=user.id,
            metadata={k: values[k] for k in ("tier", "status") if k in values},
        )
        return self._admin_view(user, subscription)

    def usage(self, user_id: str, *, now: datetime | None = None) -> dict:
        user = self._require(user_id)
        tier = self.users.tier_for(user.id)
        limits = limits_for(tier)
        cards_used = self.cards.count_active_for_user(user.id)
        contacts_count = self.contacts.count_for_user(user.id)

        since = (now or datetime.now(timezone.utc)) - timedelta(days=RECENT_ACTIVITY_DAYS)
        card_ids = [c.id for c in self.cards.list_for_user(user.id, include_archived=True)]
        events = self.events.events_for_cards(card_ids, since=since)
        return {
            "user_id": user.id,
            "tier": tier,
            "cards": {
                "current": cards_used,
                "limit": unlimited_as_int(limits.cards),
                "percentage": _percentage(cards_used, limits.cards),
            },
            "contacts": {
                "current": contacts_count,
                "limit": unlimited_as_int(limits.contacts),
                "percentage": _percentage(contacts_count, limits.contacts),
            },
            "analytics_retention_days": unlimited_as_int(limits.analytics_retention_days),
            "recent_activity": {
                "card_views": sum(1 for e in events if e.event_type == "VIEW"),
                "nfc_taps": sum(1 for e in events if e.event_type == "NFC_TAP"),
                "contact_exchanges": sum(1 for e in events if e.event_type == "CONTACT_EXCHANGE"),
            },
        }

    def overview(self) -> dict:
        return self.users.stats()
