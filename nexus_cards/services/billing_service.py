"""
Subscription billing: checkout, Stripe webhooks, usage and cancellation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any, Optional

from nexus_cards.core.config import get_settings
from nexus_cards.core.errors import NotFoundError, ServiceUnavailableError, ValidationError
from nexus_cards.core.utils import absolute_url
from nexus_cards.db.models import Invoice, Subscription
from nexus_cards.domain.tiers import Tier, limits_for, unlimited_as_int
from nexus_cards.integrations.stripe_gateway import StripeGateway, WebhookSignatureError
from nexus_cards.repositories.billing import BillingRepository
from nexus_cards.repositories.cards import CardRepository
from nexus_cards.repositories.contacts import ContactRepository
from nexus_cards.repositories.users import UserRepository

logger = logging.getLogger(__name__)

STRIPE_STATUS_MAP = {
    "active": "ACTIVE",
    "past_due": "PAST_DUE",
    "unpaid": "PAST_DUE",
    "canceled": "CANCELED",
    "incomplete_expired": "CANCELED",
    "paused": "CANCELED",
    "incomplete": "INCOMPLETE",
    "trialing": "TRIALING",
}


def map_stripe_status(value: str | None) -> str:
    return STRIPE_STATUS_MAP.get((value or "").lower(), "ACTIVE")


def _from_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _first_price_id(subscription: dict) -> Optional[str]:
    items = ((subscription.get("items") or {}).get("data")) or []
    if not items:
        return None
    return ((items[0] or {}).get("price") or {}).get("id")


@dataclass
class BillingService:
    gateway: Optional[StripeGateway] = None

    def __post_init__(self):
        self.settings = get_settings()
        if self.gateway is None and self.settings.billing_enabled:
            self.gateway = StripeGateway(self.settings.stripe_secret_key, self.settings.stripe_webhook_secret)
        self.billing = BillingRepository()
        self.users = UserRepository()
        self.cards = CardRepository()
        self.contacts = ContactRepository()

    def _require_gateway(self) -> StripeGateway:
        if self.gateway is None:
            raise ServiceUnavailableError("Billing is not configured", code="BILLING_DISABLED")
        return self.gateway

    def price_for_tier(self, tier: str) -> str:
        return {
            Tier.PRO: self.settings.stripe_price_id_pro,
            Tier.PREMIUM: self.settings.stripe_price_id_premium,
        }.get(Tier.parse(tier), "")

    def tier_for_price(self, price_id: str | None) -> str:
        if price_id and price_id == self.settings.stripe_price_id_pro:
            return Tier.PRO.value
        if price_id and price_id == self.settings.stripe_price_id_premium:
            return Tier.PREMIUM.value
        return Tier.FREE.value

    # -------------------------------------- checkout --------------------------------------
    def create_checkout_session(
        self, user_id: str, tier: str, success_url: str | None = None, cancel_url: str | None = None
    ) -> dict:
        gateway = self._require_gateway()
        if (tier or "").upper() not in (Tier.PRO.value, Tier.PREMIUM.value):
            raise ValidationError("Choose a paid plan to check out")
        price_id = self.price_for_tier(tier)
        if not price_id:
            raise ValidationError(f"No price configured for tier: {tier}")
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        subscription = self.billing.get_subscription(user_id)
        customer_id = subscription.stripe_customer_id if subscription else None
        if not customer_id:
            customer_id = gateway.create_customer(email=user.email, user_id=user.id)
            self.billing.update_subscription(user_id, stripe_customer_id=customer_id)
        session = gateway.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=success_url or absolute_url("/billing/success"),
            cancel_url=cancel_url or absolute_url("/billing/cancel"),
            metadata={"user_id": user.id, "tier": Tier.parse(tier).value},
        )
        return {"session_id": session["id"], "url": session.get("url")}

    # -------------------------------------- webhooks --------------------------------------
    def handle_webhook(self, payload: bytes, signature: str | None) -> dict:
        gateway = self._require_gateway()
        if not gateway.webhook_secret:
            raise ServiceUnavailableError("STRIPE_WEBHOOK_SECRET is not configured", code="BILLING_DISABLED")
        try:
            event = gateway.construct_event(payload, signature or "")
        except WebhookSignatureError as exc:
            logger.warning("Rejected Stripe webhook: %s", exc)
            raise ValidationError("Invalid webhook signature") from exc
        return self.process_event(event)

    def process_event(self, event: dict) -> dict:
        """Apply a verified Stripe event once; repeated deliveries are acknowledged and skipped."""
        event_id = str(event.get("id") or "")
        event_type = str(event.get("type") or "")
        if not event_id:
            raise ValidationError("Webhook event has no id")
        if self.billing.webhook_processed(event_id):
            logger.info("Skipping duplicate Stripe event %s (%s)", event_id, event_type)
            return {"received": True, "duplicate": True}
        logger.info("Processing Stripe event %s (%s)", event_id, event_type)
        obj = ((event.get("data") or {}).get("object")) or {}
        handler = {
            "customer.subscription.created": self._subscription_created,
            "customer.subscription.updated": self._subscription_updated,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.payment_succeeded": self._invoice_paid,
            "invoice.payment_failed": self._invoice_failed,
        }.get(event_type)
        if handler is None:
            logger.info("Unhandled Stripe event type %s", event_type)
        else:
            handler(obj)
        if not self.billing.mark_webhook_processed(event_id, event_type):
            return {"received": True, "duplicate": True}
        return {"received": True, "duplicate": False}

    def _subscription_values(self, obj: dict) -> dict:
        price_id = _first_price_id(obj)
        return {
            "stripe_subscription_id": obj.get("id"),
            "stripe_price_id": price_id,
            "tier": self.tier_for_price(price_id),
            "status": map_stripe_status(obj.get("status")),
            "current_period_start": _from_timestamp(obj.get("current_period_start")),
            "current_period_end": _from_timestamp(obj.get("current_period_end")),
            "cancel_at_period_end": bool(obj.get("cancel_at_period_end")),
        }

    def _owner_of(self, obj: dict) -> Optional[str]:
        user_id = (obj.get("metadata") or {}).get("user_id")
        if user_id:
            return user_id
        existing = self.billing.get_by_stripe_subscription(obj.get("id") or "")
        if existing:
            return existing.user_id
        customer = self.billing.get_by_customer(obj.get("customer") or "")
        return customer.user_id if customer else None

    def _subscription_created(self, obj: dict) -> None:
        user_id = self._owner_of(obj)
        if not user_id:
            logger.error("No user found for Stripe subscription %s", obj.get("id"))
            return
        values = self._subscription_values(obj)
        self.billing.update_subscription(user_id, **values)
        logger.info("Subscription created for user %s, tier %s", user_id, values["tier"])

    def _subscription_updated(self, obj: dict) -> None:
        user_id = self._owner_of(obj)
        if not user_id:
            logger.error("Subscription not found: %s", obj.get("id"))
            return
        values = self._subscription_values(obj)
        self.billing.update_subscription(user_id, **values)
        logger.info("Subscription %s updated: tier %s, status %s", obj.get("id"), values["tier"], values["status"])

    def _subscription_deleted(self, obj: dict) -> None:
        existing = self.billing.get_by_stripe_subscription(obj.get("id") or "")
        if not existing:
            logger.error("Subscription not found: %s", obj.get("id"))
            return
        self.billing.update_subscription(existing.user_id, tier="FREE", status="CANCELED", cancel_at_period_end=False)
        logger.info("Subscription deleted: %s", obj.get("id"))

    def _record_invoice(self, obj: dict, subscription: Subscription, status: str) -> Invoice:
        return self.billing.save_invoice(
            subscription.id,
            obj.get("id") or "",
            amount=int(obj.get("amount_paid") or obj.get("amount_due") or 0),
            currency=obj.get("currency"),
            status=obj.get("status") or status,
            invoice_url=obj.get("hosted_invoice_url"),
            pdf_url=obj.get("invoice_pdf"),
        )

    def _invoice_paid(self, obj: dict) -> None:
        subscription = self.billing.get_by_stripe_subscription(obj.get("subscription") or "")
        if not subscription:
            return
        self._record_invoice(obj, subscription, "paid")
        if subscription.status == "PAST_DUE":
            self.billing.update_subscription(subscription.user_id, status="ACTIVE")

    def _invoice_failed(self, obj: dict) -> None:
        subscription = self.billing.get_by_stripe_subscription(obj.get("subscription") or "")
        if not subscription:
            return
        self.billing.update_subscription(subscription.user_id, status="PAST_DUE")
        self._record_invoice(obj, subscription, "open")
        logger.warning("Payment failed for subscription %s", subscription.stripe_subscription_id)

    # -------------------------------------- account --------------------------------------
    def usage(self, user_id: str) -> dict:
        subscription = self.billing.get_subscription(user_id)
        tier = subscription.tier if subscription else Tier.FREE.value
        limits = limits_for(tier)
        return {
            "tier": tier,
            "status": subscription.status if subscription else "ACTIVE",
            "cards_used": self.cards.count_active_for_user(user_id),
            "cards_limit": unlimited_as_int(limits.cards),
            "contacts_count": self.contacts.count_for_user(user_id),
            "contacts_limit": unlimited_as_int(limits.contacts),
            "analytics_retention_days": unlimited_as_int(limits.analytics_retention_days),
        }

    def cancel(self, user_id: str) -> Subscription:
        gateway = self._require_gateway()
        subscription = self.billing.get_subscription(user_id)
        if not subscription or not subscription.stripe_subscription_id:
            raise ValidationError("No active subscription found")
        gateway.cancel_at_period_end(subscription.stripe_subscription_id)
        logger.info("User %s scheduled cancellation of %s", user_id, subscription.stripe_subscription_id)
        return self.billing.update_subscription(user_id, cancel_at_period_end=True)

    def invoices(self, user_id: str) -> list[Invoice]:
        return self.billing.list_invoices(user_id)
