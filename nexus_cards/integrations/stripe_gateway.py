"""Thin adapter over the Stripe SDK so billing logic can be exercised with a fake."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import stripe

logger = logging.getLogger(__name__)


class WebhookSignatureError(Exception):
    """Raised when a webhook payload fails signature verification."""


class StripeGateway:

    def __init__(self, api_key: str, webhook_secret: str = ""):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_customer(self, *, email: str, user_id: str) -> str:
        customer = stripe.Customer.create(api_key=self.api_key, email=email, metadata={"user_id": user_id})
        return customer["id"]

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> dict[str, Optional[str]]:
        session = stripe.checkout.Session.create(
            api_key=self.api_key,
            customer=customer_id,
            mode="subscription",
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            subscription_data={"metadata": metadata},
        )
        return {"id": session["id"], "url": session.get("url")}

    def cancel_at_period_end(self, subscription_id: str) -> None:
        stripe.Subscription.modify(subscription_id, api_key=self.api_key, cancel_at_period_end=True)

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify the signature and return the event as plain JSON data."""
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            raise WebhookSignatureError(str(exc)) from exc
        return json.loads(payload)
