"""Subscriptions, invoices and processed webhook ids."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from nexus_cards.db.models import Invoice, ProcessedWebhook, Subscription
from nexus_cards.db.session import get_session


class BillingRepository:

    # ---- subscriptions ----
    def get_subscription(self, user_id: str) -> Optional[Subscription]:
        with get_session() as session:
            stmt = select(Subscription).where(Subscription.user_id == user_id)
            return session.execute(stmt).scalar_one_or_none()

    def get_by_stripe_subscription(self, stripe_subscription_id: str) -> Optional[Subscription]:
        with get_session() as session:
            stmt = select(Subscription).where(Subscription.stripe_subscription_id == stripe_subscription_id)
            return session.execute(stmt).scalar_one_or_none()

    def get_by_customer(self, stripe_customer_id: str) -> Optional[Subscription]:
        with get_session() as session:
            stmt = select(Subscription).where(Subscription.stripe_customer_id == stripe_customer_id)
            return session.execute(stmt).scalars().first()

    def update_subscription(self, user_id: str, **fields) -> Subscription:
        """Apply ``fields`` to the user's subscription, creating the row when missing."""
        with get_session() as session:
            stmt = select(Subscription).where(Subscription.user_id == user_id)
            sub = session.execute(stmt).scalar_one_or_none()
            if not sub:
                sub = Subscription(user_id=user_id, tier="FREE", status="ACTIVE")
                session.add(sub)
            for key, value in fields.items():
                setattr(sub, key, value)
            session.commit()
            session.refresh(sub)
            return sub

    # ---- invoices ----
    def save_invoice(self, subscription_id: str, stripe_invoice_id: str, **fields) -> Invoice:
        with get_session() as session:
            stmt = select(Invoice).where(Invoice.stripe_invoice_id == stripe_invoice_id)
            invoice = session.execute(stmt).scalar_one_or_none()
            if not invoice:
                invoice = Invoice(subscription_id=subscription_id, stripe_invoice_id=stripe_invoice_id, status="open")
                session.add(invoice)
            for key, value in fields.items():
                setattr(invoice, key, value)
            session.commit()
            session.refresh(invoice)
            return invoice

    def list_invoices(self, user_id: str) -> list[Invoice]:
        with get_session() as session:
            stmt = (
                select(Invoice)
                .join(Subscription, Invoice.subscription_id == Subscription.id)
                .where(Subscription.user_id == user_id)
                .order_by(Invoice.created_at.desc())
            )
            return list(session.execute(stmt).scalars().all())

    # ---- webhooks ----
    def webhook_processed(self, event_id: str) -> bool:
        with get_session() as session:
            return session.get(ProcessedWebhook, event_id) is not None

    def mark_webhook_processed(self, event_id: str, event_type: str) -> bool:
        """Record ``event_id``; False when another worker recorded it first."""
        with get_session() as session:
            session.add(ProcessedWebhook(event_id=event_id, event_type=event_type))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                return False
            return True
