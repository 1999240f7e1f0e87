"""Billing schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class CheckoutRequest(BaseModel):
    tier: Literal["FREE", "PRO", "PREMIUM"]
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutResponse(BaseModel):
    session_id: str
    url: Optional[str] = None


class UsageOut(BaseModel):
    tier: str
    status: str
    cards_used: int
    cards_limit: int
    contacts_count: int
    contacts_limit: int
    analytics_retention_days: int


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    stripe_invoice_id: str
    amount: int
    currency: Optional[str] = None
    status: str
    invoice_url: Optional[str] = None
    pdf_url: Optional[str] = None
    created_at: Optional[datetime] = None


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tier: str
    status: str
    cancel_at_period_end: bool
    current_period_end: Optional[datetime] = None
