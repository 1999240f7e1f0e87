from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_billing_service, get_current_user
from nexus_cards.schemas.billing import CheckoutRequest, CheckoutResponse, InvoiceOut, SubscriptionOut, UsageOut
from nexus_cards.services.billing_service import BillingService

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/checkout-session", response_model=CheckoutResponse)
def checkout_session(
    payload: CheckoutRequest,
    user: User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    return billing.create_checkout_session(user.id, payload.tier, payload.success_url, payload.cancel_url)


@router.post("/webhook")
async def stripe_webhook(request: Request, billing: BillingService = Depends(get_billing_service)):
    # Signature verification needs the exact bytes Stripe sent.
    payload = await request.body()
    return await run_in_threadpool(billing.handle_webhook, payload, request.headers.get("stripe-signature"))


@router.get("/usage", response_model=UsageOut)
def usage(user: User = Depends(get_current_user), billing: BillingService = Depends(get_billing_service)):
    return billing.usage(user.id)


@router.get("/invoices", response_model=list[InvoiceOut])
def invoices(user: User = Depends(get_current_user), billing: BillingService = Depends(get_billing_service)):
    return billing.invoices(user.id)


@router.delete("/subscription", response_model=SubscriptionOut)
def cancel_subscription(user: User = Depends(get_current_user), billing: BillingService = Depends(get_billing_service)):
    return billing.cancel(user.id)
