"""
Anonymous surface: the rendered card page, its vCard and QR code, the public
JSON API used by the page, share-link access and the NFC tap redirect.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from nexus_cards.core.errors import AuthenticationError, NotFoundError, PermissionDeniedError
from nexus_cards.core.rate_limiter import rate_limit_ip
from nexus_cards.routers.deps import (
    get_analytics_service,
    get_card_service,
    get_contact_service,
    get_nfc_service,
    get_share_link_service,
    request_meta,
)
from nexus_cards.schemas.cards import LinkClick, PublicCardOut, PublicCardResponse, PublicComponentOut
from nexus_cards.schemas.contacts import ContactSubmit
from nexus_cards.schemas.share_links import SharedCardResponse, SharePassword
from nexus_cards.services.analytics_service import AnalyticsService
from nexus_cards.services.card_display import build_render_context, card_vcard, public_url, qr_png
from nexus_cards.services.card_service import CardService
from nexus_cards.services.contact_service import ContactService
from nexus_cards.services.nfc_service import NfcService
from nexus_cards.services.share_link_service import ShareLinkService, SharedCard

router = APIRouter(tags=["public"])


def _templates(request: Request):
    tpl = getattr(getattr(request.app, "state", None), "templates", None)
    if tpl:
        return tpl
    raise RuntimeError("Templates are not configured")


def _css_href(request: Request) -> str:
    return getattr(getattr(request.app, "state", None), "css_href", "/static/card.css")


def _message_page(request: Request, title: str, message: str, status_code: int = 404) -> HTMLResponse:
    return _templates(request).TemplateResponse(
        request,
        "not_found.html",
        {"title": title, "message": message, "css_href": _css_href(request)},
        status_code=status_code,
    )


# -------------------------------------- rendered pages --------------------------------------
@router.get("/p/{slug}.vcf")
def card_vcf(slug: str, cards: CardService = Depends(get_card_service)):
    card = cards.get_public(slug).card
    return Response(
        content=card_vcard(card),
        media_type="text/vcard; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{card.slug}.vcf"'},
    )


@router.get("/p/{slug}/qr.png")
def card_qr(slug: str, cards: CardService = Depends(get_card_service)):
    card = cards.get_public(slug).card
    return Response(
        content=qr_png(public_url(card.slug)),
        media_type="image/png",
        headers={"Cache-Control": "public, max-age=3600"},
    )


@router.get("/p/{slug}", response_class=HTMLResponse)
def card_page(
    slug: str,
    request: Request,
    uid: Optional[str] = None,
    cards: CardService = Depends(get_card_service),
):
    try:
        public = cards.get_public(slug)
    except (NotFoundError, PermissionDeniedError):
        return _message_page(request, "Card not found", "This card does not exist or is not published.")
    cards.record_view(public.card.slug, nfc_uid=uid, **request_meta(request))
    context = build_render_context(public.card, public.components, nfc_uid=uid)
    context["css_href"] = _css_href(request)
    return _templates(request).TemplateResponse(request, "card.html", context)


@router.get("/s/{token}", response_class=HTMLResponse)
def shared_card_page(
    token: str,
    request: Request,
    links: ShareLinkService = Depends(get_share_link_service),
    cards: CardService = Depends(get_card_service),
):
    link = links.find_usable(token)
    if link is None:
        return _message_page(request, "Link unavailable", "This share link is invalid, revoked or expired.")
    if link.password_hash:
        return _message_page(
            request, "Password required", "Open this link in the Nexus Cards app to enter its password.", status_code=401
        )
    try:
        shared = links.open(token)
    except (AuthenticationError, NotFoundError):
        return _message_page(request, "Link unavailable", "This share link is invalid, revoked or expired.")
    cards.record_view(shared.card.slug, source="SHARE_LINK", **request_meta(request))
    context = build_render_context(shared.card, shared.components)
    context["css_href"] = _css_href(request)
    return _templates(request).TemplateResponse(request, "card.html", context)


@router.get("/t/{uid}")
def nfc_tap(uid: str, request: Request, nfc: NfcService = Depends(get_nfc_service)):
    rate_limit_ip(request, "nfc:tap", limit=60, window_seconds=60)
    result = nfc.resolve(uid, **request_meta(request))
    if result.action == "REDIRECT":
        return RedirectResponse(result.redirect_url, status_code=302)
    if result.status == "UNASSOCIATED":
        return _message_page(request, "Tag not linked yet", result.message, status_code=200)
    return _message_page(request, "Tag unavailable", result.message)


# -------------------------------------- public JSON --------------------------------------
@router.get("/public/cards/{slug}", response_model=PublicCardResponse)
def public_card(
    slug: str,
    request: Request,
    uid: Optional[str] = None,
    cards: CardService = Depends(get_card_service),
):
    public = cards.get_public(slug)
    cards.record_view(public.card.slug, nfc_uid=uid, **request_meta(request))
    return PublicCardResponse(
        card=PublicCardOut.model_validate(public.card),
        components=[PublicComponentOut.model_validate(c) for c in public.components],
    )


@router.post("/public/cards/{slug}/contacts", status_code=201)
def submit_contact(
    slug: str,
    payload: ContactSubmit,
    request: Request,
    contacts: ContactService = Depends(get_contact_service),
):
    rate_limit_ip(request, "public:contact", limit=10, window_seconds=60)
    data = payload.model_dump(exclude={"nfc_uid"})
    contact = contacts.submit(slug, data, nfc_uid=payload.nfc_uid, **request_meta(request))
    return {"id": contact.id, "message": "Contact shared"}


@router.post("/public/cards/{slug}/clicks", status_code=202)
def track_click(
    slug: str,
    payload: LinkClick,
    request: Request,
    cards: CardService = Depends(get_card_service),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    rate_limit_ip(request, "public:click", limit=60, window_seconds=60)
    card = cards.get_public(slug).card
    analytics.log_link_click(
        card.id,
        payload.url,
        metadata={"label": payload.label} if payload.label else {},
        **request_meta(request),
    )
    return {"recorded": True}


# -------------------------------------- share links --------------------------------------
def _shared_response(shared: SharedCard) -> SharedCardResponse:
    return SharedCardResponse(
        allow_contact_submission=shared.link.allow_contact_submission,
        card=PublicCardOut.model_validate(shared.card),
        components=[PublicComponentOut.model_validate(c) for c in shared.components],
    )


@router.get("/public/share/{token}", response_model=SharedCardResponse)
def shared_card(token: str, links: ShareLinkService = Depends(get_share_link_service)):
    link = links.find_usable(token)
    if link is None:
        raise AuthenticationError("Invalid or expired share link", code="SHARE_LINK_INVALID")
    if link.password_hash:
        return SharedCardResponse(requires_password=True, allow_contact_submission=link.allow_contact_submission)
    return _shared_response(links.open(token))


@router.post("/public/share/{token}/validate-password", response_model=SharedCardResponse)
def unlock_shared_card(
    token: str,
    payload: SharePassword,
    request: Request,
    links: ShareLinkService = Depends(get_share_link_service),
):
    rate_limit_ip(request, "share:password", limit=10, window_seconds=60)
    return _shared_response(links.open(token, payload.password))
