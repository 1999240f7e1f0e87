from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from nexus_cards.core.rate_limiter import rate_limit_ip
from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_current_user, get_share_link_service
from nexus_cards.schemas.share_links import (
    ChannelUrls,
    ShareLinkCreate,
    ShareLinkOut,
    ShareLinkUpdate,
    ShareValidate,
    ShareValidation,
)
from nexus_cards.services.share_link_service import ShareLinkService

router = APIRouter(prefix="/share-links", tags=["share-links"])


@router.post("", response_model=ShareLinkOut, status_code=201)
def create_share_link(
    payload: ShareLinkCreate,
    user: User = Depends(get_current_user),
    links: ShareLinkService = Depends(get_share_link_service),
):
    return links.create(user.id, payload.model_dump())


# Token checks for clients that hold a link; registered before /{link_id}.
@router.post("/validate", response_model=ShareValidation)
def validate_share_link(
    payload: ShareValidate,
    request: Request,
    links: ShareLinkService = Depends(get_share_link_service),
):
    rate_limit_ip(request, "share:validate", limit=20, window_seconds=60)
    shared = links.open(payload.token, payload.password)
    return {
        "valid": True,
        "card_id": shared.card.id,
        "allow_contact_submission": shared.link.allow_contact_submission,
    }


@router.get("/card/{card_id}", response_model=list[ShareLinkOut])
def list_share_links(
    card_id: str,
    user: User = Depends(get_current_user),
    links: ShareLinkService = Depends(get_share_link_service),
):
    return links.list_for_card(user.id, card_id)


@router.get("/{link_id}", response_model=ShareLinkOut)
def get_share_link(
    link_id: str,
    user: User = Depends(get_current_user),
    links: ShareLinkService = Depends(get_share_link_service),
):
    return links.get(user.id, link_id)


@router.put("/{link_id}", response_model=ShareLinkOut)
def update_share_link(
    link_id: str,
    payload: ShareLinkUpdate,
    user: User = Depends(get_current_user),
    links: ShareLinkService = Depends(get_share_link_service),
):
    return links.update(user.id, link_id, payload.model_dump(exclude_unset=True))


@router.delete("/{link_id}", status_code=204)
def revoke_share_link(
    link_id: str,
    user: User = Depends(get_current_user),
    links: ShareLinkService = Depends(get_share_link_service),
):
    links.revoke(user.id, link_id)
    return Response(status_code=204)


@router.get("/{link_id}/channel-urls", response_model=ChannelUrls)
def share_channel_urls(
    link_id: str,
    user: User = Depends(get_current_user),
    links: ShareLinkService = Depends(get_share_link_service),
):
    return links.channel_urls(user.id, link_id)
