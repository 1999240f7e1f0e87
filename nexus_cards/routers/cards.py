from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_card_service, get_current_user
from nexus_cards.schemas.cards import CardCreate, CardOut, CardUpdate, CustomCssUpdate, SocialLinks, StylingUpdate
from nexus_cards.services.card_service import CardService

router = APIRouter(prefix="/cards", tags=["cards"])


@router.post("", response_model=CardOut, status_code=201)
def create_card(payload: CardCreate, user: User = Depends(get_current_user), cards: CardService = Depends(get_card_service)):
    return cards.create(user.id, payload.model_dump(exclude_none=True))


@router.get("", response_model=list[CardOut])
def list_cards(user: User = Depends(get_current_user), cards: CardService = Depends(get_card_service)):
    return cards.list(user.id)


@router.get("/{card_id}", response_model=CardOut)
def get_card(card_id: str, user: User = Depends(get_current_user), cards: CardService = Depends(get_card_service)):
    return cards.get(card_id, user.id)


@router.patch("/{card_id}", response_model=CardOut)
def update_card(
    card_id: str,
    payload: CardUpdate,
    user: User = Depends(get_current_user),
    cards: CardService = Depends(get_card_service),
):
    return cards.update(card_id, user.id, payload.model_dump(exclude_unset=True))


@router.delete("/{card_id}", status_code=204)
def delete_card(card_id: str, user: User = Depends(get_current_user), cards: CardService = Depends(get_card_service)):
    cards.archive(card_id, user.id)
    return Response(status_code=204)


@router.get("/{card_id}/social-links", response_model=SocialLinks)
def get_social_links(card_id: str, user: User = Depends(get_current_user), cards: CardService = Depends(get_card_service)):
    return SocialLinks(social_links=cards.get_social_links(card_id, user.id))


@router.put("/{card_id}/social-links", response_model=SocialLinks)
def put_social_links(
    card_id: str,
    payload: SocialLinks,
    user: User = Depends(get_current_user),
    cards: CardService = Depends(get_card_service),
):
    return SocialLinks(social_links=cards.update_social_links(card_id, user.id, payload.social_links))


@router.patch("/{card_id}/styling", response_model=CardOut)
def update_styling(
    card_id: str,
    payload: StylingUpdate,
    user: User = Depends(get_current_user),
    cards: CardService = Depends(get_card_service),
):
    return cards.update_styling(card_id, user.id, payload.model_dump(exclude_unset=True))


@router.put("/{card_id}/custom-css", response_model=CardOut)
def update_custom_css(
    card_id: str,
    payload: CustomCssUpdate,
    user: User = Depends(get_current_user),
    cards: CardService = Depends(get_card_service),
):
    return cards.update_custom_css(card_id, user.id, payload.custom_css)
