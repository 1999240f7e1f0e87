from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_component_service, get_current_user
from nexus_cards.schemas.cards import AvailableComponents, ComponentCreate, ComponentOut, ComponentUpdate, ReorderRequest
from nexus_cards.services.component_service import ComponentService

router = APIRouter(tags=["components"])


@router.get("/components/available", response_model=AvailableComponents)
def available_components(
    user: User = Depends(get_current_user),
    components: ComponentService = Depends(get_component_service),
):
    return components.available(user.id)


@router.get("/cards/{card_id}/components", response_model=list[ComponentOut])
def list_components(
    card_id: str,
    user: User = Depends(get_current_user),
    components: ComponentService = Depends(get_component_service),
):
    return components.list(card_id, user.id)


@router.post("/cards/{card_id}/components", response_model=ComponentOut, status_code=201)
def create_component(
    card_id: str,
    payload: ComponentCreate,
    user: User = Depends(get_current_user),
    components: ComponentService = Depends(get_component_service),
):
    return components.create(card_id, user.id, payload.model_dump(exclude_none=True))


@router.post("/cards/{card_id}/components/reorder", response_model=list[ComponentOut])
def reorder_components(
    card_id: str,
    payload: ReorderRequest,
    user: User = Depends(get_current_user),
    components: ComponentService = Depends(get_component_service),
):
    items = [item.model_dump() for item in payload.components]
    return components.reorder(card_id, user.id, items)


@router.get("/cards/{card_id}/components/{component_id}", response_model=ComponentOut)
def get_component(
    card_id: str,
    component_id: str,
    user: User = Depends(get_current_user),
    components: ComponentService = Depends(get_component_service),
):
    return components.get(card_id, component_id, user.id)


@router.patch("/cards/{card_id}/components/{component_id}", response_model=ComponentOut)
def update_component(
    card_id: str,
    component_id: str,
    payload: ComponentUpdate,
    user: User = Depends(get_current_user),
    components: ComponentService = Depends(get_component_service),
):
    return components.update(card_id, component_id, user.id, payload.model_dump(exclude_unset=True))


@router.delete("/cards/{card_id}/components/{component_id}", status_code=204)
def delete_component(
    card_id: str,
    component_id: str,
    user: User = Depends(get_current_user),
    components: ComponentService = Depends(get_component_service),
):
    components.remove(card_id, component_id, user.id)
    return Response(status_code=204)
