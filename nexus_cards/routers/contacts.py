from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_contact_service, get_current_user
from nexus_cards.schemas.contacts import (
    ContactCreate,
    ContactExport,
    ContactImport,
    ContactOut,
    ContactUpdate,
    ImportResult,
)
from nexus_cards.services.contact_service import ContactService

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("", response_model=list[ContactOut])
def list_contacts(
    tags: Optional[list[str]] = Query(None),
    category: Optional[str] = None,
    favorites_only: bool = Query(False, alias="favoritesOnly"),
    search: Optional[str] = None,
    user: User = Depends(get_current_user),
    contacts: ContactService = Depends(get_contact_service),
):
    return contacts.list(user.id, tags=tags, category=category, favorites_only=favorites_only, search=search)


@router.post("", response_model=ContactOut, status_code=201)
def create_contact(
    payload: ContactCreate,
    user: User = Depends(get_current_user),
    contacts: ContactService = Depends(get_contact_service),
):
    return contacts.create_manual(user.id, payload.model_dump())


@router.post("/import", response_model=ImportResult)
def import_contacts(
    payload: ContactImport,
    user: User = Depends(get_current_user),
    contacts: ContactService = Depends(get_contact_service),
):
    return contacts.import_contacts(user.id, payload.contacts, tags=payload.tags, favorite=payload.favorite)


@router.post("/export")
def export_contacts(
    payload: ContactExport,
    user: User = Depends(get_current_user),
    contacts: ContactService = Depends(get_contact_service),
):
    export = contacts.export(
        user.id,
        payload.format,
        tags=payload.tags,
        category=payload.category,
        favorites_only=payload.favorites_only,
    )
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.get("/{contact_id}", response_model=ContactOut)
def get_contact(contact_id: str, user: User = Depends(get_current_user), contacts: ContactService = Depends(get_contact_service)):
    return contacts.get(contact_id, user.id)


@router.patch("/{contact_id}", response_model=ContactOut)
def update_contact(
    contact_id: str,
    payload: ContactUpdate,
    user: User = Depends(get_current_user),
    contacts: ContactService = Depends(get_contact_service),
):
    return contacts.update(contact_id, user.id, payload.model_dump(exclude_unset=True))


@router.delete("/{contact_id}", status_code=204)
def delete_contact(contact_id: str, user: User = Depends(get_current_user), contacts: ContactService = Depends(get_contact_service)):
    contacts.delete(contact_id, user.id)
    return Response(status_code=204)
