from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_settings_service, require_admin
from nexus_cards.schemas.settings import SettingCreate, SettingOut, SettingUpdate
from nexus_cards.services.settings_service import SettingsService

router = APIRouter(prefix="/admin/settings", tags=["admin"])


@router.get("", response_model=list[SettingOut])
def list_settings(
    category: Optional[str] = None,
    admin: User = Depends(require_admin),
    settings: SettingsService = Depends(get_settings_service),
):
    return settings.list(category)


@router.get("/categories", response_model=list[str])
def list_categories(admin: User = Depends(require_admin), settings: SettingsService = Depends(get_settings_service)):
    return settings.categories()


@router.get("/{key}", response_model=SettingOut)
def get_setting(key: str, admin: User = Depends(require_admin), settings: SettingsService = Depends(get_settings_service)):
    return settings.get(key)


@router.post("", response_model=SettingOut, status_code=201)
def create_setting(
    payload: SettingCreate,
    admin: User = Depends(require_admin),
    settings: SettingsService = Depends(get_settings_service),
):
    return settings.create(
        payload.key,
        payload.value,
        description=payload.description,
        category=payload.category,
        updated_by=admin.id,
    )


@router.put("/{key}", response_model=SettingOut)
def update_setting(
    key: str,
    payload: SettingUpdate,
    admin: User = Depends(require_admin),
    settings: SettingsService = Depends(get_settings_service),
):
    return settings.update(key, updated_by=admin.id, **payload.model_dump(exclude_unset=True))


@router.delete("/{key}", status_code=204)
def delete_setting(key: str, admin: User = Depends(require_admin), settings: SettingsService = Depends(get_settings_service)):
    settings.delete(key)
    return Response(status_code=204)
