from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_current_user, get_user_service, require_admin
from nexus_cards.schemas.users import (
    AdminUserDetails,
    AdminUserOut,
    ProfileOut,
    ProfileUpdate,
    RoleUpdate,
    SubscriptionOverride,
    UserList,
    UserOverview,
    UserUsage,
)
from nexus_cards.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])
admin_router = APIRouter(prefix="/admin/users", tags=["admin"])


@router.get("/me", response_model=ProfileOut)
def get_profile(user: User = Depends(get_current_user), users: UserService = Depends(get_user_service)):
    return users.profile(user.id)


@router.patch("/me/profile", response_model=ProfileOut)
def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return users.update_profile(user.id, payload.model_dump(exclude_unset=True, mode="json"))


@admin_router.get("", response_model=UserList)
def list_users(
    skip: int = Query(0, ge=0),
    take: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[str] = None,
    tier: Optional[str] = None,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    return users.list_users(skip=skip, take=take, search=search, role=role, tier=tier)


# Registered before /{user_id} so "stats" is not taken for an id.
@admin_router.get("/stats/overview", response_model=UserOverview)
def user_overview(admin: User = Depends(require_admin), users: UserService = Depends(get_user_service)):
    return users.overview()


@admin_router.get("/{user_id}", response_model=AdminUserDetails)
def get_user(user_id: str, admin: User = Depends(require_admin), users: UserService = Depends(get_user_service)):
    return users.details(user_id)


@admin_router.patch("/{user_id}/role", response_model=AdminUserOut)
def update_role(
    user_id: str,
    payload: RoleUpdate,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    return users.update_role(user_id, payload.role, admin_id=admin.id)


@admin_router.patch("/{user_id}/subscription", response_model=AdminUserOut)
def update_subscription(
    user_id: str,
    payload: SubscriptionOverride,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    return users.update_subscription(user_id, payload.model_dump(exclude_unset=True), admin_id=admin.id)


@admin_router.get("/{user_id}/usage", response_model=UserUsage)
def user_usage(user_id: str, admin: User = Depends(require_admin), users: UserService = Depends(get_user_service)):
    return users.usage(user_id)
