from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_activity_log_service, require_admin
from nexus_cards.schemas.share_links import ActionCount, ActivityLogOut, ActivityLogPage
from nexus_cards.services.activity_log_service import ActivityLogService

admin_router = APIRouter(prefix="/admin/activity-logs", tags=["admin"])


@admin_router.get("", response_model=ActivityLogPage)
def list_activity(
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    admin: User = Depends(require_admin),
    activity: ActivityLogService = Depends(get_activity_log_service),
):
    return activity.query(
        user_id=user_id, action=action, entity_type=entity_type, start=start, end=end, page=page, limit=limit
    )


@admin_router.get("/stats", response_model=list[ActionCount])
def activity_stats(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    admin: User = Depends(require_admin),
    activity: ActivityLogService = Depends(get_activity_log_service),
):
    return activity.action_stats(start, end)


@admin_router.get("/recent", response_model=list[ActivityLogOut])
def recent_activity(
    user_id: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    admin: User = Depends(require_admin),
    activity: ActivityLogService = Depends(get_activity_log_service),
):
    return activity.recent(user_id, limit)
