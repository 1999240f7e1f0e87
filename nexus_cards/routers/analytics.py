from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_analytics_service, get_current_user, require_admin
from nexus_cards.schemas.analytics import AnalyticsReport, EventOut, GlobalOverview, TopCard
from nexus_cards.services.analytics_service import AnalyticsService, days_for_range

router = APIRouter(prefix="/analytics", tags=["analytics"])
admin_router = APIRouter(prefix="/admin/analytics", tags=["admin"])


@router.get("", response_model=AnalyticsReport)
def my_analytics(
    time_range: Optional[str] = Query(None, alias="timeRange"),
    card_id: Optional[str] = Query(None, alias="cardId"),
    user: User = Depends(get_current_user),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return analytics.user_report(user.id, days_for_range(time_range), card_id)


@router.get("/card/{card_id}", response_model=AnalyticsReport)
def card_analytics(
    card_id: str,
    time_range: Optional[str] = Query(None, alias="timeRange"),
    user: User = Depends(get_current_user),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return analytics.user_report(user.id, days_for_range(time_range), card_id)


@admin_router.get("/overview", response_model=GlobalOverview)
def overview(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    admin: User = Depends(require_admin),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return analytics.global_overview(start_date, end_date)


@admin_router.get("/top-cards", response_model=list[TopCard])
def top_cards(
    limit: int = Query(10, ge=1, le=100),
    admin: User = Depends(require_admin),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return analytics.top_cards(limit)


@admin_router.get("/events", response_model=list[EventOut])
def recent_events(
    skip: int = Query(0, ge=0),
    take: int = Query(50, ge=1, le=200),
    event_type: Optional[str] = Query(None, alias="eventType"),
    admin: User = Depends(require_admin),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return analytics.recent_events(skip, take, event_type)
