"""Analytics report schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SeriesPoint(BaseModel):
    label: str
    value: int


class AnalyticsReport(BaseModel):
    days: int
    views: int
    unique_visitors: int
    contact_exchanges: int
    link_clicks: int
    nfc_taps: int
    views_over_time: list[SeriesPoint]
    top_referrers: list[SeriesPoint]
    device_breakdown: list[SeriesPoint]


class GlobalOverview(BaseModel):
    total_events: int
    events_by_type: dict[str, int]
    total_cards: int
    total_users: int


class TopCard(BaseModel):
    card_id: str
    slug: str
    name: str
    views: int


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    card_id: str
    event_type: str
    source: Optional[str] = None
    referrer: Optional[str] = None
    device_type: Optional[str] = None
    link_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    timestamp: datetime
