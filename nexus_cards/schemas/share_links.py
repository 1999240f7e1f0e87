"""Share link and activity log schemas."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from nexus_cards.schemas.cards import PublicCardOut, PublicComponentOut

ShareChannel = Literal["DIRECT", "WHATSAPP", "TELEGRAM", "SMS", "EMAIL", "LINKEDIN", "QR", "NFC"]


class ShareLinkCreate(BaseModel):
    card_id: str
    name: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    expires_at: Optional[datetime] = None
    allow_contact_submission: bool = True
    channel: ShareChannel = "DIRECT"


class ShareLinkUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    expires_at: Optional[datetime] = None
    allow_contact_submission: Optional[bool] = None


class ShareLinkOut(BaseModel):
    id: str
    card_id: str
    token: str
    name: Optional[str] = None
    channel: str
    expires_at: Optional[datetime] = None
    allow_contact_submission: bool
    share_count: int
    last_accessed_at: Optional[datetime] = None
    created_at: datetime
    url: str
    is_expired: bool
    has_password: bool


class SharePassword(BaseModel):
    password: str = Field(..., min_length=1, max_length=128)


class SharedCardResponse(BaseModel):
    requires_password: bool = False
    allow_contact_submission: bool = True
    card: Optional[PublicCardOut] = None
    components: list[PublicComponentOut] = []


class ChannelUrls(BaseModel):
    whatsapp: str
    telegram: str
    sms: str
    email: str
    linkedin: str


class ActivityLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Optional[str] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime


class ActivityLogPage(BaseModel):
    logs: list[ActivityLogOut]
    total: int
    page: int
    limit: int
    total_pages: int


class ActionCount(BaseModel):
    action: str
    count: int


class ShareValidate(BaseModel):
    token: str = Field(..., min_length=1, max_length=64)
    password: Optional[str] = Field(None, max_length=128)


class ShareValidation(BaseModel):
    valid: bool
    card_id: str
    allow_contact_submission: bool
