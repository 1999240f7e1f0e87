"""NFC tag schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class TagOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    uid: str
    status: str
    assigned_user_id: Optional[str] = None
    card_id: Optional[str] = None
    tap_count: int = 0
    last_tapped_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TagList(BaseModel):
    tags: list[TagOut]
    total: int
    skip: int
    take: int


class AssociateRequest(BaseModel):
    card_id: str = Field(..., min_length=1)


class ImportTagsRequest(BaseModel):
    uids: list[str] = Field(..., min_length=1, max_length=10000)


class ImportTagsResult(BaseModel):
    imported: int
    skipped: int
    errors: list[str]


class AssignRequest(BaseModel):
    user_id: Optional[str] = None
    user_email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def _one_target(self):
        if not (self.user_id or self.user_email):
            raise ValueError("user_id or user_email is required")
        return self


class TagStats(BaseModel):
    total: int
    unassociated: int
    associated: int
    deactivated: int


class ResolveResult(BaseModel):
    status: str
    action: str
    tag_id: Optional[str] = None
    card_slug: Optional[str] = None
    redirect_url: Optional[str] = None
    message: Optional[str] = None
