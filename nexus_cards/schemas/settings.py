"""System setting schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SettingCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=120, pattern=r"^[A-Za-z0-9_.:-]+$")
    value: Any = None
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=64)


class SettingUpdate(BaseModel):
    value: Any = None
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=64)


class SettingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: Any = None
    description: Optional[str] = None
    category: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None
