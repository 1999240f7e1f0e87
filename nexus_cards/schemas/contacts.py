"""Contact schemas."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

ContactSource = Literal["FORM", "QR", "NFC", "MANUAL", "IMPORTED"]


class ContactSubmit(BaseModel):
    """Public form posted from a card page."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    company: Optional[str] = Field(None, max_length=100)
    job_title: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)
    nfc_uid: Optional[str] = Field(None, max_length=64)


class ContactRow(BaseModel):
    """One contact when added manually or imported."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    company: Optional[str] = Field(None, max_length=100)
    job_title: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = Field(None, max_length=50)


class ContactCreate(ContactRow):
    tags: list[str] = Field(default_factory=list)
    favorite: bool = False
    source: Optional[ContactSource] = None


class ContactUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    company: Optional[str] = Field(None, max_length=100)
    job_title: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = Field(None, max_length=50)
    tags: Optional[list[str]] = None
    favorite: Optional[bool] = None


class ContactImport(BaseModel):
    # Rows stay loose so one bad row is reported instead of rejecting the batch.
    contacts: list[dict[str, Any]] = Field(..., min_length=1, max_length=1000)
    tags: list[str] = Field(default_factory=list)
    favorite: bool = False


class ContactExport(BaseModel):
    format: Literal["CSV", "VCF"] = "CSV"
    tags: Optional[list[str]] = None
    category: Optional[str] = None
    favorites_only: bool = False


class ContactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    card_id: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    favorite: bool = False
    source: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    exchanged_at: Optional[datetime] = None


class ImportRowError(BaseModel):
    row: int
    data: dict[str, Any]
    error: str


class ImportResult(BaseModel):
    success: int
    failed: int
    imported: list[ContactOut]
    errors: list[ImportRowError]
