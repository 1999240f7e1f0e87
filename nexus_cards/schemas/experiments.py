"""A/B experiment schemas."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ExperimentStatus = Literal["DRAFT", "ACTIVE", "PAUSED", "COMPLETED"]


class ExperimentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    variants: dict[str, float]
    target_path: Optional[str] = Field(None, max_length=255)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ExperimentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    variants: Optional[dict[str, float]] = None
    target_path: Optional[str] = Field(None, max_length=255)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class StatusUpdate(BaseModel):
    status: ExperimentStatus


class ExperimentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    variants: dict[str, float]
    status: str
    target_path: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AssignRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    experiment_id: str
    session_id: str
    variant: str
    assigned_at: Optional[datetime] = None


class EventRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    variant: str = Field(..., min_length=1, max_length=64)
    event_type: str = Field(..., min_length=1, max_length=64)
    metadata: dict[str, Any] = Field(default_factory=dict)


class VariantResult(BaseModel):
    variant: str
    weight: float
    assignments: int
    conversions: int
    conversion_rate: float


class ExperimentResults(BaseModel):
    experiment_id: str
    conversion_event: str
    variants: list[VariantResult]
