from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_experiment_service, get_optional_user, require_admin
from nexus_cards.schemas.experiments import (
    AssignmentOut,
    AssignRequest,
    EventRequest,
    ExperimentCreate,
    ExperimentOut,
    ExperimentResults,
    ExperimentUpdate,
    StatusUpdate,
)
from nexus_cards.services.experiment_service import DEFAULT_CONVERSION_EVENT, ExperimentService

router = APIRouter(prefix="/experiments", tags=["experiments"])
admin_router = APIRouter(prefix="/admin/experiments", tags=["admin"])


@router.get("/{experiment_id}", response_model=ExperimentOut)
def active_experiment(experiment_id: str, experiments: ExperimentService = Depends(get_experiment_service)):
    return experiments.get_active(experiment_id)


@router.post("/{experiment_id}/assign", response_model=AssignmentOut)
def assign_variant(
    experiment_id: str,
    payload: AssignRequest,
    user: Optional[User] = Depends(get_optional_user),
    experiments: ExperimentService = Depends(get_experiment_service),
):
    return experiments.assign_variant(experiment_id, payload.session_id, user.id if user else None)


@router.post("/{experiment_id}/event", status_code=201)
def log_event(
    experiment_id: str,
    payload: EventRequest,
    user: Optional[User] = Depends(get_optional_user),
    experiments: ExperimentService = Depends(get_experiment_service),
):
    event = experiments.log_event(
        experiment_id,
        session_id=payload.session_id,
        variant=payload.variant,
        event_type=payload.event_type,
        user_id=user.id if user else None,
        metadata=payload.metadata,
    )
    return {"id": event.id, "recorded": True}


# -------------------------------------- admin --------------------------------------
@admin_router.get("", response_model=list[ExperimentOut])
def list_experiments(
    status: Optional[str] = None,
    admin: User = Depends(require_admin),
    experiments: ExperimentService = Depends(get_experiment_service),
):
    return experiments.list(status)


@admin_router.post("", response_model=ExperimentOut, status_code=201)
def create_experiment(
    payload: ExperimentCreate,
    admin: User = Depends(require_admin),
    experiments: ExperimentService = Depends(get_experiment_service),
):
    return experiments.create(payload.model_dump())


@admin_router.patch("/{experiment_id}", response_model=ExperimentOut)
def update_experiment(
    experiment_id: str,
    payload: ExperimentUpdate,
    admin: User = Depends(require_admin),
    experiments: ExperimentService = Depends(get_experiment_service),
):
    return experiments.update(experiment_id, payload.model_dump(exclude_unset=True))


@admin_router.post("/{experiment_id}/status", response_model=ExperimentOut)
def set_status(
    experiment_id: str,
    payload: StatusUpdate,
    admin: User = Depends(require_admin),
    experiments: ExperimentService = Depends(get_experiment_service),
):
    return experiments.set_status(experiment_id, payload.status)


@admin_router.get("/{experiment_id}/results", response_model=ExperimentResults)
def experiment_results(
    experiment_id: str,
    conversion_event: str = DEFAULT_CONVERSION_EVENT,
    admin: User = Depends(require_admin),
    experiments: ExperimentService = Depends(get_experiment_service),
):
    return experiments.results(experiment_id, conversion_event)
