"""
A/B experiments: weighted sticky variant assignment, event logging and results.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import Callable, Optional

from nexus_cards.core.errors import NotFoundError, ValidationError
from nexus_cards.db.models import Experiment, ExperimentAssignment, ExperimentEvent
from nexus_cards.repositories.experiments import ExperimentRepository

logger = logging.getLogger(__name__)

STATUSES = ("DRAFT", "ACTIVE", "PAUSED", "COMPLETED")
DEFAULT_CONVERSION_EVENT = "conversion"


def validate_variants(variants: dict | None) -> dict[str, float]:
    if not isinstance(variants, dict) or len(variants) < 2:
        raise ValidationError("An experiment needs at least two variants")
    cleaned: dict[str, float] = {}
    for name, weight in variants.items():
        key = str(name or "").strip()
        if not key:
            raise ValidationError("Variant names cannot be empty")
        if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight < 0:
            raise ValidationError(f"Weight for variant '{key}' must be a non-negative number")
        cleaned[key] = float(weight)
    if sum(cleaned.values()) <= 0:
        raise ValidationError("Variant weights must add up to more than zero")
    return cleaned


def pick_variant(variants: dict[str, float], rand: Callable[[], float] = random.random) -> str:
    """Weighted choice: walk the variants subtracting weights until the draw is spent."""
    names = list(variants)
    remaining = rand() * sum(variants.values())
    for name in names:
        remaining -= variants[name]
        if remaining <= 0:
            return name
    return names[0]


@dataclass
class ExperimentService:

    def __post_init__(self):
        self.experiments = ExperimentRepository()
        self.rand: Callable[[], float] = random.random

    def _experiment(self, experiment_id: str) -> Experiment:
        experiment = self.experiments.get(experiment_id)
        if not experiment:
            raise NotFoundError("Experiment not found")
        return experiment

    # -------------------------------------- public --------------------------------------
    def get_active(self, experiment_id: str) -> Experiment:
        experiment = self.experiments.get(experiment_id)
        if not experiment or experiment.status != "ACTIVE":
            raise NotFoundError("Experiment not found or not active")
        return experiment

    def assign_variant(self, experiment_id: str, session_id: str, user_id: str | None = None) -> ExperimentAssignment:
        experiment = self.get_active(experiment_id)
        existing = self.experiments.get_assignment(experiment.id, session_id)
        if existing:
            return existing
        variant = pick_variant(experiment.variants or {}, self.rand)
        return self.experiments.create_assignment(experiment.id, session_id, variant, user_id=user_id)

    def log_event(
        self,
        experiment_id: str,
        *,
        session_id: str,
        variant: str,
        event_type: str,
        user_id: str | None = None,
        metadata: Optional[dict] = None,
    ) -> ExperimentEvent:
        experiment = self.get_active(experiment_id)
        if variant not in (experiment.variants or {}):
            raise ValidationError(f"Unknown variant '{variant}' for this experiment")
        return self.experiments.add_event(
            experiment_id=experiment.id,
            session_id=session_id,
            user_id=user_id,
            variant=variant,
            event_type=event_type,
            meta=dict(metadata or {}),
        )

    # -------------------------------------- admin --------------------------------------
    def list(self, status: str | None = None) -> list[Experiment]:
        return self.experiments.list(status=(status or "").upper() or None)

    def get(self, experiment_id: str) -> Experiment:
        return self._experiment(experiment_id)

    def create(self, data: dict) -> Experiment:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Experiment name is required")
        return self.experiments.create(
            name=name,
            description=data.get("description"),
            variants=validate_variants(data.get("variants")),
            status="DRAFT",
            target_path=data.get("target_path"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
        )

    def update(self, experiment_id: str, data: dict) -> Experiment:
        experiment = self._experiment(experiment_id)
        values = {
            k: data[k]
            for k in ("name", "description", "target_path", "start_date", "end_date")
            if k in data
        }
        if "variants" in data:
            values["variants"] = validate_variants(data["variants"])
        if not values:
            return experiment
        return self.experiments.update(experiment.id, **values)

    def set_status(self, experiment_id: str, status: str) -> Experiment:
        value = (status or "").upper()
        if value not in STATUSES:
            raise ValidationError(f"Status must be one of {', '.join(STATUSES)}")
        experiment = self._experiment(experiment_id)
        logger.info("Experiment %s: %s -> %s", experiment.id, experiment.status, value)
        return self.experiments.update(experiment.id, status=value)

    def results(self, experiment_id: str, conversion_event: str = DEFAULT_CONVERSION_EVENT) -> dict:
        experiment = self._experiment(experiment_id)
        assignments = self.experiments.assignment_counts(experiment.id)
        conversions = self.experiments.event_counts(experiment.id, conversion_event)
        variants = []
        for name, weight in (experiment.variants or {}).items():
            assigned = assignments.get(name, 0)
            converted = conversions.get(name, 0)
            variants.append(
                {
                    "variant": name,
                    "weight": weight,
                    "assignments": assigned,
                    "conversions": converted,
                    "conversion_rate": round(converted / assigned, 4) if assigned else 0.0,
                }
            )
        return {"experiment_id": experiment.id, "conversion_event": conversion_event, "variants": variants}
