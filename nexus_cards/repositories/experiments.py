"""A/B experiments, their assignments and events."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from nexus_cards.db.models import Experiment, ExperimentAssignment, ExperimentEvent
from nexus_cards.db.session import get_session


class ExperimentRepository:

    # ---- experiments ----
    def get(self, experiment_id: str) -> Optional[Experiment]:
        with get_session() as session:
            return session.get(Experiment, experiment_id)

    def list(self, status: str | None = None) -> list[Experiment]:
        with get_session() as session:
            stmt = select(Experiment)
            if status:
                stmt = stmt.where(Experiment.status == status)
            return list(session.execute(stmt.order_by(Experiment.created_at.desc())).scalars().all())

    def create(self, **fields) -> Experiment:
        experiment = Experiment(**fields)
        with get_session() as session:
            session.add(experiment)
            session.commit()
            session.refresh(experiment)
            return experiment

    def update(self, experiment_id: str, **fields) -> Optional[Experiment]:
        with get_session() as session:
            experiment = session.get(Experiment, experiment_id)
            if not experiment:
                return None
            for key, value in fields.items():
                setattr(experiment, key, value)
            session.commit()
            session.refresh(experiment)
            return experiment

    # ---- assignments ----
    def get_assignment(self, experiment_id: str, session_id: str) -> Optional[ExperimentAssignment]:
        with get_session() as session:
            stmt = select(ExperimentAssignment).where(
                ExperimentAssignment.experiment_id == experiment_id,
                ExperimentAssignment.session_id == session_id,
            )
            return session.execute(stmt).scalar_one_or_none()

    def create_assignment(
        self, experiment_id: str, session_id: str, variant: str, user_id: str | None = None
    ) -> ExperimentAssignment:
        """Persist an assignment; a concurrent insert for the same session wins."""
        assignment = ExperimentAssignment(
            experiment_id=experiment_id, session_id=session_id, variant=variant, user_id=user_id
        )
        with get_session() as session:
            session.add(assignment)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                existing = self.get_assignment(experiment_id, session_id)
                if existing is None:
                    raise
                return existing
            session.refresh(assignment)
            return assignment

    def assignment_counts(self, experiment_id: str) -> dict[str, int]:
        with get_session() as session:
            stmt = (
                select(ExperimentAssignment.variant, func.count(ExperimentAssignment.id))
                .where(ExperimentAssignment.experiment_id == experiment_id)
                .group_by(ExperimentAssignment.variant)
            )
            return {variant: count for variant, count in session.execute(stmt).all()}

    # ---- events ----
    def add_event(self, **fields) -> ExperimentEvent:
        event = ExperimentEvent(**fields)
        with get_session() as session:
            session.add(event)
            session.commit()
            session.refresh(event)
            return event

    def event_counts(self, experiment_id: str, event_type: str) -> dict[str, int]:
        """Distinct sessions per variant that logged ``event_type``."""
        with get_session() as session:
            stmt = (
                select(ExperimentEvent.variant, func.count(func.distinct(ExperimentEvent.session_id)))
                .where(ExperimentEvent.experiment_id == experiment_id, ExperimentEvent.event_type == event_type)
                .group_by(ExperimentEvent.variant)
            )
            return {variant: count for variant, count in session.execute(stmt).all()}
