from __future__ import annotations

import pytest

from nexus_cards.core.errors import NotFoundError, ValidationError
from nexus_cards.services.experiment_service import ExperimentService, pick_variant, validate_variants


def _active(svc: ExperimentService, variants: dict | None = None):
    experiment = svc.create({"name": "Hero copy", "variants": variants or {"control": 1, "bold": 1}})
    return svc.set_status(experiment.id, "active")


def test_validate_variants():
    assert validate_variants({"a": 1, "b": 2.5}) == {"a": 1.0, "b": 2.5}
    for bad in (None, {"only": 1}, {"a": 1, "": 1}, {"a": -1, "b": 1}, {"a": 0, "b": 0}, {"a": True, "b": 1}):
        with pytest.raises(ValidationError):
            validate_variants(bad)


def test_pick_variant_is_weighted():
    variants = {"a": 1.0, "b": 3.0}
    assert pick_variant(variants, lambda: 0.0) == "a"
    assert pick_variant(variants, lambda: 0.2) == "a"
    assert pick_variant(variants, lambda: 0.3) == "b"
    assert pick_variant(variants, lambda: 0.99) == "b"


def test_new_experiments_start_as_draft_and_are_hidden():
    svc = ExperimentService()
    experiment = svc.create({"name": "  Pricing  ", "variants": {"a": 1, "b": 1}})
    assert (experiment.name, experiment.status) == ("Pricing", "DRAFT")
    with pytest.raises(NotFoundError):
        svc.get_active(experiment.id)
    with pytest.raises(NotFoundError):
        svc.assign_variant(experiment.id, "session-1")
    with pytest.raises(ValidationError):
        svc.set_status(experiment.id, "RUNNING")
    with pytest.raises(ValidationError):
        svc.create({"name": "", "variants": {"a": 1, "b": 1}})


def test_assignment_is_sticky_per_session():
    svc = ExperimentService()
    experiment = _active(svc)
    svc.rand = lambda: 0.9
    first = svc.assign_variant(experiment.id, "session-1")
    assert first.variant == "bold"

    svc.rand = lambda: 0.1
    again = svc.assign_variant(experiment.id, "session-1")
    assert (again.id, again.variant) == (first.id, "bold")
    assert svc.assign_variant(experiment.id, "session-2").variant == "control"


def test_events_and_results_count_distinct_converting_sessions():
    svc = ExperimentService()
    experiment = _active(svc)
    svc.rand = lambda: 0.1
    svc.assign_variant(experiment.id, "s1")
    svc.assign_variant(experiment.id, "s2")
    svc.rand = lambda: 0.9
    svc.assign_variant(experiment.id, "s3")

    svc.log_event(experiment.id, session_id="s1", variant="control", event_type="conversion")
    svc.log_event(experiment.id, session_id="s1", variant="control", event_type="conversion")
    svc.log_event(experiment.id, session_id="s3", variant="bold", event_type="click")
    with pytest.raises(ValidationError):
        svc.log_event(experiment.id, session_id="s1", variant="missing", event_type="conversion")

    results = svc.results(experiment.id)
    by_variant = {row["variant"]: row for row in results["variants"]}
    assert by_variant["control"]["assignments"] == 2
    assert by_variant["control"]["conversions"] == 1
    assert by_variant["control"]["conversion_rate"] == 0.5
    assert by_variant["bold"]["conversions"] == 0

    clicks = svc.results(experiment.id, conversion_event="click")
    assert {row["variant"]: row["conversion_rate"] for row in clicks["variants"]} == {"control": 0.0, "bold": 1.0}


def test_update_and_list_by_status():
    svc = ExperimentService()
    draft = svc.create({"name": "Draft", "variants": {"a": 1, "b": 1}})
    active = _active(svc)

    updated = svc.update(draft.id, {"description": "new copy", "variants": {"x": 2, "y": 1}})
    assert updated.description == "new copy"
    assert updated.variants == {"x": 2.0, "y": 1.0}
    assert [e.id for e in svc.list("active")] == [active.id]
    assert len(svc.list()) == 2
    with pytest.raises(NotFoundError):
        svc.get("missing")
