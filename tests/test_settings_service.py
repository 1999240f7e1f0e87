from __future__ import annotations

import pytest

from nexus_cards.core.errors import ConflictError, NotFoundError
from nexus_cards.services.settings_service import SettingsService


def test_create_get_and_duplicate():
    svc = SettingsService()
    setting = svc.create("signup.enabled", True, category="auth", description="Allow sign ups", updated_by="admin-1")
    assert svc.get("signup.enabled").value is True
    assert setting.updated_by == "admin-1"
    with pytest.raises(ConflictError):
        svc.create("signup.enabled", False)
    with pytest.raises(NotFoundError):
        svc.get("missing")


def test_update_only_touches_given_fields():
    svc = SettingsService()
    svc.create("banner", {"text": "hi"}, category="ui", description="Top banner")
    updated = svc.update("banner", value={"text": "bye"}, updated_by="admin-2")
    assert updated.value == {"text": "bye"}
    assert updated.description == "Top banner"
    assert updated.updated_by == "admin-2"
    with pytest.raises(NotFoundError):
        svc.update("nope", value=1)


def test_upsert_list_categories_and_delete():
    svc = SettingsService()
    svc.upsert("limits.max_upload_mb", 5, category="uploads")
    svc.upsert("limits.max_upload_mb", 10)
    svc.create("theme", "dark", category="ui")

    assert svc.get_value("limits.max_upload_mb") == 10
    assert svc.get("limits.max_upload_mb").category == "uploads"
    assert svc.get_value("unknown", "fallback") == "fallback"
    assert [s.key for s in svc.list("ui")] == ["theme"]
    assert svc.categories() == ["ui", "uploads"]

    svc.delete("theme")
    assert [s.key for s in svc.list()] == ["limits.max_upload_mb"]
    with pytest.raises(NotFoundError):
        svc.delete("theme")
