"""Admin-managed key/value system settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from nexus_cards.core.errors import ConflictError, NotFoundError
from nexus_cards.db.models import SystemSetting
from nexus_cards.repositories.settings import SettingsRepository

_MISSING = object()


@dataclass
class SettingsService:

    def __post_init__(self):
        self.settings = SettingsRepository()

    def list(self, category: str | None = None) -> list[SystemSetting]:
        return self.settings.list(category)

    def get(self, key: str) -> SystemSetting:
        setting = self.settings.get(key)
        if not setting:
            raise NotFoundError(f"Setting '{key}' not found")
        return setting

    def get_value(self, key: str, default: Any = None) -> Any:
        setting = self.settings.get(key)
        return setting.value if setting else default

    def create(self, key: str, value: Any, *, description: str | None = None, category: str | None = None, updated_by: str | None = None) -> SystemSetting:
        if self.settings.get(key):
            raise ConflictError(f"Setting '{key}' already exists")
        return self.settings.create(
            key=key, value=value, description=description, category=category, updated_by=updated_by
        )

    def update(self, key: str, *, value: Any = _MISSING, description: Any = _MISSING, category: Any = _MISSING, updated_by: str | None = None) -> SystemSetting:
        self.get(key)
        fields = {"updated_by": updated_by}
        if value is not _MISSING:
            fields["value"] = value
        if description is not _MISSING:
            fields["description"] = description
        if category is not _MISSING:
            fields["category"] = category
        return self.settings.update(key, **fields)

    def upsert(self, key: str, value: Any, *, description: str | None = None, category: str | None = None, updated_by: str | None = None) -> SystemSetting:
        if self.settings.get(key):
            fields = {"value": value, "updated_by": updated_by}
            if description is not None:
                fields["description"] = description
            if category is not None:
                fields["category"] = category
            return self.settings.update(key, **fields)
        return self.create(key, value, description=description, category=category, updated_by=updated_by)

    def delete(self, key: str) -> None:
        self.get(key)
        self.settings.delete(key)

    def categories(self) -> list[str]:
        return self.settings.categories()
