"""Admin key/value settings."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, select

from nexus_cards.db.models import SystemSetting
from nexus_cards.db.session import get_session


class SettingsRepository:

    def list(self, category: str | None = None) -> list[SystemSetting]:
        with get_session() as session:
            stmt = select(SystemSetting)
            if category:
                stmt = stmt.where(SystemSetting.category == category)
            stmt = stmt.order_by(SystemSetting.category, SystemSetting.key)
            return list(session.execute(stmt).scalars().all())

    def get(self, key: str) -> Optional[SystemSetting]:
        with get_session() as session:
            stmt = select(SystemSetting).where(SystemSetting.key == key)
            return session.execute(stmt).scalar_one_or_none()

    def create(self, **fields) -> SystemSetting:
        setting = SystemSetting(**fields)
        with get_session() as session:
            session.add(setting)
            session.commit()
            session.refresh(setting)
            return setting

    def update(self, key: str, **fields) -> Optional[SystemSetting]:
        with get_session() as session:
            setting = session.execute(select(SystemSetting).where(SystemSetting.key == key)).scalar_one_or_none()
            if not setting:
                return None
            for name, value in fields.items():
                setattr(setting, name, value)
            session.commit()
            session.refresh(setting)
            return setting

    def delete(self, key: str) -> None:
        with get_session() as session:
            session.execute(delete(SystemSetting).where(SystemSetting.key == key))
            session.commit()

    def categories(self) -> list[str]:
        with get_session() as session:
            stmt = select(SystemSetting.category).where(SystemSetting.category.isnot(None)).distinct()
            return sorted(session.execute(stmt).scalars().all())
