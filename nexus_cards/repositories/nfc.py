"""NFC tags."""
from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import func, or_, select, update

from nexus_cards.db.models import NfcTag, utcnow
from nexus_cards.db.session import get_session


class NfcTagRepository:

    def get(self, tag_id: str) -> Optional[NfcTag]:
        with get_session() as session:
            return session.get(NfcTag, tag_id)

    def get_by_uid(self, uid: str) -> Optional[NfcTag]:
        with get_session() as session:
            stmt = select(NfcTag).where(NfcTag.uid == uid)
            return session.execute(stmt).scalar_one_or_none()

    def existing_uids(self, uids: Iterable[str]) -> set[str]:
        values = list(uids)
        if not values:
            return set()
        with get_session() as session:
            stmt = select(NfcTag.uid).where(NfcTag.uid.in_(values))
            return set(session.execute(stmt).scalars().all())

    def create_many(self, uids: Iterable[str]) -> int:
        tags = [NfcTag(uid=uid, status="UNASSOCIATED") for uid in uids]
        with get_session() as session:
            session.add_all(tags)
            session.commit()
        return len(tags)

    def update(self, tag_id: str, **fields) -> Optional[NfcTag]:
        with get_session() as session:
            tag = session.get(NfcTag, tag_id)
            if not tag:
                return None
            for key, value in fields.items():
                setattr(tag, key, value)
            session.commit()
            session.refresh(tag)
            return tag

    def record_tap(self, tag_id: str) -> None:
        with get_session() as session:
            stmt = (
                update(NfcTag)
                .where(NfcTag.id == tag_id)
                .values(tap_count=NfcTag.tap_count + 1, last_tapped_at=utcnow())
            )
            session.execute(stmt)
            session.commit()

    def list(self, status: str | None = None, skip: int = 0, take: int = 50) -> tuple[list[NfcTag], int]:
        with get_session() as session:
            stmt = select(NfcTag)
            count_stmt = select(func.count(NfcTag.id))
            if status:
                stmt = stmt.where(NfcTag.status == status)
                count_stmt = count_stmt.where(NfcTag.status == status)
            stmt = stmt.order_by(NfcTag.created_at.desc()).offset(skip).limit(take)
            return list(session.execute(stmt).scalars().all()), session.execute(count_stmt).scalar_one()

    def count_by_status(self) -> dict[str, int]:
        with get_session() as session:
            rows = session.execute(select(NfcTag.status, func.count(NfcTag.id)).group_by(NfcTag.status)).all()
        return {status: count for status, count in rows}

    def list_for_user(self, user_id: str, card_ids: Iterable[str] = ()) -> list[NfcTag]:
        """Tags assigned to the user or bound to one of their cards."""
        condition = NfcTag.assigned_user_id == user_id
        ids = list(card_ids)
        if ids:
            condition = or_(condition, NfcTag.card_id.in_(ids))
        with get_session() as session:
            stmt = select(NfcTag).where(condition).order_by(NfcTag.created_at.desc())
            return list(session.execute(stmt).scalars().all())

    def list_for_card(self, card_id: str) -> list[NfcTag]:
        with get_session() as session:
            stmt = select(NfcTag).where(NfcTag.card_id == card_id).order_by(NfcTag.created_at.desc())
            return list(session.execute(stmt).scalars().all())
