"""Tokenised share links for cards."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import select, update

from nexus_cards.db.models import ShareLink, utcnow
from nexus_cards.db.session import get_session


class ShareLinkRepository:

    def get(self, link_id: str) -> Optional[ShareLink]:
        with get_session() as session:
            return session.get(ShareLink, link_id)

    def get_by_token(self, token: str) -> Optional[ShareLink]:
        if not token:
            return None
        with get_session() as session:
            return session.execute(select(ShareLink).where(ShareLink.token == token)).scalar_one_or_none()

    def list_active_for_card(self, card_id: str) -> list[ShareLink]:
        with get_session() as session:
            stmt = (
                select(ShareLink)
                .where(ShareLink.card_id == card_id, ShareLink.revoked_at.is_(None))
                .order_by(ShareLink.created_at.desc())
            )
            return list(session.execute(stmt).scalars().all())

    def create(self, **fields) -> ShareLink:
        link = ShareLink(**fields)
        with get_session() as session:
            session.add(link)
            session.commit()
            session.refresh(link)
            return link

    def update(self, link_id: str, **fields) -> Optional[ShareLink]:
        with get_session() as session:
            link = session.get(ShareLink, link_id)
            if not link:
                return None
            for key, value in fields.items():
                setattr(link, key, value)
            session.commit()
            session.refresh(link)
            return link

    def record_access(self, link_id: str) -> None:
        with get_session() as session:
            session.execute(
                update(ShareLink)
                .where(ShareLink.id == link_id)
                .values(share_count=ShareLink.share_count + 1, last_accessed_at=utcnow())
            )
            session.commit()
