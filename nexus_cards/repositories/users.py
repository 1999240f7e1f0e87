"""User accounts."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import func, or_, select

from nexus_cards.db.models import Subscription, User
from nexus_cards.db.session import get_session


class UserRepository:
    """CRUD helpers for users; a FREE subscription row is created alongside each user."""

    def get(self, user_id: str) -> Optional[User]:
        with get_session() as session:
            return session.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        with get_session() as session:
            stmt = select(User).where(User.email == (email or "").strip().lower())
            return session.execute(stmt).scalar_one_or_none()

    def get_by_verification_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        with get_session() as session:
            stmt = select(User).where(User.email_verification_token == token)
            return session.execute(stmt).scalar_one_or_none()

    def get_by_reset_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        with get_session() as session:
            stmt = select(User).where(User.password_reset_token == token)
            return session.execute(stmt).scalar_one_or_none()

    def create(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str = "USER",
        **fields,
    ) -> User:
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            backup_codes=[],
            **fields,
        )
        with get_session() as session:
            session.add(user)
            session.flush()
            session.add(Subscription(user_id=user.id, tier="FREE", status="ACTIVE"))
            session.commit()
            session.refresh(user)
            return user

    def update(self, user_id: str, **fields) -> Optional[User]:
        with get_session() as session:
            user = session.get(User, user_id)
            if not user:
                return None
            for key, value in fields.items():
                setattr(user, key, value)
            session.commit()
            session.refresh(user)
            return user

    def count(self) -> int:
        with get_session() as session:
            return session.execute(select(func.count(User.id))).scalar_one()

    def tier_for(self, user_id: str) -> str:
        with get_session() as session:
            stmt = select(Subscription.tier).where(Subscription.user_id == user_id)
            return session.execute(stmt).scalar_one_or_none() or "FREE"

    def search(
        self,
        *,
        skip: int = 0,
        take: int = 20,
        search: str | None = None,
        role: str | None = None,
        tier: str | None = None,
    ) -> tuple[list[User], int]:
        """Newest first, filtered by e-mail/name substring, role and subscription tier."""
        stmt = select(User)
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(User.email).like(pattern),
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                )
            )
        if role:
            stmt = stmt.where(User.role == role)
        if tier:
            stmt = stmt.join(Subscription, Subscription.user_id == User.id).where(Subscription.tier == tier)
        with get_session() as session:
            total = session.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
            rows = session.execute(stmt.order_by(User.created_at.desc()).offset(skip).limit(take)).scalars().all()
            return list(rows), total

    def stats(self) -> dict:
        with get_session() as session:
            tiers = dict(session.execute(select(Subscription.tier, func.count(Subscription.id)).group_by(Subscription.tier)).all())
            return {
                "total_users": session.execute(select(func.count(User.id))).scalar_one(),
                "by_tier": {tier: tiers.get(tier, 0) for tier in ("FREE", "PRO", "PREMIUM")},
                "admin_users": session.execute(select(func.count(User.id)).where(User.role == "ADMIN")).scalar_one(),
                "active_subscriptions": session.execute(
                    select(func.count(Subscription.id)).where(Subscription.status == "ACTIVE")
                ).scalar_one(),
            }
