"""SQLAlchemy models for accounts, cards, contacts, NFC, analytics, experiments, billing and sharing."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .session import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(Text, nullable=True)
    role = Column(String(16), default="USER", nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    company = Column(String(100), nullable=True)
    job_title = Column(String(100), nullable=True)
    avatar_url = Column(Text, nullable=True)
    timezone = Column(String(50), nullable=True)
    language = Column(String(5), nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    email_verification_token = Column(String(255), nullable=True, index=True)
    email_verification_sent_at = Column(DateTime(timezone=True), nullable=True)
    password_reset_token = Column(String(255), nullable=True, index=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    two_factor_enabled = Column(Boolean, default=False, nullable=False)
    two_factor_secret = Column(String(64), nullable=True)
    backup_codes = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    cards = relationship("Card", back_populates="owner", cascade="all,delete-orphan")
    subscription = relationship("Subscription", uselist=False, back_populates="user", cascade="all,delete-orphan")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    tier = Column(String(16), default="FREE", nullable=False)
    status = Column(String(16), default="ACTIVE", nullable=False)
    stripe_customer_id = Column(String(255), nullable=True)
    stripe_subscription_id = Column(String(255), unique=True, nullable=True)
    stripe_price_id = Column(String(255), nullable=True)
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="subscription")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=_uuid)
    subscription_id = Column(String(36), ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    stripe_invoice_id = Column(String(255), nullable=False)
    amount = Column(Integer, default=0, nullable=False)
    currency = Column(String(8), nullable=True)
    status = Column(String(32), nullable=False)
    invoice_url = Column(Text, nullable=True)
    pdf_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class ProcessedWebhook(Base):
    __tablename__ = "processed_webhooks"

    event_id = Column(String(255), primary_key=True)
    event_type = Column(String(128), nullable=False)
    processed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Card(Base):
    __tablename__ = "cards"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    slug = Column(String(120), unique=True, nullable=False, index=True)
    status = Column(String(16), default="PUBLISHED", nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    job_title = Column(String(100), nullable=True)
    company = Column(String(100), nullable=True)
    email = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    website = Column(String(200), nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)
    cover_image_url = Column(Text, nullable=True)
    template_id = Column(String(50), nullable=True)
    theme = Column(JSON, default=dict, nullable=False)
    custom_css = Column(Text, nullable=True)
    social_links = Column(JSON, default=dict, nullable=False)
    background_type = Column(String(16), nullable=True)
    background_color = Column(String(50), nullable=True)
    background_image = Column(Text, nullable=True)
    layout = Column(String(16), nullable=True)
    font_family = Column(String(100), nullable=True)
    font_size = Column(String(4), nullable=True)
    border_radius = Column(String(16), nullable=True)
    shadow_preset = Column(String(16), nullable=True)
    view_count = Column(Integer, default=0, nullable=False)
    last_viewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="cards")
    components = relationship(
        "CardComponent",
        back_populates="card",
        cascade="all,delete-orphan",
        order_by="CardComponent.order",
    )


class CardComponent(Base):
    __tablename__ = "card_components"

    id = Column(String(36), primary_key=True, default=_uuid)
    card_id = Column(String(36), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(32), nullable=False)
    order = Column(Integer, default=0, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    config = Column(JSON, default=dict, nullable=False)
    background_type = Column(String(16), nullable=True)
    background_color = Column(String(50), nullable=True)
    background_gradient_start = Column(String(50), nullable=True)
    background_gradient_end = Column(String(50), nullable=True)
    background_image_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    card = relationship("Card", back_populates="components")


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    card_id = Column(String(36), ForeignKey("cards.id", ondelete="SET NULL"), nullable=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    company = Column(String(100), nullable=True)
    job_title = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    favorite = Column(Boolean, default=False, nullable=False)
    source = Column(String(16), default="FORM", nullable=False)
    meta = Column("metadata", JSON, default=dict, nullable=False)
    exchanged_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class NfcTag(Base):
    __tablename__ = "nfc_tags"

    id = Column(String(36), primary_key=True, default=_uuid)
    uid = Column(String(64), unique=True, nullable=False, index=True)
    status = Column(String(16), default="UNASSOCIATED", nullable=False)
    assigned_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    card_id = Column(String(36), ForeignKey("cards.id", ondelete="SET NULL"), nullable=True, index=True)
    tap_count = Column(Integer, default=0, nullable=False)
    last_tapped_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"

    id = Column(String(36), primary_key=True, default=_uuid)
    card_id = Column(String(36), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(48), nullable=False, index=True)
    source = Column(String(16), nullable=True)
    visitor_hash = Column(String(64), nullable=True)
    referrer = Column(Text, nullable=True)
    device_type = Column(String(16), nullable=True)
    link_url = Column(Text, nullable=True)
    meta = Column("metadata", JSON, default=dict, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class Experiment(Base):
    __tablename__ = "experiments"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    variants = Column(JSON, default=dict, nullable=False)
    status = Column(String(16), default="DRAFT", nullable=False)
    target_path = Column(String(255), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class ExperimentAssignment(Base):
    __tablename__ = "experiment_assignments"
    __table_args__ = (UniqueConstraint("experiment_id", "session_id", name="uq_assignment_session"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    experiment_id = Column(String(36), ForeignKey("experiments.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(128), nullable=False)
    user_id = Column(String(36), nullable=True)
    variant = Column(String(64), nullable=False)
    assigned_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class ExperimentEvent(Base):
    __tablename__ = "experiment_events"

    id = Column(String(36), primary_key=True, default=_uuid)
    experiment_id = Column(String(36), ForeignKey("experiments.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(128), nullable=False)
    user_id = Column(String(36), nullable=True)
    variant = Column(String(64), nullable=False)
    event_type = Column(String(64), nullable=False)
    meta = Column("metadata", JSON, default=dict, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class SystemSetting(Base):
    __tablename__ = "system_settings"

    id = Column(String(36), primary_key=True, default=_uuid)
    key = Column(String(120), unique=True, nullable=False, index=True)
    value = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)
    category = Column(String(64), nullable=True)
    updated_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class ShareLink(Base):
    __tablename__ = "share_links"

    id = Column(String(36), primary_key=True, default=_uuid)
    card_id = Column(String(36), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=True)
    password_hash = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    allow_contact_submission = Column(Boolean, default=True, nullable=False)
    channel = Column(String(16), default="DIRECT", nullable=False)
    share_count = Column(Integer, default=0, nullable=False)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    entity_type = Column(String(32), nullable=True)
    entity_id = Column(String(36), nullable=True)
    meta = Column("metadata", JSON, default=dict, nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
