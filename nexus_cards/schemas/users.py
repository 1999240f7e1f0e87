"""User profile and admin user-management schemas."""

from typing import Literal, Optional

from pydantic import AnyHttpUrl, BaseModel, Field

from nexus_cards.schemas.auth import UserOut
from nexus_cards.schemas.billing import SubscriptionOut

Role = Literal["USER", "ADMIN"]
SubscriptionStatus = Literal["ACTIVE", "PAST_DUE", "CANCELED", "INCOMPLETE", "TRIALING"]


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=100)
    job_title: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[AnyHttpUrl] = None
    timezone: Optional[str] = Field(None, max_length=50)
    language: Optional[str] = Field(None, min_length=2, max_length=5)


class ProfileOut(UserOut):
    phone: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    avatar_url: Optional[str] = None
    timezone: Optional[str] = None
    language: Optional[str] = None


class AdminUserOut(ProfileOut):
    subscription: Optional[SubscriptionOut] = None


class UserList(BaseModel):
    users: list[AdminUserOut]
    total: int
    skip: int
    take: int


class UserStats(BaseModel):
    cards_count: int
    contacts_count: int


class AdminUserDetails(AdminUserOut):
    stats: UserStats


class RoleUpdate(BaseModel):
    role: Role


class SubscriptionOverride(BaseModel):
    tier: Optional[Literal["FREE", "PRO", "PREMIUM"]] = None
    status: Optional[SubscriptionStatus] = None
    stripe_customer_id: Optional[str] = Field(None, max_length=255)
    stripe_subscription_id: Optional[str] = Field(None, max_length=255)


class UsageMeter(BaseModel):
    current: int
    limit: int
    percentage: float


class RecentActivity(BaseModel):
    card_views: int
    nfc_taps: int
    contact_exchanges: int


class UserUsage(BaseModel):
    user_id: str
    tier: str
    cards: UsageMeter
    contacts: UsageMeter
    analytics_retention_days: int
    recent_activity: RecentActivity


class UserOverview(BaseModel):
    total_users: int
    by_tier: dict[str, int]
    admin_users: int
    active_subscriptions: int
