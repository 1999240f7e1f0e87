from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from nexus_cards.core.errors import NotFoundError, ValidationError
from nexus_cards.repositories.analytics import AnalyticsRepository
from nexus_cards.services.activity_log_service import ActivityLogService
from nexus_cards.services.user_service import UserService


def test_update_profile_only_touches_given_fields(make_user):
    user = make_user()
    svc = UserService()
    updated = svc.update_profile(user.id, {"company": "Navy", "timezone": "America/New_York"})
    assert (updated.company, updated.timezone) == ("Navy", "America/New_York")
    assert updated.first_name == "Test"
    assert svc.update_profile(user.id, {"role": "ADMIN"}).role == "USER"
    with pytest.raises(NotFoundError):
        svc.update_profile("missing", {"company": "x"})


def test_list_users_filters_and_pages(make_user):
    make_user()
    make_user("PRO")
    make_user("PRO", role="ADMIN")
    svc = UserService()

    assert svc.list_users(tier="PRO")["total"] == 2
    assert svc.list_users(role="ADMIN", tier="PRO")["total"] == 1
    page = svc.list_users(skip=1, take=1)
    assert (page["total"], len(page["users"]), page["skip"], page["take"]) == (3, 1, 1, 1)
    assert svc.list_users(take=1000)["take"] == 100


def test_subscription_override_and_role(make_user, make_card):
    user = make_user("PRO")
    admin = make_user(role="ADMIN")
    make_card(user)
    make_card(user, "Second", "Card")
    svc = UserService()

    view = svc.update_subscription(user.id, {"tier": "FREE", "status": "PAST_DUE"}, admin_id=admin.id)
    assert view["subscription"]["tier"] == "FREE"
    assert view["subscription"]["status"] == "PAST_DUE"
    assert svc.details(user.id)["stats"]["cards_count"] == 2

    with pytest.raises(ValidationError):
        svc.update_role(user.id, "OWNER")
    assert svc.update_role(user.id, "ADMIN", admin_id=admin.id)["role"] == "ADMIN"

    trail = ActivityLogService().recent(admin.id)
    assert [e.action for e in trail] == ["USER_ROLE_CHANGED", "SUBSCRIPTION_OVERRIDDEN"]
    assert trail[1].meta == {"tier": "FREE", "status": "PAST_DUE"}
    assert trail[0].entity_id == user.id


def test_usage_counts_the_last_seven_days(make_user, make_card):
    user = make_user()
    card = make_card(user)
    now = datetime(2026, 3, 10, 12, tzinfo=timezone.utc)
    events = AnalyticsRepository()
    events.add(card_id=card.id, event_type="VIEW", timestamp=now - timedelta(days=1))
    events.add(card_id=card.id, event_type="NFC_TAP", timestamp=now - timedelta(days=2))
    events.add(card_id=card.id, event_type="VIEW", timestamp=now - timedelta(days=30))

    usage = UserService().usage(user.id, now=now)
    assert usage["cards"] == {"current": 1, "limit": 1, "percentage": 100.0}
    assert usage["contacts"]["limit"] == 50
    assert usage["analytics_retention_days"] == 7
    assert usage["recent_activity"] == {"card_views": 1, "nfc_taps": 1, "contact_exchanges": 0}


def test_overview_counts_tiers_and_admins(make_user):
    make_user()
    make_user("PREMIUM", role="ADMIN")
    assert UserService().overview() == {
        "total_users": 2,
        "by_tier": {"FREE": 1, "PRO": 0, "PREMIUM": 1},
        "admin_users": 1,
        "active_subscriptions": 2,
    }
