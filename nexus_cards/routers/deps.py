"""
Shared FastAPI dependencies: bearer-token auth and per-request service objects.
"""

from __future__ import annotations

import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from nexus_cards.core.rate_limiter import client_ip
from nexus_cards.core.tokens import decode_access_token
from nexus_cards.db.models import User
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services.activity_log_service import ActivityLogService
from nexus_cards.services.analytics_service import AnalyticsService
from nexus_cards.services.auth_service import AuthService
from nexus_cards.services.billing_service import BillingService
from nexus_cards.services.card_service import CardService
from nexus_cards.services.component_service import ComponentService
from nexus_cards.services.contact_service import ContactService
from nexus_cards.services.experiment_service import ExperimentService
from nexus_cards.services.nfc_service import NfcService
from nexus_cards.services.settings_service import SettingsService
from nexus_cards.services.share_link_service import ShareLinkService
from nexus_cards.services.two_factor_service import TwoFactorService
from nexus_cards.services.upload_service import UploadService
from nexus_cards.services.user_service import UserService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_credentials(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[User]:
    if credentials is None or not credentials.credentials:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        logger.debug("Rejected access token: %s", exc)
        return None
    return UserRepository().get(payload.user_id)


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> User:
    if credentials is None:
        raise _unauthorized("Not authenticated")
    user = _user_from_credentials(credentials)
    if user is None:
        raise _unauthorized("Invalid or expired token")
    return user


def get_optional_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[User]:
    return _user_from_credentials(credentials)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "ADMIN":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def request_meta(request: Request) -> dict:
    """Visitor details attached to analytics events."""
    return {
        "ip": client_ip(request),
        "user_agent": request.headers.get("user-agent"),
        "referrer": request.headers.get("referer"),
    }


# Services are cheap to build; a fresh one per request picks up current settings.
def get_auth_service() -> AuthService:
    return AuthService()


def get_two_factor_service() -> TwoFactorService:
    return TwoFactorService()


def get_card_service() -> CardService:
    return CardService()


def get_component_service() -> ComponentService:
    return ComponentService()


def get_contact_service() -> ContactService:
    return ContactService()


def get_nfc_service() -> NfcService:
    return NfcService()


def get_analytics_service() -> AnalyticsService:
    return AnalyticsService()


def get_experiment_service() -> ExperimentService:
    return ExperimentService()


def get_billing_service() -> BillingService:
    return BillingService()


def get_upload_service() -> UploadService:
    return UploadService()


def get_settings_service() -> SettingsService:
    return SettingsService()


def get_user_service() -> UserService:
    return UserService()


def get_share_link_service() -> ShareLinkService:
    return ShareLinkService()


def get_activity_log_service() -> ActivityLogService:
    return ActivityLogService()
