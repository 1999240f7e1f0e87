import hashlib
import logging
import pathlib
import shutil
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware

from nexus_cards.core.config import get_settings
from nexus_cards.core.errors import install_error_handlers
from nexus_cards.core.logging_config import configure_logging
from nexus_cards.db.create_tables import create_all
from nexus_cards.routers import activity as activity_router
from nexus_cards.routers import analytics as analytics_router
from nexus_cards.routers import auth as auth_router
from nexus_cards.routers import billing as billing_router
from nexus_cards.routers import cards as cards_router
from nexus_cards.routers import components as components_router
from nexus_cards.routers import contacts as contacts_router
from nexus_cards.routers import experiments as experiments_router
from nexus_cards.routers import nfc as nfc_router
from nexus_cards.routers import public as public_router
from nexus_cards.routers import settings as settings_router
from nexus_cards.routers import share_links as share_links_router
from nexus_cards.routers import uploads as uploads_router
from nexus_cards.routers import users as users_router

logger = logging.getLogger(__name__)

BASE = pathlib.Path(__file__).resolve().parent
STATIC = BASE / "static"
TEMPLATES = BASE / "templates"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (CSP, anti clickjacking, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; "
            "img-src 'self' data: https:; "
            "media-src 'self' https:; "
            "style-src 'self' 'unsafe-inline'; "
            "script-src 'self' 'unsafe-inline'; "
            "frame-src https://www.youtube.com https://player.vimeo.com https://calendly.com; "
            "connect-src 'self'",
        )
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


class CachedStaticFiles(StaticFiles):
    def set_headers(self, scope, resp, path, stat_result):
        # Fingerprinted assets never change under the same name.
        resp.headers["Cache-Control"] = "public, max-age=31536000, immutable"


def _fingerprint_asset(rel_path: str) -> str:
    """
    Copy a static asset to a name carrying a short content hash:
    "card.css" -> "card.<hash8>.css". Returns the versioned name (without /static).
    """
    src = STATIC / rel_path
    if not src.exists():
        return rel_path.replace("\\", "/")
    digest = hashlib.sha1(src.read_bytes()).hexdigest()[:8]
    dst = src.with_name(f"{src.stem}.{digest}{src.suffix}")
    if not dst.exists():
        try:
            shutil.copy2(src, dst)
        except OSError:
            logger.warning("Could not write fingerprinted copy of %s; serving the original", rel_path)
            return rel_path
    return dst.name


def _allowed_origins(settings) -> list[str]:
    allowed = {settings.public_base_url}
    if settings.app_env != "prod":
        allowed.update(
            {
                "http://localhost:8000",
                "http://127.0.0.1:8000",
                "http://localhost:3000",
                "http://127.0.0.1:3000",
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            }
        )
    return sorted(origin for origin in allowed if origin)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    create_all()
    yield


def create_app() -> FastAPI:
    """Build the application; run with ``uvicorn nexus_cards.app:create_app --factory``."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(title="Nexus Cards API", lifespan=_lifespan)
    install_error_handlers(app)

    origins = _allowed_origins(settings)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    app.mount("/static", CachedStaticFiles(directory=str(STATIC)), name="static")
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES))
    app.state.css_href = f"/static/{_fingerprint_asset('card.css')}"

    if not settings.billing_enabled:
        logger.warning("STRIPE_SECRET_KEY is not set; billing endpoints will answer 503")

    @app.get("/health")
    def health():
        return {"status": "ok", "env": settings.app_env}

    @app.get("/favicon.ico")
    def favicon():
        ico_path = STATIC / "favicon.ico"
        if ico_path.exists():
            return FileResponse(str(ico_path), media_type="image/x-icon")
        return Response(status_code=204)

    app.include_router(auth_router.router)
    app.include_router(components_router.router)
    app.include_router(cards_router.router)
    app.include_router(contacts_router.router)
    app.include_router(nfc_router.router)
    app.include_router(analytics_router.router)
    app.include_router(analytics_router.admin_router)
    app.include_router(experiments_router.router)
    app.include_router(experiments_router.admin_router)
    app.include_router(billing_router.router)
    app.include_router(uploads_router.router)
    app.include_router(users_router.router)
    app.include_router(users_router.admin_router)
    app.include_router(share_links_router.router)
    app.include_router(activity_router.admin_router)
    app.include_router(settings_router.router)
    app.include_router(public_router.router)
    return app
