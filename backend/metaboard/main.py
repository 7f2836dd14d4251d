"""FastAPI application entrypoint.

Configures logging, CORS, sessions, error handlers and routers, and exposes a
healthcheck endpoint.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from . import __version__, schemas
from .dashboard import CredentialStore, DashboardApi, DashboardRegistry, FileCredentialStore
from .dashboard import router as dashboard_router
from .deps import DEFAULT_SESSION_SECRET_KEY, Settings, get_settings
from .errors import register_exception_handlers
from .routers import meta_ads as meta_ads_router
from .routers import sheets_sync as sheets_sync_router
from .telemetry import init_sentry


def _file_store_factory(sessions_dir: str) -> Callable[[str], CredentialStore]:
    """One credentials file per dashboard session under sessions_dir."""
    directory = Path(sessions_dir)

    def factory(session_id: str) -> CredentialStore:
        return FileCredentialStore(str(directory / f"{session_id}.json"))

    return factory


def create_app(
    settings: Optional[Settings] = None,
    dashboards: Optional[DashboardRegistry] = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Used for app-level wiring (CORS, sessions, dashboard).
            Endpoints resolve settings through the get_settings dependency.
        dashboards: Per-browser dashboard controllers; built from settings
            (file-backed credential stores, HTTP API client) when omitted.
            Stored credentials are only read when a session first shows up.
    """
    settings = settings or get_settings()

    if init_sentry():
        logger.info("[SENTRY] Error tracking enabled")

    app = FastAPI(
        title="metaboard API",
        description="""
        Meta Ads performance dashboard.

        - `GET /api/meta-ads`: every ad of an account with reach, impressions,
          clicks, CPC, CTR, spend and creative image
        - `POST /api/sync-to-sheets`: upsert ads into a Google Sheets tab
        - `/`: server-rendered dashboard
        """,
        version=__version__,
    )

    # Signed cookie carrying the dashboard session id
    if settings.SESSION_SECRET_KEY == DEFAULT_SESSION_SECRET_KEY:
        logger.warning("[SESSION] Using default session secret key. Set SESSION_SECRET_KEY for production.")

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET_KEY,
        session_cookie="metaboard_session",
        same_site="lax",
    )

    logger.info(f"[CORS] Allowed origins: {settings.cors_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app)

    if dashboards is None:
        dashboards = DashboardRegistry(
            store_factory=_file_store_factory(settings.DASHBOARD_SESSIONS_DIR),
            api=DashboardApi(settings.DASHBOARD_API_BASE_URL),
        )
    app.state.dashboards = dashboards

    app.include_router(meta_ads_router.router)
    app.include_router(sheets_sync_router.router)
    app.include_router(dashboard_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    def health():
        return schemas.HealthResponse(status="ok")

    return app


app = create_app()
