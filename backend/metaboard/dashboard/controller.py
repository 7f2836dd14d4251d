"""
Dashboard State Machine.

WHAT:
    Holds what the dashboard shows and moves between its states in response
    to user actions (configure, refresh, sync, logout).

STATES:
    UNCONFIGURED     no token/account known
    CONFIGURED       token + account known, nothing loaded yet
    LOADING          fetch in progress
    LOADED           at least one ad loaded
    ERROR            last fetch failed, or returned zero ads

STATE TRANSITIONS:
    UNCONFIGURED → configure(both values) / stored credentials → CONFIGURED
    CONFIGURED   → refresh (explicit, or automatic on first view) → LOADING
    LOADING      → ads returned → LOADED
    LOADING      → failure or zero ads → ERROR
    LOADED/ERROR → refresh → LOADING
    Any state    → logout → UNCONFIGURED (stored credentials cleared)

    Nothing retries or polls on its own.

    Each browser session has its own controller (see DashboardRegistry).

REFERENCES:
    - metaboard/dashboard/session.py (credential store contract)
    - metaboard/dashboard/fetcher.py (API calls)
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..schemas import AdRecord, DashboardTotals
from .fetcher import DashboardApi, DashboardApiError
from .session import CredentialStore, DashboardCredentials

logger = logging.getLogger(__name__)

MISSING_CREDENTIALS_MESSAGE = "Please enter your access token and ad account ID."
NO_ADS_MESSAGE = "No ads were found. Check your Account ID and that you have campaigns."


class DashboardState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


def compute_totals(records: List[AdRecord]) -> DashboardTotals:
    """KPI totals; average CPC is spend / clicks, 0 without clicks."""
    reach = sum(record.reach for record in records)
    impressions = sum(record.impressions for record in records)
    clicks = sum(record.clicks for record in records)
    spend = sum(record.spend for record in records)
    return DashboardTotals(
        reach=reach,
        impressions=impressions,
        clicks=clicks,
        spend=round(spend, 2),
        avg_cpc=round(spend / clicks, 2) if clicks > 0 else 0.0,
    )


class DashboardController:
    """Dashboard state plus the actions that change it."""

    def __init__(self, store: CredentialStore, api: DashboardApi):
        self.store = store
        self.api = api
        self.state = DashboardState.UNCONFIGURED
        self.credentials: Optional[DashboardCredentials] = None
        self.records: List[AdRecord] = []
        self.error: Optional[str] = None
        self.notice: Optional[str] = None

    @property
    def needs_initial_load(self) -> bool:
        return self.state is DashboardState.CONFIGURED

    @property
    def totals(self) -> Optional[DashboardTotals]:
        if not self.records:
            return None
        return compute_totals(self.records)

    def init(self) -> DashboardState:
        """Restore stored credentials, if any."""
        stored = self.store.load()
        if stored is not None and stored.complete:
            self.credentials = stored
            self.state = DashboardState.CONFIGURED
            logger.info("[DASHBOARD] Restored credentials for account %s", stored.account_id)
        return self.state

    def configure(self, access_token: str, account_id: str) -> DashboardState:
        """Accept credentials typed by the user.

        Credentials are persisted only after they produced a successful load.
        """
        credentials = DashboardCredentials(
            access_token=(access_token or "").strip(),
            account_id=(account_id or "").strip(),
        )
        if not credentials.complete:
            self.error = MISSING_CREDENTIALS_MESSAGE
            return self.state

        self.credentials = credentials
        self.records = []
        self.error = None
        self.notice = None
        self.state = DashboardState.CONFIGURED
        return self.state

    def _superseded(self, credentials: DashboardCredentials) -> bool:
        """True when configure/logout replaced `credentials` while a call was in flight."""
        return self.credentials != credentials

    async def refresh(self) -> DashboardState:
        """Load ads for the current credentials.

        A result that arrives after the credentials were changed (configure or
        logout during the load) is dropped and nothing is persisted.
        """
        credentials = self.credentials
        if credentials is None:
            self.error = MISSING_CREDENTIALS_MESSAGE
            return self.state

        self.state = DashboardState.LOADING
        self.error = None
        self.notice = None

        try:
            records = await self.api.fetch_ads(credentials)
        except DashboardApiError as e:
            if self._superseded(credentials):
                return self.state
            logger.warning("[DASHBOARD] Load failed: %s", e.message)
            self.error = e.message
            self.state = DashboardState.ERROR
            return self.state

        if self._superseded(credentials):
            logger.info("[DASHBOARD] Discarding load for %s: credentials changed", credentials.account_id)
            return self.state

        if not records:
            self.error = NO_ADS_MESSAGE
            self.state = DashboardState.ERROR
            return self.state

        self.records = records
        self.state = DashboardState.LOADED
        self.store.save(credentials)
        logger.info("[DASHBOARD] Loaded %d ads", len(records))
        return self.state

    async def sync_to_sheets(self) -> Optional[str]:
        """Export the loaded ads. Leaves the state unchanged; reports via notice/error."""
        credentials = self.credentials
        if self.state is not DashboardState.LOADED or credentials is None:
            self.error = "Load your ads before syncing."
            return None

        try:
            body = await self.api.sync_to_sheets(list(self.records), credentials.account_id)
        except DashboardApiError as e:
            if not self._superseded(credentials):
                self.error = e.message
            return None

        if self._superseded(credentials):
            return None

        self.error = None
        self.notice = body.get("message") or "Synced with Google Sheets"
        return self.notice

    def logout(self) -> DashboardState:
        self.store.clear()
        self.credentials = None
        self.records = []
        self.error = None
        self.notice = None
        self.state = DashboardState.UNCONFIGURED
        return self.state


class DashboardRegistry:
    """One DashboardController per browser session.

    Controllers are created on a session's first request, which is also when
    that session's stored credentials are read. Nothing is read at startup.
    """

    def __init__(self, store_factory: Callable[[str], CredentialStore], api: DashboardApi):
        self.store_factory = store_factory
        self.api = api
        self.controllers: Dict[str, DashboardController] = {}

    def get(self, session_id: str) -> DashboardController:
        controller = self.controllers.get(session_id)
        if controller is None:
            controller = DashboardController(store=self.store_factory(session_id), api=self.api)
            controller.init()
            self.controllers[session_id] = controller
        return controller
