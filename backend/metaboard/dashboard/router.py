"""Dashboard pages.

Each browser gets its own controller through the session cookie. Form posts
redirect back to GET / (post/redirect/get), which renders the
controller's current state. The first view after credentials become known
triggers the initial load.
"""

import logging
import secrets

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from .controller import DashboardController
from .render import render_dashboard

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dashboard"], include_in_schema=False)

SESSION_KEY = "dashboard_session_id"


def get_dashboard_controller(request: Request) -> DashboardController:
    """Controller of the calling browser, keyed by an id kept in the signed session cookie."""
    session_id = request.session.get(SESSION_KEY)
    if not session_id:
        session_id = secrets.token_urlsafe(16)
        request.session[SESSION_KEY] = session_id
        logger.info("[DASHBOARD] New dashboard session")
    return request.app.state.dashboards.get(session_id)


def _back_home() -> RedirectResponse:
    return RedirectResponse(url="/", status_code=303)


@router.get("/", response_class=HTMLResponse)
async def dashboard_home(controller: DashboardController = Depends(get_dashboard_controller)) -> HTMLResponse:
    if controller.needs_initial_load:
        await controller.refresh()
    return HTMLResponse(render_dashboard(controller))


@router.post("/configure")
async def dashboard_configure(
    access_token: str = Form(default=""),
    account_id: str = Form(default=""),
    controller: DashboardController = Depends(get_dashboard_controller),
) -> RedirectResponse:
    controller.configure(access_token, account_id)
    return _back_home()


@router.post("/refresh")
async def dashboard_refresh(controller: DashboardController = Depends(get_dashboard_controller)) -> RedirectResponse:
    await controller.refresh()
    return _back_home()


@router.post("/sync")
async def dashboard_sync(controller: DashboardController = Depends(get_dashboard_controller)) -> RedirectResponse:
    await controller.sync_to_sheets()
    return _back_home()


@router.post("/logout")
async def dashboard_logout(controller: DashboardController = Depends(get_dashboard_controller)) -> RedirectResponse:
    controller.logout()
    return _back_home()
