"""Google Sheets export endpoint.

WHAT:
    POST /api/sync-to-sheets upserts the posted ads into the configured
    spreadsheet tab (merge semantics in services/sheets_sync.py).

The body is validated by hand so that malformed payloads answer 400 with
the shared error shape instead of FastAPI's 422.
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from ..deps import Settings, SheetsClientFactory, get_settings, get_sheets_client_factory
from ..errors import ConfigurationError, InvalidPayloadError, UpstreamApiError
from ..schemas import ErrorResponse, SheetsSyncRequest, SheetsSyncResponse
from ..services.sheets_client import SheetsClientError
from ..services.sheets_sync import sync_ads_to_sheet
from ..telemetry.sentry import capture_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Google Sheets"])


@router.post(
    "/sync-to-sheets",
    response_model=SheetsSyncResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Upsert ads into Google Sheets",
)
async def sync_to_sheets(
    request: Request,
    settings: Settings = Depends(get_settings),
    client_factory: SheetsClientFactory = Depends(get_sheets_client_factory),
) -> SheetsSyncResponse:
    try:
        payload = SheetsSyncRequest.model_validate(await request.json())
    except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidPayloadError("Invalid payload", details=str(e))

    missing = settings.missing_sheets_settings()
    if missing:
        raise ConfigurationError(
            "Google Sheets is not configured",
            details=f"Set {', '.join(missing)}",
        )

    client = client_factory(settings.GOOGLE_SERVICE_ACCOUNT_EMAIL, settings.google_private_key)
    try:
        result = await asyncio.to_thread(
            sync_ads_to_sheet,
            client,
            settings.GOOGLE_SHEETS_ID,
            payload.adsData,
            settings.SHEETS_TAB_NAME,
            payload.accountId,
            settings.SHEETS_TIMEZONE,
        )
    except SheetsClientError as e:
        capture_exception(e, extra={"operation": "sync_ads_to_sheet", "records": len(payload.adsData)})
        raise UpstreamApiError(
            "Failed to sync with Google Sheets",
            status_code=e.http_status,
            details=e.details or e.message,
        )

    logger.info("[SHEETS_SYNC] %d updated, %d added", result.updated, result.added)

    return SheetsSyncResponse(
        success=True,
        message=f"{len(payload.adsData)} ads synced ({result.updated} updated, {result.added} added)",
        details=result.details,
        spreadsheetId=settings.GOOGLE_SHEETS_ID,
        updated=result.updated,
        added=result.added,
        rowsAdded=result.added,
    )
