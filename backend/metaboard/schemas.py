"""Pydantic schemas for request/response payloads."""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class AdStatus(str, Enum):
    """Lifecycle statuses the dashboard distinguishes. Anything else is 'other'."""

    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


class AdRecord(BaseModel):
    """One ad with its identity, status, creative and metrics for the reporting window.

    Metrics are never null: anything missing upstream is 0.
    """

    ad_id: str = Field(description="Meta ad ID", examples=["120210000000000001"])
    ad_name: Optional[str] = Field(default=None, description="Ad display name")
    status: Optional[str] = Field(default=None, description="Configured status (ACTIVE, PAUSED, ...)")
    effective_status: Optional[str] = Field(
        default=None, description="Status after parent campaign/adset state is applied"
    )
    created_time: Optional[str] = None
    updated_time: Optional[str] = None

    reach: int = 0
    impressions: int = 0
    clicks: int = 0
    cpc: float = 0.0
    spend: float = 0.0
    ctr: float = 0.0

    image_url: Optional[str] = Field(default=None, description="Creative image or thumbnail URL")
    has_creative: bool = False

    @property
    def lifecycle(self) -> str:
        """'active', 'paused' or 'other', based on effective status first."""
        value = (self.effective_status or self.status or "").upper()
        if value == AdStatus.ACTIVE.value:
            return "active"
        if value == AdStatus.PAUSED.value:
            return "paused"
        return "other"


class MetaAdsResponse(BaseModel):
    """Body of GET /api/meta-ads."""

    data: List[AdRecord]
    message: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "data": [
                    {
                        "ad_id": "1",
                        "ad_name": "Spring promo",
                        "status": "ACTIVE",
                        "effective_status": "ACTIVE",
                        "reach": 100,
                        "impressions": 240,
                        "clicks": 12,
                        "cpc": 0.46,
                        "spend": 5.5,
                        "ctr": 5.0,
                        "image_url": None,
                        "has_creative": False,
                    }
                ],
                "message": "1 ads (1 active, 0 paused, 0 with image)",
            }
        }
    }


class ErrorResponse(BaseModel):
    """Error body shared by all endpoints."""

    error: str
    details: Optional[Any] = None
    message: Optional[str] = None


class SheetsSyncRequest(BaseModel):
    """Body of POST /api/sync-to-sheets.

    Incoming records are loosely typed: the dashboard posts whatever it
    received, and older clients send numbers as strings.
    """

    adsData: List[dict]
    accountId: Optional[str] = None

    @field_validator("adsData", mode="before")
    @classmethod
    def _must_be_list(cls, value):
        if not isinstance(value, list):
            raise ValueError("adsData must be an array")
        return value


class SheetsSyncResponse(BaseModel):
    """Body of a successful POST /api/sync-to-sheets."""

    success: bool = True
    message: str
    details: Optional[str] = None
    spreadsheetId: Optional[str] = None
    updated: int = 0
    added: int = 0
    rowsAdded: int = 0


class DashboardTotals(BaseModel):
    """KPI strip shown above the ad cards."""

    reach: int = 0
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    avg_cpc: float = 0.0


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status", examples=["ok"])
