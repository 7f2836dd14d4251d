"""Meta Ads data endpoint.

WHAT:
    GET /api/meta-ads returns every ad of the account with metrics and
    creative image, ready for the dashboard.

WHY:
    - Router resolves credentials + maps errors only.
    - Fetch/merge/enrichment lives in services/ads_aggregation.py.

CREDENTIALS (first match wins):
    token:      ?token=  ->  Authorization: Bearer  ->  META_ACCESS_TOKEN
    account:    ?accountId=  ->  META_AD_ACCOUNT_ID
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Response

from ..deps import MetaClientFactory, Settings, get_meta_client_factory, get_settings
from ..errors import ConfigurationError, UpstreamApiError
from ..schemas import ErrorResponse, MetaAdsResponse
from ..services.ads_aggregation import fetch_ad_records, normalize_account_id, reporting_window
from ..services.meta_ads_client import MetaAdsClientError
from ..telemetry.sentry import capture_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Meta Ads"])


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None


@router.options("/meta-ads", include_in_schema=False)
async def meta_ads_preflight() -> Response:
    return Response(status_code=200)


@router.get(
    "/meta-ads",
    response_model=MetaAdsResponse,
    responses={500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Ads with metrics and creatives",
)
async def get_meta_ads(
    token: Optional[str] = Query(default=None, description="Meta access token"),
    account_id: Optional[str] = Query(default=None, alias="accountId", description="Ad account ID, with or without act_"),
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    client_factory: MetaClientFactory = Depends(get_meta_client_factory),
) -> MetaAdsResponse:
    """Fetch all ads of the account, including paused ones, with zeroed metrics where Meta has none.

    An account without ads is a 200 with an empty list and a message.
    """
    access_token = token or _bearer_token(authorization) or settings.META_ACCESS_TOKEN
    account = account_id or settings.META_AD_ACCOUNT_ID

    if not access_token or not account:
        raise ConfigurationError(
            "Incomplete configuration",
            message="META_ACCESS_TOKEN and META_AD_ACCOUNT_ID must be configured",
        )

    account = normalize_account_id(account)
    since, until = reporting_window(lookback_years=settings.META_INSIGHTS_LOOKBACK_YEARS)
    logger.info("[META_ADS] Fetching %s for %s to %s", account, since, until)

    client = client_factory(access_token)
    try:
        result = await fetch_ad_records(
            client,
            account,
            since,
            until,
            max_concurrency=settings.META_MAX_CONCURRENCY,
        )
    except MetaAdsClientError as e:
        capture_exception(e, extra={"operation": "fetch_ad_records", "account_id": account})
        raise UpstreamApiError(e.message, status_code=e.http_status, details=e.details)

    return MetaAdsResponse(data=result.records, message=result.message)
