"""Ads Aggregation Service.

WHAT:
    Builds the list of AdRecord shown by the dashboard for one ad account:
    account-level insights + the full ad listing, reconciled by ad ID, each ad
    enriched with its creative image (and its own insight row when the
    account-level call did not include it).

WHY:
    - The insights endpoint only returns ads with delivery in the window.
      Paused or inactive ads must still be visible, so the ad listing is the
      source of truth for WHICH ads exist, insights only supply numbers.
    - One bad creative must not take down the whole dashboard: per-ad lookup
      failures degrade that ad to zero metrics / no image.

CONCURRENCY:
    Per-ad enrichment runs concurrently, bounded by an asyncio.Semaphore
    (META_MAX_CONCURRENCY). The SDK is synchronous, so each call runs in a
    worker thread via asyncio.to_thread. Every ad writes only its own result
    slot; results keep listing order. No timeout, no cancellation.

REFERENCES:
    - metaboard/services/meta_ads_client.py
    - metaboard/routers/meta_ads.py
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..schemas import AdRecord
from ..utils.numbers import to_float, to_int
from .meta_ads_client import MetaAdsClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 8
DEFAULT_LOOKBACK_YEARS = 3

EMPTY_ACCOUNT_MESSAGE = "No ads were found in this account."

_ACT_PREFIX = re.compile(r"^act_", re.IGNORECASE)


@dataclass
class AdsFetchResult:
    """Outcome of one fetch cycle."""

    records: List[AdRecord] = field(default_factory=list)
    message: str = EMPTY_ACCOUNT_MESSAGE
    insight_rows: int = 0
    degraded: int = 0


def normalize_account_id(account_id: str) -> str:
    """Return the account ID in the "act_<id>" form the Graph API expects.

    Accepts "123", "act_123" and "ACT_123".
    """
    clean = _ACT_PREFIX.sub("", account_id.strip())
    return f"act_{clean}"


def reporting_window(today: Optional[date] = None, lookback_years: int = DEFAULT_LOOKBACK_YEARS) -> Tuple[str, str]:
    """Return (since, until) as YYYY-MM-DD, reaching back lookback_years from today."""
    today = today or date.today()
    try:
        since = today.replace(year=today.year - lookback_years)
    except ValueError:
        # Feb 29 has no counterpart in a non-leap year
        since = today.replace(year=today.year - lookback_years, day=28)
    return since.isoformat(), today.isoformat()


def merge_ad_with_insight(
    ad: Dict[str, Any],
    insight: Optional[Dict[str, Any]],
    image_url: Optional[str] = None,
) -> AdRecord:
    """Combine an ad listing entry with its insight row into an AdRecord.

    Metrics come from the insight only. Metric-looking keys on the listing
    entry are ignored, and a missing insight means all-zero metrics.
    """
    insight = insight or {}
    return AdRecord(
        ad_id=str(ad.get("id") or ad.get("ad_id")),
        ad_name=ad.get("name") or ad.get("ad_name"),
        status=ad.get("status"),
        effective_status=ad.get("effective_status"),
        created_time=ad.get("created_time"),
        updated_time=ad.get("updated_time"),
        reach=to_int(insight.get("reach")),
        impressions=to_int(insight.get("impressions")),
        clicks=to_int(insight.get("clicks")),
        cpc=to_float(insight.get("cpc")),
        spend=to_float(insight.get("spend")),
        ctr=to_float(insight.get("ctr"), 4),
        image_url=image_url,
        has_creative=bool(image_url),
    )


def summarize(records: List[AdRecord]) -> str:
    active = sum(1 for record in records if record.lifecycle == "active")
    paused = sum(1 for record in records if record.lifecycle == "paused")
    with_image = sum(1 for record in records if record.has_creative)
    return f"{len(records)} ads ({active} active, {paused} paused, {with_image} with image)"


def _unique_ads(ads: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop repeated ad IDs (overlapping pages), keeping first occurrence."""
    seen = set()
    unique = []
    for ad in ads:
        ad_id = ad.get("id")
        if not ad_id or ad_id in seen:
            continue
        seen.add(ad_id)
        unique.append(ad)
    return unique


async def _enrich_ad(
    client: MetaAdsClient,
    ad: Dict[str, Any],
    insight: Optional[Dict[str, Any]],
    since: str,
    until: str,
) -> Tuple[AdRecord, bool]:
    """Build one AdRecord. Returns (record, degraded)."""
    ad_id = ad["id"]
    degraded = False

    if insight is None:
        try:
            insight = await asyncio.to_thread(client.get_ad_insights, ad_id, since, until)
        except Exception as e:
            logger.info(
                "[ADS_AGGREGATION] No insights for %s (%s): %s",
                ad.get("name"),
                ad.get("effective_status"),
                e,
            )
            insight = {}
            degraded = True

    image_url = None
    try:
        image_url = await asyncio.to_thread(client.get_creative_image, ad_id)
    except Exception as e:
        logger.warning("[ADS_AGGREGATION] No image for %s: %s", ad.get("name"), e)
        degraded = True

    try:
        return merge_ad_with_insight(ad, insight, image_url), degraded
    except Exception as e:
        # Malformed insight payload; keep the ad visible with zeroed metrics
        logger.error("[ADS_AGGREGATION] Error processing ad %s: %s", ad_id, e)
        return merge_ad_with_insight(ad, None, None), True


async def fetch_ad_records(
    client: MetaAdsClient,
    account_id: str,
    since: str,
    until: str,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> AdsFetchResult:
    """Fetch, reconcile and enrich all ads of an account.

    Args:
        client: Meta client bound to the caller's token
        account_id: Account ID in "act_<id>" form
        since, until: Reporting window, YYYY-MM-DD
        max_concurrency: Upper bound on in-flight per-ad lookups

    Returns:
        AdsFetchResult with one record per listed ad, in listing order.

    Raises:
        MetaAdsClientError: when the account-level insights or the ad
        listing call fails. Per-ad failures never raise.
    """
    insights = await asyncio.to_thread(client.get_account_insights, account_id, since, until)
    ads = await asyncio.to_thread(client.get_ads, account_id)
    ads = _unique_ads(ads)

    logger.info(
        "[ADS_AGGREGATION] %s: %d insight rows, %d ads", account_id, len(insights), len(ads)
    )

    if not ads:
        return AdsFetchResult(records=[], message=EMPTY_ACCOUNT_MESSAGE, insight_rows=len(insights))

    insights_by_ad: Dict[str, Dict[str, Any]] = {}
    for row in insights:
        ad_id = row.get("ad_id")
        if ad_id and ad_id not in insights_by_ad:
            insights_by_ad[ad_id] = row

    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def bounded(ad: Dict[str, Any]) -> Tuple[AdRecord, bool]:
        async with semaphore:
            return await _enrich_ad(client, ad, insights_by_ad.get(ad["id"]), since, until)

    results = await asyncio.gather(*(bounded(ad) for ad in ads))

    records = [record for record, _ in results]
    degraded = sum(1 for _, was_degraded in results if was_degraded)
    message = summarize(records)

    logger.info("[ADS_AGGREGATION] Processed %s; %d degraded", message, degraded)

    return AdsFetchResult(
        records=records,
        message=message,
        insight_rows=len(insights),
        degraded=degraded,
    )
