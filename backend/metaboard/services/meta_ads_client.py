"""Meta Ads API Client Service.

WHAT:
    Wrapper for the Facebook Business SDK giving read access to the Meta
    Marketing API: account-level ad insights, the full ad listing, single-ad
    insights and creative image lookups.

WHY:
    - Centralized Meta API interaction (single source of truth)
    - Pagination handling (SDK cursors follow `paging.next` on iteration)
    - Uniform error translation (400/401/403/other) carrying upstream details

NOTES:
    - Each client owns its own FacebookAdsApi instance. The SDK default API
      (FacebookAdsApi.init) is process-global, which breaks as soon as two
      requests use different tokens.
    - Calls are synchronous. The aggregation service runs them in worker
      threads to fan out per-ad lookups.
    - No retries anywhere: a failed call is surfaced to the caller.

REFERENCES:
    - metaboard/services/ads_aggregation.py (only caller)
    - https://developers.facebook.com/docs/marketing-api/insights
"""

import logging
from typing import Any, Dict, List, Optional

from facebook_business.adobjects.ad import Ad
from facebook_business.adobjects.adaccount import AdAccount
from facebook_business.adobjects.adsinsights import AdsInsights
from facebook_business.api import FacebookAdsApi, FacebookSession
from facebook_business.exceptions import FacebookRequestError

logger = logging.getLogger(__name__)

# Fallback when a creative only exposes its image hash
CDN_IMAGE_URL_TEMPLATE = "https://scontent.xx.fbcdn.net/v/t45.1600-4/{image_hash}"

METRIC_FIELDS = [
    AdsInsights.Field.reach,
    AdsInsights.Field.impressions,
    AdsInsights.Field.cpc,
    AdsInsights.Field.spend,
    AdsInsights.Field.clicks,
    AdsInsights.Field.ctr,
]

CREATIVE_FIELD = "creative{image_url,thumbnail_url,object_story_spec,image_hash}"


class MetaAdsClientError(Exception):
    """Base exception for Meta Ads Client errors.

    Carries the upstream HTTP status and error object so the HTTP layer can
    pass them through unchanged.
    """

    def __init__(self, message: str, http_status: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.details = details


class MetaAdsAuthenticationError(MetaAdsClientError):
    """Raised when authentication fails (401)."""
    pass


class MetaAdsPermissionError(MetaAdsClientError):
    """Raised when permissions are insufficient (403)."""
    pass


class MetaAdsValidationError(MetaAdsClientError):
    """Raised when request is malformed (400)."""
    pass


class MetaAdsClient:
    """Client for reading ads and insights from the Meta Marketing API.

    Usage:
        ```python
        client = MetaAdsClient(access_token="YOUR_TOKEN")
        insights = client.get_account_insights("act_123", "2023-01-01", "2026-01-01")
        ads = client.get_ads("act_123")
        image = client.get_creative_image(ads[0]["id"])
        ```
    """

    def __init__(self, access_token: str, api_version: Optional[str] = None, page_limit: int = 500):
        """Initialize a client bound to one access token.

        Args:
            access_token: Meta access token (system user or user token)
            api_version: Graph API version, e.g. "v21.0" (SDK default if None)
            page_limit: Page size requested from list endpoints
        """
        self.access_token = access_token
        self.page_limit = page_limit

        session = FacebookSession(access_token=access_token)
        self.api = FacebookAdsApi(session, api_version=api_version)

        logger.info("[META_CLIENT] Initialized (api_version=%s)", api_version or "sdk-default")

    def get_account_insights(self, account_id: str, since: str, until: str) -> List[Dict[str, Any]]:
        """Fetch ad-level insights for every ad of an account in one call.

        Args:
            account_id: Ad account ID in "act_<digits>" form
            since: Window start, YYYY-MM-DD
            until: Window end, YYYY-MM-DD

        Returns:
            One dict per ad with reach, impressions, cpc, spend, clicks, ctr,
            ad_id, ad_name, date_start, date_stop. Numeric values arrive as
            strings, exactly as Meta sends them.

        Raises:
            MetaAdsClientError (or a subclass) on any API error.
        """
        try:
            logger.info(
                "[META_CLIENT] Fetching account insights: %s, %s to %s", account_id, since, until
            )

            account = AdAccount(account_id, api=self.api)
            insights = account.get_insights(
                fields=METRIC_FIELDS + [
                    AdsInsights.Field.ad_id,
                    AdsInsights.Field.ad_name,
                    AdsInsights.Field.date_start,
                    AdsInsights.Field.date_stop,
                ],
                params={
                    "level": "ad",
                    "time_range": {"since": since, "until": until},
                    "limit": self.page_limit,
                },
            )

            result = [dict(insight) for insight in insights]

            logger.info("[META_CLIENT] Fetched %d insight rows", len(result))
            return result

        except FacebookRequestError as e:
            return self._handle_api_error(e, f"fetching insights for {account_id}")

    def get_ads(self, account_id: str) -> List[Dict[str, Any]]:
        """Fetch every ad of an account, including paused and inactive ones.

        Returns:
            List of dicts with id, name, status, effective_status,
            created_time, updated_time.

        Raises:
            MetaAdsClientError (or a subclass) on any API error.
        """
        try:
            logger.info("[META_CLIENT] Fetching ads for account: %s", account_id)

            account = AdAccount(account_id, api=self.api)
            ads = account.get_ads(
                fields=[
                    Ad.Field.id,
                    Ad.Field.name,
                    Ad.Field.status,
                    Ad.Field.effective_status,
                    Ad.Field.created_time,
                    Ad.Field.updated_time,
                ],
                params={"limit": self.page_limit},
            )

            result = [dict(ad) for ad in ads]

            logger.info("[META_CLIENT] Fetched %d ads", len(result))
            return result

        except FacebookRequestError as e:
            return self._handle_api_error(e, f"fetching ads for {account_id}")

    def get_ad_insights(self, ad_id: str, since: str, until: str) -> Dict[str, Any]:
        """Fetch the insight row of a single ad.

        Used for ads that the account-level call did not return.

        Returns:
            The first insight row, or {} when Meta has none for the window.

        Raises:
            MetaAdsClientError (or a subclass) on any API error.
        """
        try:
            ad = Ad(ad_id, api=self.api)
            insights = ad.get_insights(
                fields=METRIC_FIELDS,
                params={"time_range": {"since": since, "until": until}},
            )
            for insight in insights:
                return dict(insight)
            return {}

        except FacebookRequestError as e:
            return self._handle_api_error(e, f"fetching insights for ad {ad_id}")

    def get_creative_image(self, ad_id: str) -> Optional[str]:
        """Resolve a displayable image URL for an ad's creative.

        Resolution order: image_url, thumbnail_url, object story link/video
        picture, then a CDN URL built from image_hash.

        Returns:
            URL string, or None when the creative has no usable image.

        Raises:
            MetaAdsClientError (or a subclass) on any API error.
        """
        try:
            ad = Ad(ad_id, api=self.api)
            ad_data = ad.api_get(fields=[CREATIVE_FIELD])
            creative = ad_data.get("creative") or {}

            image_url = creative.get("image_url") or creative.get("thumbnail_url")

            if not image_url:
                object_story_spec = creative.get("object_story_spec") or {}
                link_data = object_story_spec.get("link_data") or {}
                video_data = object_story_spec.get("video_data") or {}
                image_url = link_data.get("picture") or video_data.get("image_url")

            if not image_url and creative.get("image_hash"):
                image_url = CDN_IMAGE_URL_TEMPLATE.format(image_hash=creative["image_hash"])

            logger.debug("[META_CLIENT] Creative for ad %s: image=%s", ad_id, bool(image_url))
            return image_url or None

        except FacebookRequestError as e:
            return self._handle_api_error(e, f"fetching creative for ad {ad_id}")

    def _handle_api_error(self, error: FacebookRequestError, context: str) -> None:
        """Translate FacebookRequestError into a specific exception type.

        Args:
            error: The Facebook API error
            context: Description of what operation failed

        Raises:
            MetaAdsAuthenticationError: For 401 errors
            MetaAdsPermissionError: For 403 errors
            MetaAdsValidationError: For 400 errors
            MetaAdsClientError: For other errors (429, 500, etc.)
        """
        error_code = error.api_error_code()
        error_message = error.api_error_message() or "Unknown Meta API error"
        http_status = error.http_status()

        body = error.body()
        details = body.get("error") if isinstance(body, dict) else None

        logger.error(
            "[META_CLIENT] API error while %s: HTTP %s, Code %s, Message: %s",
            context,
            http_status,
            error_code,
            error_message,
        )

        if http_status == 401:
            raise MetaAdsAuthenticationError(error_message, http_status, details)
        elif http_status == 403:
            raise MetaAdsPermissionError(error_message, http_status, details)
        elif http_status == 400:
            raise MetaAdsValidationError(error_message, http_status, details)
        else:
            raise MetaAdsClientError(error_message, http_status, details)
