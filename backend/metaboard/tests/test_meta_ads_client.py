"""Unit tests for MetaAdsClient service.

WHAT:
    Tests Meta Ads API client functionality with mocked Facebook SDK objects.
    Verifies request fields/params, creative image resolution and error mapping.

WHY:
    Ensures MetaAdsClient works correctly without making real API calls.

REFERENCES:
    - metaboard/services/meta_ads_client.py (module under test)
    - facebook_business SDK (mocked)
"""

import json
from unittest.mock import Mock, patch

import pytest
from facebook_business.exceptions import FacebookRequestError

from metaboard.services.meta_ads_client import (
    CDN_IMAGE_URL_TEMPLATE,
    MetaAdsAuthenticationError,
    MetaAdsClient,
    MetaAdsClientError,
    MetaAdsPermissionError,
    MetaAdsValidationError,
)


def _fb_error(status: int, message: str = "boom", code: int = 100) -> FacebookRequestError:
    """Real SDK error with a Graph API style error body."""
    return FacebookRequestError(
        message="Call was not successful",
        request_context={"method": "GET", "path": "/act_123/ads", "params": {}},
        http_status=status,
        http_headers={},
        body=json.dumps({"error": {"message": message, "code": code}}),
    )


class _RaisingCursor:
    def __init__(self, error):
        self.error = error

    def __iter__(self):
        raise self.error


class TestMetaAdsClientInitialization:
    """Test client initialization."""

    @patch("metaboard.services.meta_ads_client.FacebookAdsApi")
    @patch("metaboard.services.meta_ads_client.FacebookSession")
    def test_init_builds_private_api_instance(self, mock_session, mock_api):
        """WHAT: Each client builds its own session/API rather than the SDK default.
        WHY: Concurrent requests may carry different tokens.
        """
        client = MetaAdsClient(access_token="test_token", api_version="v21.0")

        mock_session.assert_called_once_with(access_token="test_token")
        mock_api.assert_called_once_with(mock_session.return_value, api_version="v21.0")
        mock_api.init.assert_not_called()
        assert client.api is mock_api.return_value
        assert client.access_token == "test_token"


@patch("metaboard.services.meta_ads_client.FacebookSession")
@patch("metaboard.services.meta_ads_client.FacebookAdsApi")
class TestGetAccountInsights:
    """Test account-level insight fetching."""

    @patch("metaboard.services.meta_ads_client.AdAccount")
    def test_requests_ad_level_window(self, mock_account_class, mock_api, mock_session):
        mock_account = Mock()
        mock_account_class.return_value = mock_account
        mock_account.get_insights.return_value = [
            {"ad_id": "1", "ad_name": "A", "reach": "100", "spend": "5.50"},
            {"ad_id": "2", "ad_name": "B", "reach": "7", "spend": "0.10"},
        ]

        client = MetaAdsClient(access_token="test_token", page_limit=250)
        rows = client.get_account_insights("act_123", "2023-01-01", "2026-01-01")

        assert [row["ad_id"] for row in rows] == ["1", "2"]
        mock_account_class.assert_called_once_with("act_123", api=client.api)

        kwargs = mock_account.get_insights.call_args.kwargs
        assert kwargs["params"] == {
            "level": "ad",
            "time_range": {"since": "2023-01-01", "until": "2026-01-01"},
            "limit": 250,
        }
        for field in ("reach", "impressions", "cpc", "spend", "clicks", "ctr", "ad_id", "ad_name"):
            assert field in kwargs["fields"]

    @patch("metaboard.services.meta_ads_client.AdAccount")
    def test_empty_account_returns_empty_list(self, mock_account_class, mock_api, mock_session):
        mock_account_class.return_value.get_insights.return_value = []

        client = MetaAdsClient(access_token="test_token")

        assert client.get_account_insights("act_123", "2023-01-01", "2026-01-01") == []

    @patch("metaboard.services.meta_ads_client.AdAccount")
    def test_error_during_pagination_is_translated(self, mock_account_class, mock_api, mock_session):
        """WHAT: Errors raised while iterating the cursor (next page) are mapped too."""
        mock_account_class.return_value.get_insights.return_value = _RaisingCursor(
            _fb_error(500, "Service temporarily unavailable", code=2)
        )

        client = MetaAdsClient(access_token="test_token")

        with pytest.raises(MetaAdsClientError) as exc_info:
            client.get_account_insights("act_123", "2023-01-01", "2026-01-01")

        assert exc_info.value.http_status == 500
        assert exc_info.value.details["message"] == "Service temporarily unavailable"
        assert exc_info.value.details["code"] == 2


@patch("metaboard.services.meta_ads_client.FacebookSession")
@patch("metaboard.services.meta_ads_client.FacebookAdsApi")
class TestGetAds:
    @patch("metaboard.services.meta_ads_client.AdAccount")
    def test_lists_all_ads_with_status_fields(self, mock_account_class, mock_api, mock_session):
        mock_account = Mock()
        mock_account_class.return_value = mock_account
        mock_account.get_ads.return_value = [
            {"id": "1", "name": "A", "status": "ACTIVE", "effective_status": "ACTIVE"},
            {"id": "2", "name": "B", "status": "PAUSED", "effective_status": "PAUSED"},
        ]

        client = MetaAdsClient(access_token="test_token")
        ads = client.get_ads("act_123")

        assert len(ads) == 2
        assert ads[1]["effective_status"] == "PAUSED"
        kwargs = mock_account.get_ads.call_args.kwargs
        assert "effective_status" in kwargs["fields"]
        assert kwargs["params"] == {"limit": 500}


@patch("metaboard.services.meta_ads_client.FacebookSession")
@patch("metaboard.services.meta_ads_client.FacebookAdsApi")
class TestGetAdInsights:
    @patch("metaboard.services.meta_ads_client.Ad")
    def test_returns_first_row(self, mock_ad_class, mock_api, mock_session):
        mock_ad_class.return_value.get_insights.return_value = [{"reach": "3"}, {"reach": "9"}]

        client = MetaAdsClient(access_token="test_token")

        assert client.get_ad_insights("1", "2023-01-01", "2026-01-01") == {"reach": "3"}

    @patch("metaboard.services.meta_ads_client.Ad")
    def test_no_rows_returns_empty_dict(self, mock_ad_class, mock_api, mock_session):
        mock_ad_class.return_value.get_insights.return_value = []

        client = MetaAdsClient(access_token="test_token")

        assert client.get_ad_insights("1", "2023-01-01", "2026-01-01") == {}


@patch("metaboard.services.meta_ads_client.FacebookSession")
@patch("metaboard.services.meta_ads_client.FacebookAdsApi")
class TestGetCreativeImage:
    """Test creative image resolution order."""

    def _client_with_creative(self, mock_ad_class, creative):
        mock_ad_class.return_value.api_get.return_value = {"creative": creative}
        return MetaAdsClient(access_token="test_token")

    @patch("metaboard.services.meta_ads_client.Ad")
    def test_prefers_image_url(self, mock_ad_class, mock_api, mock_session):
        client = self._client_with_creative(
            mock_ad_class, {"image_url": "https://img/full.jpg", "thumbnail_url": "https://img/thumb.jpg"}
        )
        assert client.get_creative_image("1") == "https://img/full.jpg"

    @patch("metaboard.services.meta_ads_client.Ad")
    def test_falls_back_to_thumbnail(self, mock_ad_class, mock_api, mock_session):
        client = self._client_with_creative(mock_ad_class, {"thumbnail_url": "https://img/thumb.jpg"})
        assert client.get_creative_image("1") == "https://img/thumb.jpg"

    @patch("metaboard.services.meta_ads_client.Ad")
    def test_uses_object_story_picture(self, mock_ad_class, mock_api, mock_session):
        client = self._client_with_creative(
            mock_ad_class, {"object_story_spec": {"link_data": {"picture": "https://img/link.jpg"}}}
        )
        assert client.get_creative_image("1") == "https://img/link.jpg"

    @patch("metaboard.services.meta_ads_client.Ad")
    def test_builds_cdn_url_from_hash(self, mock_ad_class, mock_api, mock_session):
        client = self._client_with_creative(mock_ad_class, {"image_hash": "abc123"})
        assert client.get_creative_image("1") == CDN_IMAGE_URL_TEMPLATE.format(image_hash="abc123")

    @patch("metaboard.services.meta_ads_client.Ad")
    def test_no_creative_returns_none(self, mock_ad_class, mock_api, mock_session):
        mock_ad_class.return_value.api_get.return_value = {}
        client = MetaAdsClient(access_token="test_token")

        assert client.get_creative_image("1") is None

    @patch("metaboard.services.meta_ads_client.Ad")
    def test_requests_creative_subfields(self, mock_ad_class, mock_api, mock_session):
        client = self._client_with_creative(mock_ad_class, {})
        client.get_creative_image("42")

        mock_ad_class.assert_called_once_with("42", api=client.api)
        fields = mock_ad_class.return_value.api_get.call_args.kwargs["fields"]
        assert fields == ["creative{image_url,thumbnail_url,object_story_spec,image_hash}"]


@patch("metaboard.services.meta_ads_client.FacebookSession")
@patch("metaboard.services.meta_ads_client.FacebookAdsApi")
class TestErrorHandling:
    """Test HTTP status to exception mapping."""

    @pytest.mark.parametrize(
        "status, expected",
        [
            (401, MetaAdsAuthenticationError),
            (403, MetaAdsPermissionError),
            (400, MetaAdsValidationError),
            (429, MetaAdsClientError),
            (503, MetaAdsClientError),
        ],
    )
    @patch("metaboard.services.meta_ads_client.AdAccount")
    def test_status_maps_to_exception(self, mock_account_class, mock_api, mock_session, status, expected):
        mock_account_class.return_value.get_ads.side_effect = _fb_error(status, "Invalid OAuth access token")

        client = MetaAdsClient(access_token="test_token")

        with pytest.raises(expected) as exc_info:
            client.get_ads("act_123")

        assert exc_info.value.http_status == status
        assert exc_info.value.message == "Invalid OAuth access token"
        assert exc_info.value.details["message"] == "Invalid OAuth access token"
