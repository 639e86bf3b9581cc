"""Tests for affiliate API failure handling.

The fetcher sits on the network boundary: every upstream failure mode must
come back as a ``PageFetchResult`` and nothing may raise past it.
"""

import logging
import os
from unittest.mock import Mock, patch

import pytest
import requests

from referral_gateway.affiliate_api import AffiliateApiClient
from referral_gateway.config import AffiliateApiConfig, read_affiliate_config
from referral_gateway.resolver import AffiliateResolver, match_display_name


@pytest.fixture
def config():
    return AffiliateApiConfig(
        session_cookie="session=super-secret",
        base_url="https://affiliates.example.test/api/referrals",
        page_size=100,
        timeout_seconds=5.0,
    )


def _response(
    status_code: int = 200, payload=None, json_error: Exception | None = None
):
    resp = Mock()
    resp.status_code = status_code
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = payload
    return resp


class TestAffiliateApiRequests:
    """Shape of the outbound request."""

    @pytest.mark.asyncio
    @patch("requests.get")
    async def test_request_carries_page_and_credentials(self, mock_get, config):
        """
        GIVEN a configured client
        WHEN page 3 is fetched
        THEN the request carries page, pageSize, JSON accept and the cookie
        """
        mock_get.return_value = _response(payload={"affiliates": []})

        await AffiliateApiClient(config).fetch_page(3)

        mock_get.assert_called_once_with(
            "https://affiliates.example.test/api/referrals",
            params={"page": 3, "pageSize": 100},
            headers={
                "Accept": "application/json",
                "Cookie": "session=super-secret",
            },
            timeout=5.0,
        )

    @pytest.mark.asyncio
    @patch("requests.get")
    async def test_success_returns_body_verbatim(self, mock_get, config):
        body = {"unexpected": {"shape": [1, 2, 3]}}
        mock_get.return_value = _response(payload=body)

        result = await AffiliateApiClient(config).fetch_page(1)

        assert result.ok
        assert result.page == 1
        assert result.payload is body
        assert result.status_code == 200

    @pytest.mark.asyncio
    async def test_page_zero_is_rejected(self, config):
        with pytest.raises(ValueError):
            await AffiliateApiClient(config).fetch_page(0)

    def test_config_repr_hides_cookie(self, config):
        assert "super-secret" not in repr(config)


class TestAffiliateApiFailures:
    """Upstream failures become result statuses."""

    @pytest.mark.asyncio
    @patch("requests.get")
    async def test_non_2xx_is_http_error(self, mock_get, config):
        """
        GIVEN the directory answers 401
        WHEN a page is fetched
        THEN an http_error result carries the status code
        """
        mock_get.return_value = _response(status_code=401)

        result = await AffiliateApiClient(config).fetch_page(1)

        assert not result.ok
        assert result.status == "http_error"
        assert result.status_code == 401
        assert result.payload is None

    @pytest.mark.asyncio
    @patch("requests.get")
    async def test_transport_failure(self, mock_get, config):
        """
        GIVEN the connection times out
        WHEN a page is fetched
        THEN a transport_error result carries the exception
        """
        exc = requests.Timeout("read timed out")
        mock_get.side_effect = exc

        result = await AffiliateApiClient(config).fetch_page(2)

        assert result.status == "transport_error"
        assert result.exception is exc
        assert result.page == 2

    @pytest.mark.asyncio
    @patch("requests.get")
    async def test_connection_error(self, mock_get, config):
        mock_get.side_effect = requests.ConnectionError("DNS failure")

        result = await AffiliateApiClient(config).fetch_page(1)

        assert result.status == "transport_error"

    @pytest.mark.asyncio
    @patch("requests.get")
    async def test_undecodable_body(self, mock_get, config):
        mock_get.return_value = _response(json_error=ValueError("Expecting value"))

        result = await AffiliateApiClient(config).fetch_page(1)

        assert result.status == "decode_error"
        assert result.status_code == 200

    @pytest.mark.asyncio
    @patch("requests.get")
    async def test_no_retry_on_failure(self, mock_get, config):
        mock_get.return_value = _response(status_code=500)

        await AffiliateApiClient(config).fetch_page(1)

        mock_get.assert_called_once()

    @pytest.mark.asyncio
    @patch("requests.get")
    async def test_cookie_never_logged(self, mock_get, config, caplog):
        mock_get.return_value = _response(status_code=403)

        with caplog.at_level(logging.DEBUG, logger="academy-gateway"):
            await AffiliateApiClient(config).fetch_page(1)

        assert "HTTP 403" in caplog.text
        assert "super-secret" not in caplog.text


class TestAffiliateApiTimeoutConfig:
    """Timeout settings that urllib3 would refuse never reach the request."""

    @pytest.mark.asyncio
    @patch("requests.get")
    async def test_zero_timeout_env_uses_default(self, mock_get):
        """
        GIVEN AFFILIATE_TIMEOUT_SECONDS=0
        WHEN a search runs against an upstream answering 500
        THEN the request uses the default timeout and search reports an error
        """
        mock_get.return_value = _response(status_code=500)
        env = {"AFFILIATE_SESSION_COOKIE": "sid=x", "AFFILIATE_TIMEOUT_SECONDS": "0"}
        with patch.dict(os.environ, env, clear=True):
            config = read_affiliate_config()
        resolver = AffiliateResolver(AffiliateApiClient(config))

        result = await resolver.search(match_display_name("bob"))

        assert result.status == "error"
        assert mock_get.call_args.kwargs["timeout"] == 10.0
