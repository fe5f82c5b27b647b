# backoffice/etsy_client.py
# Thin HTTP client for the Etsy Open API v3 (OAuth + shop + listings).

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlencode

import requests

from backoffice import config
from backoffice.errors import ProviderFetchError, TokenExchangeError, TokenRefreshError

logger = logging.getLogger(__name__)


class EtsyClient:
    """Every call is a single attempt; failures surface as typed errors."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = config.HTTP_TIMEOUT,
    ):
        self.api_key = api_key if api_key is not None else config.ETSY_API_KEY
        self.api_secret = api_secret if api_secret is not None else config.ETSY_API_SECRET
        self.session = session or requests.Session()
        self.timeout = timeout

        if not self.api_key or not self.api_secret:
            logger.warning("Missing Etsy API credentials")

    # -----------------------------------------------------------------------
    # OAuth
    # -----------------------------------------------------------------------

    def authorization_url(self, redirect_uri: str, state: str, scope: str = config.ETSY_SCOPES) -> str:
        params = {
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "scope": scope,
            "client_id": self.api_key,
            "state": state,
        }
        return f"{config.ETSY_OAUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str, redirect_uri: str) -> dict:
        """grant_type=authorization_code. redirect_uri must match the one sent to the authorize URL."""
        data = {
            "grant_type": "authorization_code",
            "client_id": self.api_key,
            "client_secret": self.api_secret,
            "redirect_uri": redirect_uri,
            "code": code,
        }
        try:
            resp = self.session.post(config.ETSY_TOKEN_URL, data=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TokenExchangeError(f"Failed to exchange code for token: {e}") from e

        if not resp.ok:
            logger.error("Token exchange failed: %s %s", resp.status_code, resp.text[:1000])
            raise TokenExchangeError("Failed to exchange code for token")

        return _token_payload(resp, TokenExchangeError)

    def refresh(self, refresh_token: str) -> dict:
        data = {
            "grant_type": "refresh_token",
            "client_id": self.api_key,
            "refresh_token": refresh_token,
        }
        try:
            resp = self.session.post(config.ETSY_TOKEN_URL, data=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TokenRefreshError(f"Failed to refresh access token: {e}") from e

        if not resp.ok:
            logger.error("Token refresh failed: %s %s", resp.status_code, resp.text[:1000])
            raise TokenRefreshError("Failed to refresh access token")

        return _token_payload(resp, TokenRefreshError)

    # -----------------------------------------------------------------------
    # Resources
    # -----------------------------------------------------------------------

    def _headers(self, access_token: str) -> dict:
        return {
            "Authorization": f"Bearer {access_token}",
            "x-api-key": self.api_key,
        }

    def _get(self, path: str, access_token: str, what: str) -> Any:
        url = f"{config.ETSY_API_BASE}{path}"
        try:
            resp = self.session.get(url, headers=self._headers(access_token), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ProviderFetchError(f"Failed to fetch {what}: {e}") from e

        if not resp.ok:
            logger.error("Failed to fetch %s: %s %s", what, resp.status_code, resp.text[:1000])
            raise ProviderFetchError(f"Failed to fetch {what}")

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderFetchError(f"Invalid JSON for {what}") from e

    def get_shop(self, access_token: str) -> dict:
        """Shop profile of the token owner; accepts a results envelope or a bare shop object."""
        data = self._get("/application/shops", access_token, "shop information")
        if isinstance(data, dict) and "results" in data:
            results = data.get("results") or []
            if not results:
                raise ProviderFetchError("No shop found for this account")
            data = results[0]
        if not isinstance(data, dict) or data.get("shop_id") is None:
            raise ProviderFetchError("Unexpected shop information payload")
        return data

    def get_active_listings(self, access_token: str, shop_id: str) -> list[dict]:
        # single page only
        data = self._get(f"/application/shops/{shop_id}/listings/active", access_token, "shop listings")
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise ProviderFetchError("Unexpected listings payload")
        return results


def _token_payload(resp, error_cls) -> dict:
    try:
        data = resp.json()
    except ValueError as e:
        raise error_cls("Token endpoint returned invalid JSON") from e

    if not isinstance(data, dict) or not data.get("access_token"):
        raise error_cls("Token endpoint returned no access_token")
    return data
