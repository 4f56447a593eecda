"""
OAuth2 access token source for XOAUTH2 SMTP authentication.

Exchanges a long-lived refresh token for short-lived access tokens at the
provider's token endpoint and caches the result until shortly before it
expires.
"""

import logging
import threading
import time
from collections.abc import Callable

import httpx

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Refresh this many seconds before the provider says the token expires.
_EXPIRY_MARGIN_SECONDS = 60


class TokenRefreshError(Exception):
    """The token endpoint did not return a usable access token."""

    pass


class RefreshTokenSource:
    """Thread-safe cached access token backed by a refresh token."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        token_url: str = GOOGLE_TOKEN_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._token_url = token_url
        self._timeout = timeout
        self._transport = transport
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self._access_token: str | None = None
        self._valid_until = 0.0

    def access_token(self) -> str:
        """Return a cached access token, refreshing it when stale."""
        with self._lock:
            if self._access_token is None or self._monotonic() >= self._valid_until:
                self._refresh()
            return self._access_token

    def _refresh(self) -> None:
        payload = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "refresh_token": self._refresh_token,
            "grant_type": "refresh_token",
        }
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(self._token_url, data=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            raise TokenRefreshError(f"Token refresh failed: {e}") from e
        except ValueError as e:
            raise TokenRefreshError("Token endpoint returned invalid JSON") from e

        if not isinstance(body, dict):
            raise TokenRefreshError("Token endpoint response is not a JSON object")

        token = body.get("access_token")
        if not token or not isinstance(token, str):
            raise TokenRefreshError("Token endpoint response has no access_token")

        try:
            expires_in = int(body.get("expires_in", 3600))
        except (TypeError, ValueError) as e:
            raise TokenRefreshError("Token endpoint returned an invalid expires_in") from e

        self._access_token = token
        self._valid_until = self._monotonic() + max(0, expires_in - _EXPIRY_MARGIN_SECONDS)
        logger.info("Refreshed SMTP OAuth2 access token (expires in %ss)", expires_in)
