"""
UPS OAuth 2.0 Token Manager

Client-credentials token lifecycle for one UPS account:
- Acquires a token on first use and caches it in memory
- Refreshes 60 seconds before expiry
- Concurrent callers share ONE in-flight acquisition (single-flight)
- Failed acquisitions are never cached; the next call retries fresh
"""
import asyncio
import base64
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from rateshop.core.config import UPSCredentials
from rateshop.core.exceptions import (
    AuthFailedError,
    CarrierError,
    CarrierTimeoutError,
    NetworkError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

CARRIER = "UPS"

# OAuth endpoint
OAUTH_TOKEN_PATH = "/security/v1/oauth/token"

# Refresh this long before the token actually expires
EXPIRY_BUFFER = timedelta(seconds=60)


@dataclass(frozen=True)
class UPSToken:
    """Bearer credential. Replaced wholesale on refresh."""
    access_token: str
    expires_at: datetime
    token_type: str = "Bearer"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at - EXPIRY_BUFFER


def parse_retry_after_ms(response: httpx.Response) -> Optional[int]:
    """Parse a Retry-After header given in seconds, returned in milliseconds."""
    retry_after = response.headers.get("Retry-After")
    if not retry_after:
        return None
    try:
        seconds = float(retry_after)
        if not math.isfinite(seconds) or seconds < 0:
            return None
        return int(seconds * 1000)
    except (ValueError, OverflowError):
        return None


class UPSTokenManager:
    """
    Produces a valid bearer token for a single UPS account.

    Callers never manage the token lifecycle: get_token() returns a cached
    token while it is fresh and transparently acquires a new one otherwise.
    """

    def __init__(
        self,
        credentials: UPSCredentials,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.credentials = credentials
        self._token: Optional[UPSToken] = None
        self._inflight: Optional[asyncio.Task] = None
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.credentials.timeout)
        return self._http_client

    async def aclose(self) -> None:
        """Close HTTP client if this manager created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def get_token(self) -> str:
        """
        Return a valid access token, acquiring or refreshing as needed.

        Raises:
            CarrierError: AuthFailedError, NetworkError, CarrierTimeoutError or
                RateLimitedError, shared by every caller awaiting the same
                acquisition
        """
        token = self._token
        if token and not token.is_expired():
            return token.access_token

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._run_acquisition())

        # shield: one cancelled caller must not cancel everyone's acquisition
        token = await asyncio.shield(self._inflight)
        return token.access_token

    def invalidate(self) -> None:
        """Force-clear the cached token (e.g. after a 401 from the API)."""
        self._token = None

    def has_valid_token(self) -> bool:
        return self._token is not None and not self._token.is_expired()

    async def _run_acquisition(self) -> UPSToken:
        try:
            token = await self._acquire_token()
            self._token = token
            return token
        finally:
            # Cleared before any awaiter resumes so a later call can retry fresh
            self._inflight = None

    async def _acquire_token(self) -> UPSToken:
        """
        POST /security/v1/oauth/token
        Authorization: Basic base64(client_id:client_secret)
        Body: grant_type=client_credentials
        """
        client = self._get_http_client()
        url = f"{self.credentials.base_url}{OAUTH_TOKEN_PATH}"

        auth_string = f"{self.credentials.client_id}:{self.credentials.client_secret}"
        auth_header = base64.b64encode(auth_string.encode()).decode()

        try:
            response = await client.post(
                url,
                headers={
                    "Authorization": f"Basic {auth_header}",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data={"grant_type": "client_credentials"},
                timeout=self.credentials.timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"UPS OAuth request timed out: {e}")
            raise CarrierTimeoutError(
                f"[{CARRIER}] Request timed out after {self.credentials.timeout}s",
                carrier=CARRIER,
                timeout_seconds=self.credentials.timeout,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"UPS OAuth request failed: {e}")
            raise NetworkError(f"[{CARRIER}] Network error: {e}", carrier=CARRIER) from e

        if response.status_code >= 400:
            logger.error(f"UPS OAuth failed: {response.status_code} - {response.text[:500]}")
            raise self._classify_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise AuthFailedError(
                f"[{CARRIER}] Authentication failed: token response is not JSON",
                carrier=CARRIER,
                http_status=response.status_code,
            ) from e

        if not isinstance(data, dict) or not data.get("access_token") or not data.get("expires_in"):
            raise AuthFailedError(
                f"[{CARRIER}] Authentication failed: token response missing required "
                f"fields (access_token, expires_in)",
                carrier=CARRIER,
                http_status=response.status_code,
            )

        try:
            expires_in = int(float(data["expires_in"]))  # UPS returns a string
        except (TypeError, ValueError) as e:
            raise AuthFailedError(
                f"[{CARRIER}] Authentication failed: invalid expires_in {data['expires_in']!r}",
                carrier=CARRIER,
                http_status=response.status_code,
            ) from e

        logger.info(f"UPS OAuth token obtained, expires in {expires_in}s")
        return UPSToken(
            access_token=data["access_token"],
            token_type=data.get("token_type") or "Bearer",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        )

    def _classify_status(self, response: httpx.Response) -> CarrierError:
        status = response.status_code
        if status in (401, 403):
            return AuthFailedError(
                f"[{CARRIER}] Authentication failed: Invalid client credentials",
                carrier=CARRIER,
                http_status=status,
            )
        if status == 429:
            return RateLimitedError(
                f"[{CARRIER}] Rate limited during authentication",
                carrier=CARRIER,
                retry_after_ms=parse_retry_after_ms(response),
            )
        return AuthFailedError(
            f"[{CARRIER}] Authentication failed: HTTP {status}",
            carrier=CARRIER,
            http_status=status,
        )
