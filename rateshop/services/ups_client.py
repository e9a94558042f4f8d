"""
UPS Authenticated HTTP Client

Thin wrapper around httpx for UPS API calls:
- Injects the OAuth bearer token plus transactionSrc / transId headers
- Retries exactly once on 401, after invalidating and re-acquiring the token
- Classifies every failure into a structured CarrierError; raw httpx
  exceptions never escape this module
"""
import json
import logging
import uuid
from typing import Any, Dict, Optional, Tuple

import httpx

from rateshop.core.config import UPSCredentials
from rateshop.core.exceptions import (
    AuthFailedError,
    CarrierApiError,
    CarrierError,
    CarrierTimeoutError,
    ForbiddenError,
    MalformedResponseError,
    NetworkError,
    RateLimitedError,
)
from rateshop.services.ups_auth import CARRIER, UPSTokenManager, parse_retry_after_ms

logger = logging.getLogger(__name__)


def generate_transaction_id() -> str:
    """Fresh per-call correlation id for upstream tracing."""
    return f"rs-{uuid.uuid4().hex}"


def extract_ups_error(data: Any) -> Tuple[str, str]:
    """
    Pull (code, message) from a UPS error body.

    UPS error format: {"response": {"errors": [{"code": ..., "message": ...}]}}
    The first entry is authoritative.
    """
    if isinstance(data, dict):
        resp = data.get("response")
        if isinstance(resp, dict):
            errors = resp.get("errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                first = errors[0]
                return (
                    str(first.get("code", "UNKNOWN")),
                    str(first.get("message", "Unknown API error")),
                )
    return "UNKNOWN", "Unknown API error"


class UPSClient:
    """
    HTTP client for authenticated UPS API calls.

    Format-agnostic: post() returns the decoded JSON body unchanged.
    """

    def __init__(
        self,
        credentials: UPSCredentials,
        token_manager: UPSTokenManager,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.credentials = credentials
        self.token_manager = token_manager
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.credentials.timeout,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._http_client

    async def aclose(self) -> None:
        """Close HTTP client if this client created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def post(self, path: str, payload: Dict[str, Any]) -> Any:
        """
        Make an authenticated POST request to the UPS API.

        Args:
            path: API path, e.g. /api/rating/v2409/Shop
            payload: JSON-serializable request body

        Returns:
            Decoded JSON response body

        Raises:
            CarrierError: classified failure; a 401 is retried once first
        """
        response = await self._send(path, payload)

        if response.status_code == 401:
            logger.warning(f"UPS API {path} -> 401, refreshing token and retrying once")
            self.token_manager.invalidate()
            response = await self._send(path, payload)

        if response.status_code >= 400:
            raise self._classify_response(response)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"UPS API {path} returned undecodable body: {response.text[:500]}")
            raise MalformedResponseError(
                f"[{CARRIER}] Malformed response: {e}",
                carrier=CARRIER,
                http_status=response.status_code,
            ) from e

    async def _send(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        """One authenticated attempt. Transport failures are classified here."""
        token = await self.token_manager.get_token()
        client = self._get_http_client()
        url = f"{self.credentials.base_url}{path}"

        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "transId": generate_transaction_id(),
            "transactionSrc": self.credentials.transaction_source,
        }

        try:
            response = await client.post(
                url,
                headers=headers,
                content=json.dumps(payload),
                timeout=self.credentials.timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"UPS API request timed out: {e}")
            raise CarrierTimeoutError(
                f"[{CARRIER}] Request timed out after {self.credentials.timeout}s",
                carrier=CARRIER,
                timeout_seconds=self.credentials.timeout,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"UPS API request failed: {e}")
            raise NetworkError(f"[{CARRIER}] Network error: {e}", carrier=CARRIER) from e

        logger.debug(f"UPS API POST {path} -> {response.status_code}")
        return response

    def _classify_response(self, response: httpx.Response) -> CarrierError:
        """Map an HTTP error response to a structured CarrierError."""
        status = response.status_code

        if status == 429:
            logger.error("UPS API rate limit exceeded")
            return RateLimitedError(
                f"[{CARRIER}] Rate limit exceeded",
                carrier=CARRIER,
                retry_after_ms=parse_retry_after_ms(response),
            )

        try:
            error_data = response.json()
        except ValueError:
            error_data = {"raw": response.text[:500]}

        error_code, error_msg = extract_ups_error(error_data)
        logger.error(f"UPS API error: HTTP {status} {error_code} - {error_msg}")

        common = dict(
            carrier=CARRIER,
            http_status=status,
            carrier_error_code=error_code,
            carrier_error_message=error_msg,
        )

        if status == 401:
            return AuthFailedError(f"[{CARRIER}] Authentication failed: {error_msg}", **common)
        if status == 403:
            return ForbiddenError(f"[{CARRIER}] Forbidden: {error_msg}", **common)
        return CarrierApiError(
            f"[{CARRIER}] API error (HTTP {status}): {error_msg}",
            **common,
        )
