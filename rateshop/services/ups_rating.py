"""
UPS Rating Operation

One rate fetch against UPS:
- serviceLevel set   -> POST /api/rating/{version}/Rate (single service)
- serviceLevel unset -> POST /api/rating/{version}/Shop (all services)

Returns normalized RateQuotes sorted by total charge ascending.
"""
import logging
from typing import Any, Tuple

from rateshop.core.exceptions import CarrierError, MalformedResponseError
from rateshop.modules.shipping.carriers.base import RateQuote, RateRequest, sort_by_total
from rateshop.services.ups_auth import CARRIER
from rateshop.services.ups_client import UPSClient
from rateshop.services.ups_mapper import (
    as_list,
    from_ups_rated_shipment,
    request_option,
    to_ups_rate_request,
)

logger = logging.getLogger(__name__)


class UPSRatingOperation:
    def __init__(
        self,
        client: UPSClient,
        account_number: str,
        api_version: str,
        transaction_source: str = "rateshop",
    ):
        self.client = client
        self.account_number = account_number
        self.api_version = api_version
        self.transaction_source = transaction_source

    def rating_path(self, request: RateRequest) -> str:
        return f"/api/rating/{self.api_version}/{request_option(request)}"

    async def get_rates(self, request: RateRequest) -> Tuple[RateQuote, ...]:
        """
        Fetch rate quotes from UPS.

        Raises:
            CarrierError: transport failures as classified by UPSClient,
                MalformedResponseError for unparseable bodies
        """
        path = self.rating_path(request)
        payload = to_ups_rate_request(request, self.account_number, self.transaction_source)

        response = await self.client.post(path, payload)
        quotes = self.parse_response(response)

        logger.info(f"UPS returned {len(quotes)} rates via {path}")
        return quotes

    def parse_response(self, response: Any) -> Tuple[RateQuote, ...]:
        try:
            rate_response = response.get("RateResponse") if isinstance(response, dict) else None
            if not rate_response:
                raise MalformedResponseError(
                    f"[{CARRIER}] Malformed response: Missing RateResponse in response body",
                    carrier=CARRIER,
                )

            rated_shipments = rate_response.get("RatedShipment")
            if not rated_shipments:
                raise MalformedResponseError(
                    f"[{CARRIER}] Malformed response: Missing RatedShipment in response",
                    carrier=CARRIER,
                )

            # Single object for Rate, list for Shop
            quotes = [from_ups_rated_shipment(rs) for rs in as_list(rated_shipments)]
            return sort_by_total(quotes)

        except CarrierError:
            raise
        except Exception as e:
            logger.error(f"Failed to parse UPS rate response: {e!r}")
            raise MalformedResponseError(
                f"[{CARRIER}] Malformed response: Failed to parse rate response: {e}",
                carrier=CARRIER,
                details={"exception_type": e.__class__.__name__},
            ) from e
