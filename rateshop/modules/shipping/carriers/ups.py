"""
UPS Carrier Implementation

- Implements BaseCarrier for rating
- Wires UPSTokenManager -> UPSClient -> UPSRatingOperation
- All three share one credentials struct; the token manager is the only
  stateful piece and is safe to share across concurrent get_rates calls
"""
import logging
from typing import Optional, Tuple

from rateshop.core.config import UPSCredentials
from rateshop.modules.shipping.carriers.base import (
    BaseCarrier,
    CarrierCode,
    CarrierOperation,
    RateQuote,
    RateRequest,
)
from rateshop.services.ups_auth import UPSTokenManager
from rateshop.services.ups_client import UPSClient
from rateshop.services.ups_rating import UPSRatingOperation

logger = logging.getLogger(__name__)


class UPSCarrier(BaseCarrier):
    """UPS shipping carrier implementation."""

    def __init__(
        self,
        credentials: UPSCredentials,
        token_manager: Optional[UPSTokenManager] = None,
        client: Optional[UPSClient] = None,
    ):
        self.credentials = credentials
        self.token_manager = token_manager or UPSTokenManager(credentials)
        self.client = client or UPSClient(credentials, self.token_manager)
        self.rating = UPSRatingOperation(
            self.client,
            account_number=credentials.account_number,
            api_version=credentials.rating_api_version,
            transaction_source=credentials.transaction_source,
        )

    @property
    def carrier_code(self) -> CarrierCode:
        return CarrierCode.UPS

    @property
    def carrier_name(self) -> str:
        return "United Parcel Service"

    @property
    def supported_operations(self) -> Tuple[CarrierOperation, ...]:
        return (CarrierOperation.RATE,)

    async def get_rates(self, request: RateRequest) -> Tuple[RateQuote, ...]:
        """Get normalized rate quotes from UPS."""
        return await self.rating.get_rates(request)

    async def aclose(self) -> None:
        await self.client.aclose()
        await self.token_manager.aclose()
