"""
Rate Shopping Service

Top-level entry point for rate quotes across carriers:
- Validates the request before any external call
- Resolves carriers (explicit list, or every carrier supporting "rate")
- Queries carriers concurrently; one carrier's failure never cancels or
  blocks another's success
- Returns combined quotes sorted by price (lowest first)

Usage:
    service = RateShoppingService(registry)
    response = await service.get_quotes(request)
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from rateshop.core.exceptions import CarrierError, ensure_carrier_error
from rateshop.modules.shipping.carriers import CarrierRegistry
from rateshop.modules.shipping.carriers.base import (
    CarrierCode,
    CarrierOperation,
    RateQuote,
    RateRequest,
    RateResponse,
    sort_by_total,
)
from rateshop.schemas.shipping import validate_rate_request

logger = logging.getLogger(__name__)


class RateShoppingService:
    """Aggregates rates from every registered carrier."""

    def __init__(self, registry: CarrierRegistry):
        self.registry = registry

    async def get_quotes(self, request: RateRequest) -> RateResponse:
        """
        Get rate quotes from one or more carriers.

        Returns:
            RateResponse with quotes sorted by total charge ascending, the
            carriers queried, and any per-carrier failures in partial_errors

        Raises:
            CarrierValidationError: request failed validation (no network I/O)
            CarrierError: the first carrier failure, when no carrier returned
                any quote
        """
        validate_rate_request(request)

        carriers = self.resolve_carriers(request.carriers)
        if not carriers:
            logger.warning("No carriers registered for rate lookup")

        results = await asyncio.gather(
            *(self._fetch_rates(code, request) for code in carriers),
            return_exceptions=True,
        )

        all_quotes: List[RateQuote] = []
        errors: List[CarrierError] = []

        for code, result in zip(carriers, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    # CancelledError / KeyboardInterrupt are not carrier failures
                    raise result
                error = ensure_carrier_error(result, code.value)
                logger.warning(
                    f"Error getting rates from {code.value}: "
                    f"{error.code.value} - {error.message}"
                )
                errors.append(error)
            else:
                all_quotes.extend(result)

        if not all_quotes and errors:
            raise errors[0]

        return RateResponse(
            quotes=sort_by_total(all_quotes),
            carriers=tuple(carriers),
            requested_at=datetime.now(timezone.utc).isoformat(),
            partial_errors=tuple(errors),
        )

    def resolve_carriers(
        self,
        requested: Optional[Sequence[CarrierCode]] = None,
    ) -> Tuple[CarrierCode, ...]:
        """Explicit carriers if given, else every carrier supporting rating."""
        if requested:
            return tuple(CarrierCode(c) for c in requested)
        return tuple(
            c.carrier_code for c in self.registry.get_by_operation(CarrierOperation.RATE)
        )

    async def _fetch_rates(self, code: CarrierCode, request: RateRequest) -> Tuple[RateQuote, ...]:
        # Lookup happens per carrier so an unknown id fails only that carrier
        carrier = self.registry.get(code)
        logger.info(f"Fetching rates from {code.value}")
        rates = await carrier.get_rates(request)
        logger.info(f"Got {len(rates)} rates from {code.value}")
        return tuple(rates)
