"""
Carrier Registry

- Maps CarrierCode -> carrier instance, built once at startup
- Read-only once handed to the rate shopping service
- Unknown carriers surface as CarrierUnavailableError, duplicates as
  ConfigurationError
"""
import logging
from typing import Dict, Iterable, List, Union

from rateshop.core.exceptions import CarrierUnavailableError, ConfigurationError
from rateshop.modules.shipping.carriers.base import (
    BaseCarrier,
    CarrierCode,
    CarrierOperation,
)

logger = logging.getLogger(__name__)


class CarrierRegistry:
    """Registry of carrier instances keyed by CarrierCode."""

    def __init__(self):
        self._carriers: Dict[CarrierCode, BaseCarrier] = {}

    def register(self, carrier: BaseCarrier) -> None:
        """
        Register a carrier instance.

        Raises:
            ConfigurationError: if the carrier code is already registered
        """
        code = carrier.carrier_code
        if code in self._carriers:
            raise ConfigurationError(f"Carrier {code.value} is already registered")
        self._carriers[code] = carrier
        logger.info(f"Registered carrier: {code.value} -> {carrier.__class__.__name__}")

    def get(self, carrier_code: Union[CarrierCode, str]) -> BaseCarrier:
        """
        Get a registered carrier.

        Raises:
            CarrierUnavailableError: if the carrier is not registered
        """
        code = self._coerce(carrier_code)
        carrier = self._carriers.get(code) if code else None
        if carrier is None:
            raise CarrierUnavailableError(
                f"Carrier {getattr(carrier_code, 'value', carrier_code)} is not registered",
                carrier=getattr(carrier_code, "value", str(carrier_code)),
            )
        return carrier

    def get_all(self) -> List[BaseCarrier]:
        return list(self._carriers.values())

    def get_by_operation(self, operation: CarrierOperation) -> List[BaseCarrier]:
        """Get carriers that support a specific operation."""
        return [c for c in self._carriers.values() if c.supports(operation)]

    def get_by_ids(self, carrier_codes: Iterable[Union[CarrierCode, str]]) -> List[BaseCarrier]:
        return [self.get(code) for code in carrier_codes]

    def has(self, carrier_code: Union[CarrierCode, str]) -> bool:
        code = self._coerce(carrier_code)
        return code is not None and code in self._carriers

    def list_carrier_ids(self) -> List[CarrierCode]:
        return list(self._carriers.keys())

    async def aclose(self) -> None:
        """Close every registered carrier."""
        for carrier in self._carriers.values():
            await carrier.aclose()

    @staticmethod
    def _coerce(carrier_code: Union[CarrierCode, str]):
        try:
            return CarrierCode(carrier_code)
        except ValueError:
            return None


__all__ = [
    "CarrierRegistry",
]
