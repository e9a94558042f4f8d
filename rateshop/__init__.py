"""
rateshop - carrier-agnostic shipping rate shopping.

Usage:
    service = create_rate_shopping_service()
    response = await service.get_quotes(request)
"""
from typing import Optional

from rateshop.core.config import Settings, UPSCredentials, load_settings
from rateshop.core.exceptions import CarrierError, CarrierErrorCode
from rateshop.modules.shipping.carriers import CarrierRegistry
from rateshop.modules.shipping.carriers.base import (
    Address,
    CarrierCode,
    Money,
    Package,
    PackageDimensions,
    PackageWeight,
    RateQuote,
    RateRequest,
    RateResponse,
    ServiceLevel,
)
from rateshop.modules.shipping.carriers.ups import UPSCarrier
from rateshop.services.rate_shopping import RateShoppingService

__version__ = "1.0.0"


def create_rate_shopping_service(settings: Optional[Settings] = None) -> RateShoppingService:
    """
    Build a fully configured RateShoppingService.

    Reads settings from the environment when none are given.

    Raises:
        ConfigurationError: if required settings are missing or malformed
    """
    settings = settings or load_settings()

    registry = CarrierRegistry()
    registry.register(UPSCarrier(UPSCredentials.from_settings(settings)))

    return RateShoppingService(registry)


__all__ = [
    "Address",
    "CarrierCode",
    "CarrierError",
    "CarrierErrorCode",
    "CarrierRegistry",
    "Money",
    "Package",
    "PackageDimensions",
    "PackageWeight",
    "RateQuote",
    "RateRequest",
    "RateResponse",
    "RateShoppingService",
    "ServiceLevel",
    "Settings",
    "UPSCarrier",
    "UPSCredentials",
    "create_rate_shopping_service",
    "load_settings",
]
