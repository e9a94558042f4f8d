"""
Shipping Module

- BaseCarrier interface for all carrier implementations
- CarrierRegistry for carrier lookup by code and operation
- Concrete carriers live in rateshop.modules.shipping.carriers.<carrier>
"""
from rateshop.modules.shipping.carriers import CarrierRegistry
from rateshop.modules.shipping.carriers.base import BaseCarrier

__all__ = [
    "CarrierRegistry",
    "BaseCarrier",
]
