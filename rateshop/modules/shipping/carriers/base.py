"""
Base Carrier Interface

- All carriers implement this interface
- Carrier-agnostic data classes: no carrier field names or codes appear here,
  all carrier vocabulary stays inside the carrier's own mapper
- Each carrier declares which operations it supports; the rate shopping
  service dispatches on that declaration
"""
import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Tuple, TYPE_CHECKING

from rateshop.core.exceptions import CarrierUnavailableError

if TYPE_CHECKING:
    from rateshop.core.exceptions import CarrierError


# =============================================================================
# Enumerations
# =============================================================================

class CarrierCode(str, enum.Enum):
    """Supported shipping carriers."""
    UPS = "UPS"
    FEDEX = "FEDEX"
    USPS = "USPS"
    DHL = "DHL"


class CarrierOperation(str, enum.Enum):
    """Operations a carrier may support."""
    RATE = "rate"
    LABEL = "label"
    TRACKING = "tracking"
    ADDRESS_VALIDATION = "address_validation"


class ServiceLevel(str, enum.Enum):
    """Carrier-agnostic delivery speed / guarantee categories."""
    GROUND = "GROUND"
    EXPRESS = "EXPRESS"
    EXPRESS_PLUS = "EXPRESS_PLUS"
    EXPEDITED = "EXPEDITED"
    STANDARD = "STANDARD"
    NEXT_DAY_AIR = "NEXT_DAY_AIR"
    NEXT_DAY_AIR_EARLY = "NEXT_DAY_AIR_EARLY"
    NEXT_DAY_AIR_SAVER = "NEXT_DAY_AIR_SAVER"
    SECOND_DAY_AIR = "SECOND_DAY_AIR"
    SECOND_DAY_AIR_AM = "SECOND_DAY_AIR_AM"
    THREE_DAY_SELECT = "THREE_DAY_SELECT"
    SAVER = "SAVER"


class PackagingType(str, enum.Enum):
    CUSTOM = "CUSTOM"
    LETTER = "LETTER"
    TUBE = "TUBE"
    PAK = "PAK"
    SMALL_BOX = "SMALL_BOX"
    MEDIUM_BOX = "MEDIUM_BOX"
    LARGE_BOX = "LARGE_BOX"


class DimensionUnit(str, enum.Enum):
    INCH = "IN"
    CENTIMETER = "CM"


class WeightUnit(str, enum.Enum):
    POUND = "LBS"
    KILOGRAM = "KGS"


# =============================================================================
# Carrier-Agnostic Data Classes
# =============================================================================

@dataclass(frozen=True)
class Money:
    """Amount in an ISO 4217 currency."""
    amount: Decimal
    currency: str = "USD"


@dataclass(frozen=True)
class Address:
    """Ship-from / ship-to address."""
    name: str
    address_lines: Tuple[str, ...]
    city: str
    state_code: str
    postal_code: str
    country_code: str  # ISO 3166-1 alpha-2
    is_residential: Optional[bool] = None


@dataclass(frozen=True)
class PackageDimensions:
    length: float
    width: float
    height: float
    unit: DimensionUnit = DimensionUnit.INCH


@dataclass(frozen=True)
class PackageWeight:
    value: float
    unit: WeightUnit = WeightUnit.POUND


@dataclass(frozen=True)
class Package:
    """Package dimensions, weight and optional declared value."""
    dimensions: PackageDimensions
    weight: PackageWeight
    packaging_type: Optional[PackagingType] = None
    declared_value: Optional[Money] = None


@dataclass(frozen=True)
class RateRequest:
    """Input to rate shopping. Consumed read-only by every carrier."""
    origin: Address
    destination: Address
    packages: Tuple[Package, ...]
    service_level: Optional[ServiceLevel] = None
    carriers: Optional[Tuple[CarrierCode, ...]] = None
    shipper_account_number: Optional[str] = None


@dataclass(frozen=True)
class Surcharge:
    code: str
    description: str
    amount: Money


@dataclass(frozen=True)
class BillingWeight:
    value: Decimal
    unit: str


@dataclass(frozen=True)
class RateQuote:
    """A single normalized shipping rate quote."""
    carrier: CarrierCode
    service_code: str  # carrier-specific, e.g. "03"
    service_name: str
    service_level: ServiceLevel
    total_charges: Money
    base_charges: Money
    surcharges: Tuple[Surcharge, ...] = ()
    transit_days: Optional[int] = None
    estimated_delivery: Optional[str] = None
    guaranteed: bool = False
    billing_weight: Optional[BillingWeight] = None


@dataclass(frozen=True)
class RateResponse:
    """Quotes from every queried carrier, sorted by total price ascending."""
    quotes: Tuple[RateQuote, ...]
    carriers: Tuple[CarrierCode, ...]
    requested_at: str
    partial_errors: Tuple["CarrierError", ...] = ()


def sort_by_total(quotes: Iterable[RateQuote]) -> Tuple[RateQuote, ...]:
    """Stable ascending sort on total charge; ties keep carrier order."""
    return tuple(sorted(quotes, key=lambda q: q.total_charges.amount))


# =============================================================================
# Base Carrier Interface
# =============================================================================

class BaseCarrier(ABC):
    """
    Abstract base class for all shipping carriers.

    Only get_rates is required. Label, tracking and address validation are
    declared for forward compatibility and raise CarrierUnavailableError
    until a carrier overrides them and lists them in supported_operations.
    """

    @property
    @abstractmethod
    def carrier_code(self) -> CarrierCode:
        """Return the carrier code enum value."""

    @property
    @abstractmethod
    def carrier_name(self) -> str:
        """Return the human-readable carrier name."""

    @property
    def supported_operations(self) -> Tuple[CarrierOperation, ...]:
        return (CarrierOperation.RATE,)

    def supports(self, operation: CarrierOperation) -> bool:
        return operation in self.supported_operations

    @abstractmethod
    async def get_rates(self, request: RateRequest) -> Tuple[RateQuote, ...]:
        """
        Get shipping rates from the carrier.

        Args:
            request: Carrier-agnostic rate request

        Returns:
            RateQuotes for available services, sorted by total charge

        Raises:
            CarrierError: on any failure
        """

    async def create_shipment(self, request: RateRequest, service_code: str):
        raise self._unsupported(CarrierOperation.LABEL)

    async def get_tracking(self, tracking_number: str):
        raise self._unsupported(CarrierOperation.TRACKING)

    async def validate_address(self, address: Address):
        raise self._unsupported(CarrierOperation.ADDRESS_VALIDATION)

    async def aclose(self) -> None:
        """Release network resources held by the carrier."""

    def _unsupported(self, operation: CarrierOperation) -> CarrierUnavailableError:
        return CarrierUnavailableError(
            f"Carrier {self.carrier_code.value} does not support {operation.value}",
            carrier=self.carrier_code.value,
        )
