"""
UPS Rating Mappers

Bidirectional mapping between the carrier-agnostic domain model and the
UPS Rating API wire format. All UPS vocabulary (field names, service codes,
packaging codes) is confined to this module; the wire dicts built and read
here never cross the carrier boundary.

Reference: UPS Rating API, service code appendix.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from rateshop.core.exceptions import CarrierValidationError
from rateshop.modules.shipping.carriers.base import (
    Address,
    BillingWeight,
    CarrierCode,
    DimensionUnit,
    Money,
    Package,
    PackagingType,
    RateQuote,
    RateRequest,
    ServiceLevel,
    Surcharge,
    WeightUnit,
)

# UPS service code <-> normalized service level. Single source of truth:
# the reverse table is derived from it, so both directions stay bijective.
UPS_SERVICE_CODES: Dict[str, ServiceLevel] = {
    "01": ServiceLevel.NEXT_DAY_AIR,
    "02": ServiceLevel.SECOND_DAY_AIR,
    "03": ServiceLevel.GROUND,
    "07": ServiceLevel.EXPRESS,  # Worldwide Express
    "08": ServiceLevel.EXPEDITED,  # Worldwide Expedited
    "11": ServiceLevel.STANDARD,
    "12": ServiceLevel.THREE_DAY_SELECT,
    "13": ServiceLevel.NEXT_DAY_AIR_SAVER,
    "14": ServiceLevel.NEXT_DAY_AIR_EARLY,
    "54": ServiceLevel.EXPRESS_PLUS,  # Worldwide Express Plus
    "59": ServiceLevel.SECOND_DAY_AIR_AM,
    "65": ServiceLevel.SAVER,  # Worldwide Saver
}

SERVICE_LEVEL_TO_UPS_CODE: Dict[ServiceLevel, str] = {
    level: code for code, level in UPS_SERVICE_CODES.items()
}

UPS_SERVICE_NAMES: Dict[str, str] = {
    "01": "UPS Next Day Air",
    "02": "UPS 2nd Day Air",
    "03": "UPS Ground",
    "07": "UPS Worldwide Express",
    "08": "UPS Worldwide Expedited",
    "11": "UPS Standard",
    "12": "UPS 3 Day Select",
    "13": "UPS Next Day Air Saver",
    "14": "UPS Next Day Air Early",
    "54": "UPS Worldwide Express Plus",
    "59": "UPS 2nd Day Air A.M.",
    "65": "UPS Worldwide Saver",
}

# PackagingType -> (UPS code, description)
UPS_PACKAGING_TYPES: Dict[PackagingType, Tuple[str, str]] = {
    PackagingType.CUSTOM: ("02", "Customer Supplied Package"),
    PackagingType.LETTER: ("01", "UPS Letter"),
    PackagingType.TUBE: ("03", "Tube"),
    PackagingType.PAK: ("04", "PAK"),
    PackagingType.SMALL_BOX: ("21", "UPS Express Small Box"),
    PackagingType.MEDIUM_BOX: ("22", "UPS Express Medium Box"),
    PackagingType.LARGE_BOX: ("25", "UPS Express Large Box"),
}

DIMENSION_UNIT_NAMES = {
    DimensionUnit.INCH: "Inches",
    DimensionUnit.CENTIMETER: "Centimeters",
}

WEIGHT_UNIT_NAMES = {
    WeightUnit.POUND: "Pounds",
    WeightUnit.KILOGRAM: "Kilograms",
}

REQUEST_OPTION_RATE = "Rate"
REQUEST_OPTION_SHOP = "Shop"

# Transportation charge type in PaymentDetails
SHIPMENT_CHARGE_TRANSPORTATION = "01"


def as_list(value: Any) -> List[Any]:
    """UPS returns one object or a list for repeated fields; always give a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def format_number(value: Any) -> str:
    """Stringify a number the way UPS expects: 12 -> "12", 5.5 -> "5.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_decimal(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid monetary value for {field}: {value!r}") from e


def request_option(request: RateRequest) -> str:
    return REQUEST_OPTION_RATE if request.service_level else REQUEST_OPTION_SHOP


# ==================== Wire Types ====================


@dataclass
class UPSAddress:
    """Address structure for UPS APIs."""
    address_lines: Tuple[str, ...]
    city: str
    state_province: str
    postal_code: str
    country_code: str
    residential: bool = False

    @classmethod
    def from_domain(cls, address: Address) -> "UPSAddress":
        return cls(
            address_lines=tuple(address.address_lines),
            city=address.city,
            state_province=address.state_code,
            postal_code=address.postal_code,
            country_code=address.country_code,
            residential=bool(address.is_residential),
        )

    def to_ups_format(self) -> Dict:
        """Convert to UPS API format."""
        address = {
            "AddressLine": list(self.address_lines),
            "City": self.city,
            "StateProvinceCode": self.state_province,
            "PostalCode": self.postal_code,
            "CountryCode": self.country_code,
        }
        # UPS convention: indicator is present only for residential addresses
        if self.residential:
            address["ResidentialAddressIndicator"] = "Y"
        return address


@dataclass
class UPSPackage:
    """Package details for UPS APIs."""
    length: Any
    width: Any
    height: Any
    dimension_unit: DimensionUnit
    weight: Any
    weight_unit: WeightUnit
    packaging_type: Optional[PackagingType] = None
    declared_value: Optional[Money] = None

    @classmethod
    def from_domain(cls, package: Package) -> "UPSPackage":
        return cls(
            length=package.dimensions.length,
            width=package.dimensions.width,
            height=package.dimensions.height,
            dimension_unit=package.dimensions.unit,
            weight=package.weight.value,
            weight_unit=package.weight.unit,
            packaging_type=package.packaging_type,
            declared_value=package.declared_value,
        )

    def to_ups_format(self) -> Dict:
        """Convert to UPS API format."""
        code, description = UPS_PACKAGING_TYPES[self.packaging_type or PackagingType.CUSTOM]
        package = {
            "PackagingType": {"Code": code, "Description": description},
            "Dimensions": {
                "UnitOfMeasurement": {
                    "Code": self.dimension_unit.value,
                    "Description": DIMENSION_UNIT_NAMES[self.dimension_unit],
                },
                "Length": format_number(self.length),
                "Width": format_number(self.width),
                "Height": format_number(self.height),
            },
            "PackageWeight": {
                "UnitOfMeasurement": {
                    "Code": self.weight_unit.value,
                    "Description": WEIGHT_UNIT_NAMES[self.weight_unit],
                },
                "Weight": format_number(self.weight),
            },
        }

        if self.declared_value is not None:
            package["PackageServiceOptions"] = {
                "DeclaredValue": {
                    "CurrencyCode": self.declared_value.currency,
                    "MonetaryValue": format_number(self.declared_value.amount),
                }
            }

        return package


# ==================== Request Mapping ====================


def to_ups_rate_request(
    request: RateRequest,
    account_number: str,
    transaction_source: str = "rateshop",
) -> Dict[str, Any]:
    """
    Map a domain RateRequest into a UPS RateRequest payload.

    Raises:
        CarrierValidationError: if the requested service level has no UPS code
    """
    shipper_number = request.shipper_account_number or account_number
    origin = UPSAddress.from_domain(request.origin).to_ups_format()
    destination = UPSAddress.from_domain(request.destination).to_ups_format()

    shipment: Dict[str, Any] = {
        "Shipper": {
            "Name": request.origin.name,
            "ShipperNumber": shipper_number,
            "Address": origin,
        },
        "ShipTo": {
            "Name": request.destination.name,
            "Address": destination,
        },
        "ShipFrom": {
            "Name": request.origin.name,
            "Address": dict(origin, AddressLine=list(origin["AddressLine"])),
        },
        "Package": [UPSPackage.from_domain(p).to_ups_format() for p in request.packages],
        "PaymentDetails": {
            "ShipmentCharge": [
                {
                    "Type": SHIPMENT_CHARGE_TRANSPORTATION,
                    "BillShipper": {"AccountNumber": shipper_number},
                }
            ]
        },
    }

    if request.service_level:
        service_code = SERVICE_LEVEL_TO_UPS_CODE.get(request.service_level)
        if service_code is None:
            raise CarrierValidationError(
                f"Service level {request.service_level.value} is not offered by UPS",
                carrier=CarrierCode.UPS.value,
            )
        shipment["Service"] = {
            "Code": service_code,
            "Description": UPS_SERVICE_NAMES[service_code],
        }

    return {
        "RateRequest": {
            "Request": {
                "RequestOption": request_option(request),
                "TransactionReference": {
                    "CustomerContext": f"{transaction_source} Rating",
                },
            },
            "Shipment": shipment,
        }
    }


# ==================== Response Mapping ====================


def _map_charges(charges: Dict[str, Any], field: str) -> Money:
    return Money(
        amount=parse_decimal(charges["MonetaryValue"], field),
        currency=charges["CurrencyCode"],
    )


def _map_surcharges(itemized: Any) -> Tuple[Surcharge, ...]:
    surcharges = []
    for charge in as_list(itemized):
        amount = parse_decimal(charge["MonetaryValue"], "ItemizedCharges")
        if amount <= 0:
            continue
        code = str(charge.get("Code", ""))
        surcharges.append(Surcharge(
            code=code,
            description=charge.get("Description") or f"Surcharge {code}",
            amount=Money(amount=amount, currency=charge.get("CurrencyCode", "USD")),
        ))
    return tuple(surcharges)


def _estimated_arrival(rated: Dict[str, Any]) -> Dict[str, Any]:
    time_in_transit = rated.get("TimeInTransit") or {}
    summary = time_in_transit.get("ServiceSummary") or {}
    return summary.get("EstimatedArrival") or {}


def _parse_transit_days(rated: Dict[str, Any]) -> Optional[int]:
    guaranteed = rated.get("GuaranteedDelivery") or {}
    days = guaranteed.get("BusinessDaysInTransit")
    if not days:
        days = _estimated_arrival(rated).get("BusinessDaysInTransit")
    return int(days) if days else None


def _parse_estimated_delivery(rated: Dict[str, Any]) -> Optional[str]:
    arrival = _estimated_arrival(rated).get("Arrival") or {}
    return arrival.get("Date") or None


def _parse_billing_weight(rated: Dict[str, Any]) -> Optional[BillingWeight]:
    billing = rated.get("BillingWeight")
    if not billing or billing.get("Weight") in (None, ""):
        return None
    unit = (billing.get("UnitOfMeasurement") or {}).get("Code", "")
    return BillingWeight(value=parse_decimal(billing["Weight"], "BillingWeight"), unit=unit)


def from_ups_rated_shipment(rated: Dict[str, Any]) -> RateQuote:
    """
    Map one UPS RatedShipment into a normalized RateQuote.

    Raises:
        KeyError / ValueError / TypeError on missing or malformed fields;
        the rating operation wraps these into MalformedResponseError.
    """
    service = rated["Service"]
    service_code = str(service["Code"])

    service_name = (
        UPS_SERVICE_NAMES.get(service_code)
        or service.get("Description")
        or f"UPS Service {service_code}"
    )

    return RateQuote(
        carrier=CarrierCode.UPS,
        service_code=service_code,
        service_name=service_name,
        service_level=UPS_SERVICE_CODES.get(service_code, ServiceLevel.STANDARD),
        total_charges=_map_charges(rated["TotalCharges"], "TotalCharges"),
        base_charges=_map_charges(rated["TransportationCharges"], "TransportationCharges"),
        surcharges=_map_surcharges(rated.get("ItemizedCharges")),
        transit_days=_parse_transit_days(rated),
        estimated_delivery=_parse_estimated_delivery(rated),
        guaranteed=rated.get("GuaranteedDelivery") is not None,
        billing_weight=_parse_billing_weight(rated),
    )
