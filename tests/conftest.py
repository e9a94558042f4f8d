"""
Pytest configuration and fixtures for rateshop tests.
"""
import copy
from decimal import Decimal
from typing import Callable

import httpx
import pytest

from rateshop.core.config import UPSCredentials
from rateshop.modules.shipping.carriers.base import (
    Address,
    DimensionUnit,
    Money,
    Package,
    PackageDimensions,
    PackageWeight,
    PackagingType,
    RateRequest,
    WeightUnit,
)

BASE_URL = "https://onlinetools.ups.com"


@pytest.fixture
def credentials() -> UPSCredentials:
    return UPSCredentials(
        client_id="test_client_id",
        client_secret="test_client_secret",
        account_number="A1B2C3",
        base_url=BASE_URL,
        rating_api_version="v2409",
        timeout=5.0,
        transaction_source="rateshop-tests",
    )


@pytest.fixture
def mock_http() -> Callable[..., httpx.AsyncClient]:
    """Factory for httpx.AsyncClient instances backed by a MockTransport handler."""
    def factory(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return factory


@pytest.fixture
def origin() -> Address:
    return Address(
        name="Fulfillment Center",
        address_lines=("1234 Tech Drive",),
        city="San Francisco",
        state_code="CA",
        postal_code="94105",
        country_code="US",
    )


@pytest.fixture
def destination() -> Address:
    return Address(
        name="Customer Name",
        address_lines=("5678 Oak Street", "Apt 4"),
        city="New York",
        state_code="NY",
        postal_code="10001",
        country_code="US",
        is_residential=True,
    )


@pytest.fixture
def package() -> Package:
    return Package(
        dimensions=PackageDimensions(length=12, width=8, height=6, unit=DimensionUnit.INCH),
        weight=PackageWeight(value=5.5, unit=WeightUnit.POUND),
        packaging_type=PackagingType.CUSTOM,
    )


@pytest.fixture
def sample_rate_request(origin, destination, package) -> RateRequest:
    return RateRequest(origin=origin, destination=destination, packages=(package,))


@pytest.fixture
def insured_package() -> Package:
    return Package(
        dimensions=PackageDimensions(length=30.5, width=20, height=10, unit=DimensionUnit.CENTIMETER),
        weight=PackageWeight(value=2.25, unit=WeightUnit.KILOGRAM),
        declared_value=Money(amount=Decimal("100.00"), currency="USD"),
    )


# ==================== UPS Response Bodies ====================


def _rated_shipment(code, description, total, days=None, itemized=None):
    rated = {
        "Service": {"Code": code, "Description": description},
        "BillingWeight": {
            "UnitOfMeasurement": {"Code": "LBS", "Description": "Pounds"},
            "Weight": "6.0",
        },
        "TransportationCharges": {"CurrencyCode": "USD", "MonetaryValue": total},
        "ServiceOptionsCharges": {"CurrencyCode": "USD", "MonetaryValue": "0.00"},
        "TotalCharges": {"CurrencyCode": "USD", "MonetaryValue": total},
    }
    if days is not None:
        rated["GuaranteedDelivery"] = {"BusinessDaysInTransit": days}
    if itemized is not None:
        rated["ItemizedCharges"] = itemized
    return rated


@pytest.fixture
def token_response() -> dict:
    return {
        "access_token": "test_access_token_12345",
        "token_type": "Bearer",
        "expires_in": "14399",  # UPS returns a string
        "status": "approved",
    }


@pytest.fixture
def shop_response() -> dict:
    """Shop response with carrier order 28.75, 15.50, 45.00."""
    return {
        "RateResponse": {
            "Response": {"ResponseStatus": {"Code": "1", "Description": "Success"}},
            "RatedShipment": [
                _rated_shipment("02", "UPS 2nd Day Air", "28.75", days="2"),
                _rated_shipment(
                    "03", "UPS Ground", "15.50", days="5",
                    itemized=[
                        {"Code": "375", "Description": "Fuel Surcharge",
                         "CurrencyCode": "USD", "MonetaryValue": "1.50"},
                        {"Code": "270", "Description": "Residential Surcharge",
                         "CurrencyCode": "USD", "MonetaryValue": "0.00"},
                    ],
                ),
                _rated_shipment("01", "UPS Next Day Air", "45.00", days="1"),
            ],
        }
    }


@pytest.fixture
def single_rate_response() -> dict:
    return {
        "RateResponse": {
            "Response": {"ResponseStatus": {"Code": "1", "Description": "Success"}},
            "RatedShipment": _rated_shipment("03", "UPS Ground", "14.25"),
        }
    }


@pytest.fixture
def rated_shipment() -> Callable[..., dict]:
    def factory(*args, **kwargs) -> dict:
        return copy.deepcopy(_rated_shipment(*args, **kwargs))
    return factory


@pytest.fixture
def ups_error_body() -> Callable[[str, str], dict]:
    def factory(code: str, message: str) -> dict:
        return {"response": {"errors": [{"code": code, "message": message}]}}
    return factory
