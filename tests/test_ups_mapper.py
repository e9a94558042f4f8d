"""
Tests for UPS request/response mapping.
"""
import dataclasses
from decimal import Decimal

import pytest

from rateshop.core.exceptions import CarrierValidationError
from rateshop.modules.shipping.carriers.base import (
    CarrierCode,
    PackagingType,
    ServiceLevel,
)
from rateshop.services.ups_mapper import (
    SERVICE_LEVEL_TO_UPS_CODE,
    UPS_SERVICE_CODES,
    UPS_SERVICE_NAMES,
    UPSAddress,
    as_list,
    format_number,
    from_ups_rated_shipment,
    to_ups_rate_request,
)


def shipment_of(payload):
    return payload["RateRequest"]["Shipment"]


class TestServiceCodeTables:

    def test_tables_are_bijective(self):
        assert len(SERVICE_LEVEL_TO_UPS_CODE) == len(UPS_SERVICE_CODES)
        for code, level in UPS_SERVICE_CODES.items():
            assert SERVICE_LEVEL_TO_UPS_CODE[level] == code

    def test_every_code_has_a_name(self):
        assert set(UPS_SERVICE_NAMES) == set(UPS_SERVICE_CODES)

    def test_ground_is_03(self):
        assert UPS_SERVICE_CODES["03"] == ServiceLevel.GROUND
        assert SERVICE_LEVEL_TO_UPS_CODE[ServiceLevel.NEXT_DAY_AIR] == "01"


class TestHelpers:

    @pytest.mark.parametrize("value,expected", [
        (12, "12"),
        (12.0, "12"),
        (5.5, "5.5"),
        (Decimal("100.00"), "100.00"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected

    def test_as_list(self):
        assert as_list(None) == []
        assert as_list({"a": 1}) == [{"a": 1}]
        assert as_list([1, 2]) == [1, 2]


class TestRequestMapping:

    def test_shop_when_no_service_level(self, sample_rate_request):
        payload = to_ups_rate_request(sample_rate_request, "A1B2C3")

        assert payload["RateRequest"]["Request"]["RequestOption"] == "Shop"
        assert "Service" not in shipment_of(payload)

    def test_rate_with_service_level(self, sample_rate_request):
        request = dataclasses.replace(sample_rate_request, service_level=ServiceLevel.GROUND)
        payload = to_ups_rate_request(request, "A1B2C3")

        assert payload["RateRequest"]["Request"]["RequestOption"] == "Rate"
        assert shipment_of(payload)["Service"] == {"Code": "03", "Description": "UPS Ground"}

    def test_customer_context(self, sample_rate_request):
        payload = to_ups_rate_request(sample_rate_request, "A1B2C3", transaction_source="myshop")
        reference = payload["RateRequest"]["Request"]["TransactionReference"]
        assert reference == {"CustomerContext": "myshop Rating"}

    def test_addresses(self, sample_rate_request):
        shipment = shipment_of(to_ups_rate_request(sample_rate_request, "A1B2C3"))

        shipper = shipment["Shipper"]
        assert shipper["Name"] == "Fulfillment Center"
        assert shipper["ShipperNumber"] == "A1B2C3"
        assert shipper["Address"] == {
            "AddressLine": ["1234 Tech Drive"],
            "City": "San Francisco",
            "StateProvinceCode": "CA",
            "PostalCode": "94105",
            "CountryCode": "US",
        }
        assert shipment["ShipFrom"]["Address"] == shipper["Address"]
        assert shipment["ShipTo"]["Name"] == "Customer Name"
        assert shipment["ShipTo"]["Address"]["AddressLine"] == ["5678 Oak Street", "Apt 4"]
        assert shipment["ShipTo"]["Address"]["ResidentialAddressIndicator"] == "Y"

    @pytest.mark.parametrize("residential", [None, False])
    def test_residential_indicator_omitted(self, destination, residential):
        address = dataclasses.replace(destination, is_residential=residential)
        assert "ResidentialAddressIndicator" not in UPSAddress.from_domain(address).to_ups_format()

    def test_package_numbers_are_strings(self, sample_rate_request):
        package = shipment_of(to_ups_rate_request(sample_rate_request, "A1B2C3"))["Package"][0]

        assert package["PackagingType"] == {"Code": "02", "Description": "Customer Supplied Package"}
        assert package["Dimensions"] == {
            "UnitOfMeasurement": {"Code": "IN", "Description": "Inches"},
            "Length": "12",
            "Width": "8",
            "Height": "6",
        }
        assert package["PackageWeight"] == {
            "UnitOfMeasurement": {"Code": "LBS", "Description": "Pounds"},
            "Weight": "5.5",
        }
        assert "PackageServiceOptions" not in package

    def test_declared_value_and_metric_units(self, sample_rate_request, insured_package):
        request = dataclasses.replace(sample_rate_request, packages=(insured_package,))
        package = shipment_of(to_ups_rate_request(request, "A1B2C3"))["Package"][0]

        assert package["PackagingType"]["Code"] == "02"
        assert package["Dimensions"]["UnitOfMeasurement"]["Code"] == "CM"
        assert package["Dimensions"]["Length"] == "30.5"
        assert package["PackageWeight"]["UnitOfMeasurement"]["Code"] == "KGS"
        assert package["PackageServiceOptions"]["DeclaredValue"] == {
            "CurrencyCode": "USD",
            "MonetaryValue": "100.00",
        }

    def test_packaging_type_codes(self, sample_rate_request, package):
        boxed = dataclasses.replace(package, packaging_type=PackagingType.SMALL_BOX)
        request = dataclasses.replace(sample_rate_request, packages=(package, boxed))
        packages = shipment_of(to_ups_rate_request(request, "A1B2C3"))["Package"]

        assert [p["PackagingType"]["Code"] for p in packages] == ["02", "21"]

    def test_payment_details_bill_shipper(self, sample_rate_request):
        shipment = shipment_of(to_ups_rate_request(sample_rate_request, "A1B2C3"))
        assert shipment["PaymentDetails"] == {
            "ShipmentCharge": [{"Type": "01", "BillShipper": {"AccountNumber": "A1B2C3"}}]
        }

    def test_shipper_account_override(self, sample_rate_request):
        request = dataclasses.replace(sample_rate_request, shipper_account_number="ZZ9999")
        shipment = shipment_of(to_ups_rate_request(request, "A1B2C3"))

        assert shipment["Shipper"]["ShipperNumber"] == "ZZ9999"
        assert shipment["PaymentDetails"]["ShipmentCharge"][0]["BillShipper"]["AccountNumber"] == "ZZ9999"

    def test_unmapped_service_level(self, sample_rate_request, monkeypatch):
        monkeypatch.delitem(SERVICE_LEVEL_TO_UPS_CODE, ServiceLevel.SAVER)
        request = dataclasses.replace(sample_rate_request, service_level=ServiceLevel.SAVER)

        with pytest.raises(CarrierValidationError):
            to_ups_rate_request(request, "A1B2C3")

    def test_request_is_not_mutated(self, sample_rate_request):
        before = dataclasses.asdict(sample_rate_request)
        to_ups_rate_request(sample_rate_request, "A1B2C3")
        assert dataclasses.asdict(sample_rate_request) == before


class TestResponseMapping:

    def test_basic_quote(self, rated_shipment):
        quote = from_ups_rated_shipment(rated_shipment("03", "UPS Ground", "15.50"))

        assert quote.carrier == CarrierCode.UPS
        assert quote.service_code == "03"
        assert quote.service_name == "UPS Ground"
        assert quote.service_level == ServiceLevel.GROUND
        assert quote.total_charges.amount == Decimal("15.50")
        assert quote.total_charges.currency == "USD"
        assert quote.base_charges.amount == Decimal("15.50")
        assert quote.surcharges == ()
        assert quote.transit_days is None
        assert quote.guaranteed is False
        assert quote.billing_weight.value == Decimal("6.0")
        assert quote.billing_weight.unit == "LBS"

    def test_unknown_code_uses_description(self, rated_shipment):
        quote = from_ups_rated_shipment(rated_shipment("96", "UPS Worldwide Express Freight", "99.00"))

        assert quote.service_name == "UPS Worldwide Express Freight"
        assert quote.service_level == ServiceLevel.STANDARD

    def test_unknown_code_without_description(self, rated_shipment):
        rated = rated_shipment("96", "", "99.00")
        assert from_ups_rated_shipment(rated).service_name == "UPS Service 96"

    def test_table_name_beats_echoed_description(self, rated_shipment):
        quote = from_ups_rated_shipment(rated_shipment("01", "", "45.00"))
        assert quote.service_name == "UPS Next Day Air"

    def test_guaranteed_transit_days(self, rated_shipment):
        quote = from_ups_rated_shipment(rated_shipment("02", "", "28.75", days="2"))

        assert quote.transit_days == 2
        assert quote.guaranteed is True

    def test_time_in_transit_fallback(self, rated_shipment):
        rated = rated_shipment("03", "", "15.50")
        rated["TimeInTransit"] = {
            "ServiceSummary": {
                "EstimatedArrival": {
                    "BusinessDaysInTransit": "4",
                    "Arrival": {"Date": "20240315", "Time": "230000"},
                }
            }
        }

        quote = from_ups_rated_shipment(rated)
        assert quote.transit_days == 4
        assert quote.estimated_delivery == "20240315"
        assert quote.guaranteed is False

    def test_empty_guaranteed_delivery_still_guaranteed(self, rated_shipment):
        rated = rated_shipment("03", "", "15.50")
        rated["GuaranteedDelivery"] = {}

        quote = from_ups_rated_shipment(rated)
        assert quote.guaranteed is True
        assert quote.transit_days is None

    def test_zero_surcharges_dropped(self, rated_shipment):
        rated = rated_shipment("03", "", "15.50", itemized=[
            {"Code": "375", "Description": "Fuel Surcharge", "CurrencyCode": "USD", "MonetaryValue": "1.50"},
            {"Code": "270", "Description": "Residential", "CurrencyCode": "USD", "MonetaryValue": "0.00"},
        ])

        surcharges = from_ups_rated_shipment(rated).surcharges
        assert len(surcharges) == 1
        assert surcharges[0].code == "375"
        assert surcharges[0].description == "Fuel Surcharge"
        assert surcharges[0].amount.amount == Decimal("1.50")

    def test_single_itemized_charge_object(self, rated_shipment):
        rated = rated_shipment("03", "", "15.50", itemized={
            "Code": "120", "CurrencyCode": "USD", "MonetaryValue": "3.25",
        })

        surcharges = from_ups_rated_shipment(rated).surcharges
        assert len(surcharges) == 1
        assert surcharges[0].description == "Surcharge 120"

    def test_missing_billing_weight(self, rated_shipment):
        rated = rated_shipment("03", "", "15.50")
        del rated["BillingWeight"]
        assert from_ups_rated_shipment(rated).billing_weight is None

    def test_missing_total_charges_raises(self, rated_shipment):
        rated = rated_shipment("03", "", "15.50")
        del rated["TotalCharges"]
        with pytest.raises(KeyError):
            from_ups_rated_shipment(rated)

    def test_bad_monetary_value_raises(self, rated_shipment):
        with pytest.raises(ValueError, match="TotalCharges"):
            from_ups_rated_shipment(rated_shipment("03", "", "abc"))
