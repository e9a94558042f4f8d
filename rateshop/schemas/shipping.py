"""
Shipping Schemas

Pydantic models mirroring the domain RateRequest. Used as the validation
gate of the rate shopping service and as the JSON input format of the CLI.
"""
import dataclasses
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from rateshop.core.exceptions import CarrierValidationError
from rateshop.modules.shipping.carriers.base import (
    Address,
    CarrierCode,
    DimensionUnit,
    Money,
    Package,
    PackageDimensions,
    PackageWeight,
    PackagingType,
    RateRequest,
    ServiceLevel,
    WeightUnit,
)

MAX_PACKAGES = 50


# ==================== Address Schemas ====================


class AddressSchema(BaseModel):
    name: str = Field(..., min_length=1)
    address_lines: List[str] = Field(..., min_length=1, max_length=3)
    city: str = Field(..., min_length=1)
    state_code: str = Field(..., min_length=2, max_length=5)
    postal_code: str = Field(..., min_length=1)
    country_code: str = Field(..., min_length=2, max_length=2)
    is_residential: Optional[bool] = None

    @field_validator("address_lines")
    @classmethod
    def validate_address_lines(cls, v):
        if any(not line for line in v):
            raise ValueError("Address lines must not be empty")
        return v

    @field_validator("country_code")
    @classmethod
    def validate_country_code(cls, v):
        return v.upper()

    def to_domain(self) -> Address:
        return Address(
            name=self.name,
            address_lines=tuple(self.address_lines),
            city=self.city,
            state_code=self.state_code,
            postal_code=self.postal_code,
            country_code=self.country_code,
            is_residential=self.is_residential,
        )


# ==================== Package Schemas ====================


class PackageDimensionsSchema(BaseModel):
    length: float = Field(..., gt=0)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    unit: DimensionUnit


class PackageWeightSchema(BaseModel):
    value: float = Field(..., gt=0)
    unit: WeightUnit


class DeclaredValueSchema(BaseModel):
    amount: Decimal = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217")


class PackageSchema(BaseModel):
    dimensions: PackageDimensionsSchema
    weight: PackageWeightSchema
    packaging_type: Optional[PackagingType] = None
    declared_value: Optional[DeclaredValueSchema] = None

    def to_domain(self) -> Package:
        declared = None
        if self.declared_value:
            declared = Money(amount=self.declared_value.amount, currency=self.declared_value.currency)
        return Package(
            dimensions=PackageDimensions(**self.dimensions.model_dump()),
            weight=PackageWeight(**self.weight.model_dump()),
            packaging_type=self.packaging_type,
            declared_value=declared,
        )


# ==================== Rate Schemas ====================


class RateRequestSchema(BaseModel):
    origin: AddressSchema
    destination: AddressSchema
    packages: List[PackageSchema] = Field(..., min_length=1, max_length=MAX_PACKAGES)
    service_level: Optional[ServiceLevel] = None
    carriers: Optional[List[CarrierCode]] = None
    shipper_account_number: Optional[str] = None

    def to_domain(self) -> RateRequest:
        return RateRequest(
            origin=self.origin.to_domain(),
            destination=self.destination.to_domain(),
            packages=tuple(p.to_domain() for p in self.packages),
            service_level=self.service_level,
            carriers=tuple(self.carriers) if self.carriers is not None else None,
            shipper_account_number=self.shipper_account_number,
        )


def format_validation_errors(error: ValidationError) -> str:
    """Render pydantic errors as 'path: message; path: message'."""
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )


def validate_rate_request(request: RateRequest) -> RateRequestSchema:
    """
    Validate a domain RateRequest against the schema.

    Raises:
        CarrierValidationError: with every violation, before any network call
    """
    try:
        if isinstance(request, RateRequest):
            return RateRequestSchema.model_validate(dataclasses.asdict(request))
        return RateRequestSchema.model_validate(request)
    except ValidationError as e:
        raise CarrierValidationError(format_validation_errors(e)) from e


def parse_rate_request(data: dict) -> RateRequest:
    """Parse a JSON-decoded dict into a validated domain RateRequest."""
    try:
        schema = RateRequestSchema.model_validate(data)
    except ValidationError as e:
        raise CarrierValidationError(format_validation_errors(e)) from e
    return schema.to_domain()
