"""
Pydantic schemas for property requests and responses.
Handles property CRUD payloads, listing responses and validation.
"""

from pydantic import BaseModel, Field, field_validator, field_serializer
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from rentals.models.property import STATUS_AVAILABLE
from rentals.schemas.user import UserResponse
from rentals.schemas.image import PropertyImageResponse

MAX_PRICE = Decimal('999999999.99')


def _required_text(v: Optional[str], label: str) -> Optional[str]:
    if v is None:
        return v
    if not v.strip():
        raise ValueError(f"{label} cannot be empty")
    return v.strip()


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    title: str = Field(
        ...,
        min_length=3,
        max_length=255,
        description="Property listing title",
        examples=["Sea-facing 2BHK in Bandra"]
    )

    description: str = Field(
        "",
        max_length=5000,
        description="Detailed property description"
    )

    property_type: str = Field(
        ...,
        min_length=2,
        max_length=50,
        description="Property type, e.g. apartment, villa, studio",
        examples=["apartment"]
    )

    price: Decimal = Field(
        ...,
        gt=0,
        description="Price per booking in the payment currency",
        examples=[1500]
    )

    location: str = Field(
        ...,
        min_length=2,
        max_length=255,
        description="Property location/address",
        examples=["Bandra West, Mumbai"]
    )

    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)

    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)

    status: str = Field(
        STATUS_AVAILABLE,
        min_length=1,
        max_length=30,
        description="Listing status; only 'available' accepts bookings"
    )

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        """Validate and clean title."""
        return _required_text(v, "Title")

    @field_validator('location')
    @classmethod
    def validate_location(cls, v):
        """Validate and clean location."""
        return _required_text(v, "Location")

    @field_validator('property_type', 'status')
    @classmethod
    def normalize_lowercase(cls, v):
        return v.strip().lower() if v is not None else v

    @field_validator('price')
    @classmethod
    def validate_price(cls, v):
        if v is not None and v > MAX_PRICE:
            raise ValueError("Price exceeds maximum allowed value")
        return v


class PropertyCreate(PropertyBase):
    """Schema for creating a new property."""


class PropertyUpdate(BaseModel):
    """Schema for updating an existing property. Omitted fields are left unchanged."""

    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    property_type: Optional[str] = Field(None, min_length=2, max_length=50)
    price: Optional[Decimal] = Field(None, gt=0)
    location: Optional[str] = Field(None, min_length=2, max_length=255)
    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)
    status: Optional[str] = Field(None, min_length=1, max_length=30)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return _required_text(v, "Title")

    @field_validator('location')
    @classmethod
    def validate_location(cls, v):
        return _required_text(v, "Location")

    @field_validator('property_type', 'status')
    @classmethod
    def normalize_lowercase(cls, v):
        return v.strip().lower() if v is not None else v

    @field_validator('price')
    @classmethod
    def validate_price(cls, v):
        if v is not None and v > MAX_PRICE:
            raise ValueError("Price exceeds maximum allowed value")
        return v


class PropertyResponse(PropertyBase):
    """Property response schema with owner and images."""

    id: str = Field(..., description="Property's unique identifier")
    owner_id: str = Field(..., description="ID of the user who listed the property")
    owner: Optional[UserResponse] = None
    images: List[PropertyImageResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_serializer('price', 'latitude', 'longitude')
    def serialize_decimal(self, v: Optional[Decimal]):
        return float(v) if v is not None else None


class PropertyListResponse(BaseModel):
    """Schema for paginated property list response."""

    properties: List[PropertyResponse]
    total: int = Field(..., description="Total number of properties matching the criteria")
    page: int
    page_size: int
    total_pages: int
