"""
Property model for rental listings.
Handles property data with location, pricing, availability and ownership.
"""

from sqlalchemy import String, Text, Numeric, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from rentals.database import Base
from decimal import Decimal
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from rentals.models.user import User
    from rentals.models.image import PropertyImage

# Only properties in this status accept new bookings
STATUS_AVAILABLE = "available"


class Property(Base):
    """
    Property model for managing rental listings.
    Owned by exactly one user; mutated only by its owner or an admin.
    """

    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Property listing title"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Detailed property description"
    )

    property_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="Free-form property type, e.g. apartment or villa"
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        index=True,
        comment="Price per booking in the payment currency"
    )

    location: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Property location/address"
    )

    latitude: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=8),
        nullable=True
    )

    longitude: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=11, scale=8),
        nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=STATUS_AVAILABLE,
        index=True,
        comment="Listing status; only 'available' is bookable"
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the user who listed this property"
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="properties",
        lazy="selectin"
    )

    images: Mapped[List["PropertyImage"]] = relationship(
        "PropertyImage",
        back_populates="property_rel",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PropertyImage.display_order.asc()"
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title[:30]}..., price={self.price})>"

    @property
    def is_bookable(self) -> bool:
        return self.status == STATUS_AVAILABLE

    @property
    def primary_image_url(self) -> Optional[str]:
        return self.images[0].image_url if self.images else None

    def validate_price(self) -> None:
        """
        Validate property price.

        Raises:
            ValueError: If price is invalid
        """
        if self.price is None or self.price <= 0:
            raise ValueError("Property price must be greater than 0")

        if self.price > Decimal('999999999.99'):
            raise ValueError("Property price exceeds maximum allowed value")

    def validate_coordinates(self) -> None:
        """
        Validate latitude and longitude coordinates.

        Raises:
            ValueError: If coordinates are invalid
        """
        if self.latitude is not None and not (-90 <= self.latitude <= 90):
            raise ValueError("Latitude must be between -90 and 90 degrees")

        if self.longitude is not None and not (-180 <= self.longitude <= 180):
            raise ValueError("Longitude must be between -180 and 180 degrees")

    def validate_all(self) -> None:
        """Run all validation checks on the property."""
        self.validate_price()
        self.validate_coordinates()

    def to_dict(self, include_owner: bool = False, include_images: bool = True) -> dict:
        """
        Convert property to dictionary.

        Args:
            include_owner: Whether to include owner information
            include_images: Whether to include image information

        Returns:
            Dictionary representation of property
        """
        result = {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "property_type": self.property_type,
            "price": self.price,
            "location": self.location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "status": self.status,
            "owner_id": str(self.owner_id),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

        if include_owner and self.owner:
            result["owner"] = self.owner.to_dict()

        if include_images:
            result["images"] = [image.to_dict() for image in self.images]

        return result


# Listing pages filter by status and exclude the viewer's own properties
status_owner_index = Index(
    'idx_properties_status_owner',
    Property.status,
    Property.owner_id,
    Property.created_at.desc()
)
