"""
PropertyImage model for managing property image uploads.
Stores the object-storage reference and file metadata for each image.
"""

from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from rentals.database import Base
import uuid
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from rentals.models.property import Property


class PropertyImage(Base):
    """
    PropertyImage model for uploaded property images.
    Many-to-one with Property; removed with its property.
    """

    __tablename__ = "property_images"

    property_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the property this image belongs to"
    )

    image_url: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Public URL of the stored image"
    )

    storage_key: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        unique=True,
        comment="Object storage key used to delete the file"
    )

    filename: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Original filename of the uploaded image"
    )

    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)

    file_size: Mapped[int] = mapped_column(Integer, nullable=False)

    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Display order for image gallery"
    )

    property_rel: Mapped["Property"] = relationship(
        "Property",
        back_populates="images",
        lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<PropertyImage(id={self.id}, property_id={self.property_id}, filename={self.filename})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "image_url": self.image_url,
            "filename": self.filename,
            "mime_type": self.mime_type,
            "file_size": self.file_size,
            "width": self.width,
            "height": self.height,
            "display_order": self.display_order,
            "created_at": self.created_at.isoformat(),
        }
