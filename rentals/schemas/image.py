"""
Pydantic schemas for property image responses.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class PropertyImageResponse(BaseModel):
    """Stored image with its public URL."""

    id: str
    property_id: str
    image_url: str = Field(..., description="Public URL of the stored image")
    filename: str
    mime_type: str
    file_size: int = Field(..., description="File size in bytes")
    width: Optional[int] = None
    height: Optional[int] = None
    display_order: int = 0
    created_at: datetime


class ImageUploadResponse(BaseModel):
    """Result of uploading one or more images to a property."""

    property_id: str
    images: List[PropertyImageResponse]
    uploaded: int = Field(..., description="Number of images stored")
