"""
Image upload and management endpoints for property listings.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, File, Path, UploadFile, status

from rentals.models.user import User
from rentals.schemas.image import ImageUploadResponse, PropertyImageResponse
from rentals.schemas.error import error_responses
from rentals.services.image import ImageService
from rentals.utils.dependencies import get_current_active_user, get_image_service

router = APIRouter(tags=["Images"])


@router.post(
    "/properties/{property_id}/images",
    response_model=ImageUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload property images",
    description="Upload up to 10 JPEG, PNG or WebP images. All files are stored or none is.",
    responses=error_responses(400, 401, 403, 404, 422)
)
async def upload_property_images(
    property_id: uuid.UUID = Path(..., description="Property ID"),
    files: List[UploadFile] = File(..., description="Image files to upload"),
    current_user: User = Depends(get_current_active_user),
    image_service: ImageService = Depends(get_image_service)
) -> ImageUploadResponse:
    """
    Attach images to a property the current user manages.

    Raises:
        NotFoundError: If property doesn't exist
        InsufficientPermissionsError: If user cannot manage the property
        ValidationError: If a file is not an acceptable image
    """
    images = await image_service.upload_images(property_id, files, current_user)
    return ImageUploadResponse(
        property_id=str(property_id),
        images=[PropertyImageResponse.model_validate(image.to_dict()) for image in images],
        uploaded=len(images)
    )


@router.get(
    "/properties/{property_id}/images",
    response_model=List[PropertyImageResponse],
    summary="List property images",
    responses=error_responses(401, 404)
)
async def list_property_images(
    property_id: uuid.UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_active_user),
    image_service: ImageService = Depends(get_image_service)
) -> List[PropertyImageResponse]:
    images = await image_service.list_images(property_id)
    return [PropertyImageResponse.model_validate(image.to_dict()) for image in images]


@router.delete(
    "/images/{image_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete image",
    description="Delete an image and its stored file.",
    responses=error_responses(401, 403, 404)
)
async def delete_image(
    image_id: uuid.UUID = Path(..., description="Image ID"),
    current_user: User = Depends(get_current_active_user),
    image_service: ImageService = Depends(get_image_service)
) -> None:
    await image_service.delete_image(image_id, current_user)
