"""
Property management API endpoints for listing, browsing and owner CRUD.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional
from uuid import UUID
import math

from rentals.models.user import User
from rentals.services.property import PropertyService
from rentals.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse
)
from rentals.schemas.error import error_responses, get_common_error_responses
from rentals.utils.dependencies import get_current_active_user, get_property_service


router = APIRouter(prefix="/properties", tags=["Properties"])


def _page(properties, total: int, page: int, page_size: int) -> PropertyListResponse:
    return PropertyListResponse(
        properties=[PropertyResponse.model_validate(prop.to_dict()) for prop in properties],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total > 0 else 1
    )


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new property",
    description="Create a new property listing. Requires owner or admin role.",
    responses=error_responses(401, 403, 422, 500)
)
async def create_property(
    property_data: PropertyCreate,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Create a new property listing owned by the current user.

    Args:
        property_data: Property creation data
        current_user: Current authenticated user
        property_service: Property service instance

    Returns:
        Created property with details

    Raises:
        InsufficientPermissionsError: If user doesn't have permission to create properties
        ValidationError: If property data is invalid
    """
    property_obj = await property_service.create_property(property_data, current_user)
    return PropertyResponse.model_validate(property_obj.to_dict(include_owner=True))


@router.get(
    "",
    response_model=PropertyListResponse,
    status_code=status.HTTP_200_OK,
    summary="Browse properties",
    description="Available properties listed by other users. Admins see every property.",
    responses=get_common_error_responses()
)
async def list_properties(
    query: Optional[str] = Query(None, description="Search in title and description"),
    location: Optional[str] = Query(None, description="Location filter"),
    property_type: Optional[str] = Query(None, description="Property type, e.g. apartment or villa"),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(20, ge=1, le=100, description="Number of properties per page"),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    """
    Get paginated list of properties the current user can book.

    Returns:
        Paginated list of properties with metadata
    """
    properties, total = await property_service.list_properties(
        current_user,
        skip=(page - 1) * page_size,
        limit=page_size,
        location=location,
        property_type=property_type,
        search_text=query
    )
    return _page(properties, total, page, page_size)


@router.get(
    "/mine",
    response_model=PropertyListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my properties",
    description="Properties owned by the current user, in any status",
    responses=get_common_error_responses()
)
async def list_my_properties(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    properties, total = await property_service.list_my_properties(
        current_user, skip=(page - 1) * page_size, limit=page_size
    )
    return _page(properties, total, page, page_size)


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    status_code=status.HTTP_200_OK,
    summary="Get property details",
    description="Get detailed information about a specific property",
    responses=error_responses(401, 404)
)
async def get_property(
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Get detailed information about a specific property.

    Raises:
        NotFoundError: If property doesn't exist
    """
    property_obj = await property_service.get_property(property_id, current_user)
    return PropertyResponse.model_validate(property_obj.to_dict(include_owner=True))


@router.put(
    "/{property_id}",
    response_model=PropertyResponse,
    status_code=status.HTTP_200_OK,
    summary="Update property",
    description="Update property details. Only property owner or admin can update.",
    responses=error_responses(401, 403, 404, 422)
)
async def update_property(
    property_id: UUID = Path(..., description="Property ID"),
    property_data: PropertyUpdate = ...,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Update an existing property. Only fields present in the body change.

    Raises:
        NotFoundError: If property doesn't exist
        InsufficientPermissionsError: If user doesn't own the property
    """
    property_obj = await property_service.update_property(property_id, property_data, current_user)
    return PropertyResponse.model_validate(property_obj.to_dict(include_owner=True))


@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete property",
    description="Delete a property with its images and bookings. Only property owner or admin can delete.",
    responses=error_responses(401, 403, 404)
)
async def delete_property(
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> None:
    await property_service.delete_property(property_id, current_user)
