"""
Image service for handling property image uploads, storage, and removal.
"""

import uuid
import logging
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.config import get_settings
from rentals.models.image import PropertyImage
from rentals.models.user import User
from rentals.repositories.image import ImageRepository
from rentals.repositories.property import PropertyRepository
from rentals.services.policy import AuthorizationPolicy, policy as default_policy
from rentals.utils.file_utils import FileValidator, LocalObjectStorage
from rentals.utils.exceptions import (
    APIException,
    NotFoundError,
    ValidationError,
    InsufficientPermissionsError,
    persistence_error
)

logger = logging.getLogger(__name__)

MAX_IMAGES_PER_UPLOAD = 10


class ImageService:
    """Service for managing property image uploads and storage."""

    def __init__(
        self,
        db_session: AsyncSession,
        storage: Optional[LocalObjectStorage] = None,
        policy: Optional[AuthorizationPolicy] = None
    ):
        settings = get_settings()
        self.db = db_session
        self.repository = ImageRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.storage = storage or LocalObjectStorage()
        self.policy = policy or default_policy
        self.max_file_size = settings.max_file_size
        self.allowed_types = settings.allowed_file_types

    async def upload_images(
        self,
        property_id: uuid.UUID,
        files: List[UploadFile],
        current_user: User
    ) -> List[PropertyImage]:
        """
        Validate, store and attach images to a property.

        Either every file is stored and recorded, or none is: on any failure
        the objects already written are deleted again.

        Raises:
            NotFoundError: If the property doesn't exist
            InsufficientPermissionsError: If user cannot manage the property
            ValidationError: If a file is not an acceptable image
            FileUploadError: If writing to storage fails
        """
        if not files:
            raise ValidationError("At least one image file is required")
        if len(files) > MAX_IMAGES_PER_UPLOAD:
            raise ValidationError(f"At most {MAX_IMAGES_PER_UPLOAD} images can be uploaded at once")

        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        if not self.policy.can_manage_property(current_user, property_obj):
            raise InsufficientPermissionsError("upload images for this property")

        stored_keys: List[str] = []
        created: List[PropertyImage] = []
        try:
            display_order = await self.repository.next_display_order(property_id)

            for upload in files:
                content = await upload.read()
                if upload.content_type not in self.allowed_types:
                    raise ValidationError(
                        f"File type '{upload.content_type}' not allowed. "
                        f"Allowed types: {', '.join(self.allowed_types)}"
                    )
                width, height, mime_type = FileValidator.validate_image(
                    upload.filename, upload.content_type, content, self.max_file_size
                )

                key = LocalObjectStorage.property_image_key(property_id, upload.filename)
                url = await self.storage.upload(key, content)
                stored_keys.append(key)

                image = await self.repository.create({
                    "property_id": property_id,
                    "image_url": url,
                    "storage_key": key,
                    "filename": upload.filename,
                    "mime_type": mime_type,
                    "file_size": len(content),
                    "width": width,
                    "height": height,
                    "display_order": display_order,
                }, commit=False)
                created.append(image)
                display_order += 1

            await self.db.commit()
        except (APIException, SQLAlchemyError) as e:
            await self.db.rollback()
            self.storage.delete(stored_keys)
            if isinstance(e, SQLAlchemyError):
                raise persistence_error(e, "save property images")
            raise

        logger.info(f"Uploaded {len(created)} image(s) to property {property_id} by {current_user.email}")
        return created

    async def list_images(self, property_id: uuid.UUID) -> List[PropertyImage]:
        try:
            if not await self.property_repo.exists(property_id):
                raise NotFoundError("Property", str(property_id))
            return await self.repository.get_by_property_id(property_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "list property images")

    async def delete_image(self, image_id: uuid.UUID, current_user: User) -> bool:
        """
        Remove one image row and its stored object.

        Raises:
            NotFoundError: If the image doesn't exist
            InsufficientPermissionsError: If user cannot manage the property
        """
        try:
            image = await self.repository.get_by_id(image_id)
            property_obj = await self.property_repo.get_by_id(image.property_id) if image else None
        except SQLAlchemyError as e:
            raise persistence_error(e, "load image")

        if not image or not property_obj:
            raise NotFoundError("Image", str(image_id))
        if not self.policy.can_manage_property(current_user, property_obj):
            raise InsufficientPermissionsError("delete images of this property")

        key = image.storage_key
        try:
            deleted = await self.repository.delete(image_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "delete image")

        self.storage.delete([key])
        logger.info(f"Image {image_id} removed from property {property_obj.id} by {current_user.email}")
        return deleted
