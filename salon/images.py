"""
salon/images.py

Client photo store for StylePreview.

Operations:
    - store_upload(salon, content_type, data) -> Image
    - list_images(salon_id) -> list
    - get_image(image_id) -> Image
    - get_owned_image(image_id, salon_id) -> Image
    - delete_image(image_id, salon_id)

Tenancy: an image is only ever returned to the salon that uploaded it.
Access to another salon's image raises ImageForbidden and is audited.

Version History:
    2025-11-04: Initial implementation
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from audit_log import audit, AuditEvent
from salon.db import get_db
from salon.models import Salon, Image
from salon.config import ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES
from salon.errors import (
    ImageNotFound, ImageForbidden, InvalidField, MissingField,
    SalonSuspended, PersistenceError,
)
from salon import hosting


def validate_upload(content_type: Optional[str], data: Optional[bytes]) -> None:
    if not data:
        raise MissingField('image', 'Image file is required')

    if content_type not in ALLOWED_IMAGE_TYPES:
        raise InvalidField('image', 'Invalid image type. Allowed types: JPEG, PNG, WebP')

    if len(data) > MAX_IMAGE_BYTES:
        raise InvalidField(
            'image',
            f'File size exceeds maximum limit of {MAX_IMAGE_BYTES // (1024 * 1024)}MB'
        )


def store_upload(salon: Salon, content_type: Optional[str], data: Optional[bytes]) -> Image:
    """
    Validate, host and record a client photo.

    Raises:
        SalonSuspended: salon may not upload
        MissingField / InvalidField: no file, bad type or too large
        ImageHostingError: ImgBB failure
    """
    if not salon.is_active:
        raise SalonSuspended()

    validate_upload(content_type, data)

    url = hosting.upload_image(data)
    db = get_db()

    try:
        image = Image(salon_id=salon.id, url=url)
        db.add(image)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError('Failed to save image') from e

    print(f"[Images] Created image {image.id} for salon {salon.id}")
    audit.log_request_event(
        AuditEvent.IMAGE_UPLOADED,
        salon_id=salon.id,
        details={'image_id': image.id, 'size_bytes': len(data), 'content_type': content_type},
    )
    return image


def list_images(salon_id: str) -> list:
    return get_db().query(Image).filter(
        Image.salon_id == salon_id
    ).order_by(Image.created_at.desc()).all()


def get_image(image_id: str) -> Image:
    image = get_db().get(Image, image_id) if image_id else None
    if image is None:
        raise ImageNotFound(image_id)
    return image


def get_owned_image(image_id: str, salon_id: str) -> Image:
    """
    Raises:
        ImageNotFound: unknown id
        ImageForbidden: image belongs to another salon
    """
    image = get_image(image_id)
    if image.salon_id != salon_id:
        audit.log_request_event(
            AuditEvent.SECURITY_CROSS_TENANT_ACCESS,
            salon_id=salon_id,
            details={'resource': 'image', 'image_id': image_id},
        )
        raise ImageForbidden()
    return image


def delete_image(image_id: str, salon_id: str) -> None:
    image = get_owned_image(image_id, salon_id)
    db = get_db()

    try:
        db.delete(image)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError('Failed to delete image') from e

    audit.log_request_event(
        AuditEvent.IMAGE_DELETED,
        salon_id=salon_id,
        details={'image_id': image_id},
    )
