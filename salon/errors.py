"""
salon/errors.py

Typed failures for StylePreview services.

Every service-level failure is a ServiceError carrying:
    - code:    machine readable kind (e.g. INSUFFICIENT_CREDITS)
    - status:  HTTP status the API layer answers with
    - message: human readable text
    - details: extra context merged into the JSON body

The Flask app registers one handler for ServiceError that renders:
    {"success": false, "error": message, "code": code, **details}

Version History:
    2025-11-04: Initial implementation
    2025-11-19: Added ProviderUnavailable and PersistenceError
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base class for all expected failures."""

    code = 'SERVICE_ERROR'
    status = 500
    message = 'Service error'

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {
            'success': False,
            'error': self.message,
            'code': self.code,
        }
        body.update(self.details)
        return body


# =============================================================================
# 401 / 403
# =============================================================================

class Unauthorized(ServiceError):
    code = 'UNAUTHORIZED'
    status = 401
    message = 'Authentication required'


class Forbidden(ServiceError):
    code = 'FORBIDDEN'
    status = 403
    message = 'Access denied'


class ImageForbidden(Forbidden):
    code = 'IMAGE_FORBIDDEN'
    message = 'Image does not belong to this salon'


class UnsupportedOperation(Forbidden):
    code = 'UNSUPPORTED_OPERATION'
    message = 'Operation not available for this salon'


class AdminRequired(Forbidden):
    code = 'ADMIN_REQUIRED'
    message = 'Admin access required'


class SalonSuspended(ServiceError):
    code = 'SALON_SUSPENDED'
    status = 403
    message = 'Salon is suspended'


# =============================================================================
# 400
# =============================================================================

class ValidationError(ServiceError):
    code = 'VALIDATION_ERROR'
    status = 400
    message = 'Invalid request'


class MissingField(ValidationError):
    code = 'MISSING_FIELD'

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f'{field} is required', field=field)


class InvalidField(ValidationError):
    code = 'INVALID_FIELD'

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f'{field} is invalid', field=field)


class Conflict(ValidationError):
    """Uniqueness clash (email, slug). Answered as 400 like other bad input."""
    code = 'CONFLICT'


# =============================================================================
# 402
# =============================================================================

class InsufficientCredits(ServiceError):
    code = 'INSUFFICIENT_CREDITS'
    status = 402

    def __init__(self, required: int, available: int):
        super().__init__(
            f'Insufficient credits. You need {required} credit(s) but have {available}.',
            required=required,
            available=available,
        )
        self.required = required
        self.available = available


# =============================================================================
# 404
# =============================================================================

class NotFound(ServiceError):
    code = 'NOT_FOUND'
    status = 404
    message = 'Not found'


class SalonNotFound(NotFound):
    code = 'SALON_NOT_FOUND'
    message = 'Salon not found'

    def __init__(self, salon_id: Optional[str] = None):
        super().__init__()
        self.salon_id = salon_id


class ImageNotFound(NotFound):
    code = 'IMAGE_NOT_FOUND'
    message = 'Image not found'

    def __init__(self, image_id: Optional[str] = None):
        super().__init__()
        self.image_id = image_id


class StyleNotFound(NotFound):
    code = 'STYLE_NOT_FOUND'
    message = 'Hair style not found'

    def __init__(self, hair_style_id: Optional[str] = None):
        super().__init__()
        self.hair_style_id = hair_style_id


class GenerationNotFound(NotFound):
    code = 'GENERATION_NOT_FOUND'
    message = 'Generation not found'

    def __init__(self, generation_id: Optional[str] = None):
        super().__init__()
        self.generation_id = generation_id


# =============================================================================
# 500
# =============================================================================

class ProviderError(ServiceError):
    """AI backend call failed or timed out."""
    code = 'PROVIDER_ERROR'
    status = 500
    message = 'Failed to generate image'


class ProviderUnavailable(ProviderError):
    """AI backend answered but produced nothing usable."""
    code = 'PROVIDER_UNAVAILABLE'
    message = 'AI provider returned no image'


class PersistenceError(ServiceError):
    code = 'PERSISTENCE_ERROR'
    status = 500
    message = 'Failed to save generation'


class ImageHostingError(ServiceError):
    code = 'IMAGE_HOSTING_ERROR'
    status = 500
    message = 'Failed to upload image to hosting service'
