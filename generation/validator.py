"""
generation/validator.py

Preconditions for a paid generation.

Checks run in a fixed order and the first failure wins:
    1. Salon-role principal with a salon        -> Unauthorized (401)
    2. Salon exists                              -> SalonNotFound (404)
    3. Salon is active                           -> SalonSuspended (403)
    4. JSON object body with inputImageId        -> ValidationError / MissingField (400)
    5. Exactly one of prompt / hairStyleId,
       variations in 1..MAX_VARIATIONS           -> MissingField / InvalidField (400)
    6. Image exists and belongs to the salon     -> ImageNotFound (404) / ImageForbidden (403)
    7. Hair style is in the salon's library      -> StyleNotFound (404)
    8. Style-transfer endpoint needs a hairsalon -> UnsupportedOperation (403)

Validation has no side effects: nothing is charged and nothing is written
(apart from the audit line for a cross-tenant image access).

Version History:
    2025-11-04: Initial implementation
    2025-11-19: Variations bounds; both prompt and hairStyleId is an error
"""

from dataclasses import dataclass
from typing import Optional

from salon.auth import Principal
from salon.config import GenerationType, SalonType, UserRole, DEFAULT_VARIATIONS, MAX_VARIATIONS
from salon.errors import (
    Unauthorized, SalonSuspended, ValidationError, MissingField, InvalidField,
    UnsupportedOperation,
)
from salon.models import Salon, Image, HairStyle
from salon import images, salons


@dataclass
class GenerationRequest:
    """A request that passed every precondition."""
    salon: Salon
    image: Image
    generation_type: str
    variations: int
    prompt: Optional[str] = None
    hair_style: Optional[HairStyle] = None

    @property
    def style_ref(self) -> Optional[str]:
        return self.hair_style.image_url if self.hair_style else None


def _clean_prompt(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidField('prompt', 'prompt must be a string')
    value = value.strip()
    return value or None


def _clean_id(field: str, value) -> Optional[str]:
    if value is None or value == '':
        return None
    if not isinstance(value, str):
        raise InvalidField(field, f'{field} must be a string')
    return value


def _clean_variations(value) -> int:
    if value is None:
        return DEFAULT_VARIATIONS
    # bool is an int subclass; true/false is not a count
    if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= MAX_VARIATIONS:
        raise InvalidField('variations', f'variations must be an integer between 1 and {MAX_VARIATIONS}')
    return value


def validate(principal: Principal, body: dict, style_transfer: bool = False) -> GenerationRequest:
    """
    Check a generation request.

    Args:
        principal: Who is asking
        body: Parsed JSON, expected {inputImageId, prompt?, hairStyleId?, variations?}
        style_transfer: True for the style-transfer-only endpoint

    Returns:
        GenerationRequest with the loaded salon, image and hair style

    Raises:
        ServiceError subclass for the first failing check
    """
    # 1. Principal
    if principal.role != UserRole.SALON.value or not principal.salon_id:
        raise Unauthorized()

    # 2-3. Tenant
    salon = salons.get_salon(principal.salon_id)
    if not salon.is_active:
        raise SalonSuspended()

    # 4. Request body and input image id
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')

    image_id = _clean_id('inputImageId', body.get('inputImageId'))
    if not image_id:
        raise MissingField('inputImageId', 'Input image ID is required')

    # 5. Mode and parameters
    hair_style_id = _clean_id('hairStyleId', body.get('hairStyleId'))

    if style_transfer:
        prompt = None
        if not hair_style_id:
            raise MissingField('hairStyleId', 'Hair style ID is required')
    else:
        prompt = _clean_prompt(body.get('prompt'))
        if not prompt and not hair_style_id:
            raise MissingField('prompt', 'Either prompt or hairStyleId must be provided')
        if prompt and hair_style_id:
            raise InvalidField('prompt', 'Provide either prompt or hairStyleId, not both')

    variations = _clean_variations(body.get('variations'))

    # 6. Image ownership
    image = images.get_owned_image(image_id, salon.id)

    # 7. Style library
    hair_style = salon.get_hair_style(hair_style_id) if hair_style_id else None

    # 8. Salon type
    if style_transfer and salon.type != SalonType.HAIRSALON.value:
        raise UnsupportedOperation('Style transfer is only available for hair salons')

    generation_type = (
        GenerationType.STYLE_REFERENCE if hair_style else GenerationType.PROMPT
    ).value

    return GenerationRequest(
        salon=salon,
        image=image,
        generation_type=generation_type,
        variations=variations,
        prompt=prompt,
        hair_style=hair_style,
    )
