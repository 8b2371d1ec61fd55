"""
salon/config.py

Configuration and business rules for StylePreview.

Design principles:
    1. Credit costs defined HERE, not per salon
    2. Costs are integers (whole credits only)
    3. Provider credentials come from the environment only
    4. Enumerations live here so routes and validators share them

Credit Costs (locked):
    - prompt:           1 credit
    - style-reference:  2 credits

Version History:
    2025-11-04: Initial implementation
    2025-11-19: Added provider timeout and refund-on-failure switch
"""

import os
from enum import Enum
from typing import Dict


# =============================================================================
# AI PROVIDER CONFIGURATION
# =============================================================================

GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY', '')
OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY', '')

GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.5-flash-image')
OPENAI_MODEL = os.environ.get('OPENAI_MODEL', 'gpt-4-turbo')

# Applies to the provider call and to fetching remote image references
PROVIDER_TIMEOUT_SECONDS = float(os.environ.get('PROVIDER_TIMEOUT_SECONDS', '60'))

# Give credits back when generation fails after the deduction went through
REFUND_ON_FAILURE = os.environ.get('REFUND_ON_FAILURE', 'true').lower() == 'true'


# =============================================================================
# IMAGE HOSTING CONFIGURATION
# =============================================================================

IMGBB_API_KEY = os.environ.get('IMGBB_API_KEY', '')
IMGBB_UPLOAD_URL = 'https://api.imgbb.com/1/upload'
IMGBB_TIMEOUT_SECONDS = 30

MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10MB
ALLOWED_IMAGE_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/webp'}


# =============================================================================
# ENUMERATIONS
# =============================================================================

class UserRole(str, Enum):
    """Valid user roles."""
    ADMIN = 'admin'
    SALON = 'salon'


class SalonStatus(str, Enum):
    """Valid salon statuses."""
    ACTIVE = 'active'
    SUSPENDED = 'suspended'


class SalonType(str, Enum):
    """Valid salon categories."""
    BARBERSHOP = 'barbershop'
    HAIRSALON = 'hairsalon'


class SalonServices(str, Enum):
    """Audience a salon serves."""
    MALE = 'male'
    FEMALE = 'female'
    BOTH = 'both'


class GenerationType(str, Enum):
    """Kinds of generation a salon can request."""
    PROMPT = 'prompt'
    STYLE_REFERENCE = 'style-reference'


USER_ROLES = {r.value for r in UserRole}
SALON_STATUSES = {s.value for s in SalonStatus}
SALON_TYPES = {t.value for t in SalonType}
SALON_SERVICES = {s.value for s in SalonServices}


# =============================================================================
# BUSINESS RULES
# =============================================================================

# Credits charged per generation, by kind. Not affected by variations.
CREDIT_COSTS: Dict[str, int] = {
    GenerationType.PROMPT.value: 1,
    GenerationType.STYLE_REFERENCE.value: 2,
}

# Signup bonus for new salons
SIGNUP_BONUS_CREDITS = 50

# Variations requested per generation (advisory to the provider)
DEFAULT_VARIATIONS = 1
MAX_VARIATIONS = 4

# Public signup may create admin accounts only when switched on
ALLOW_ADMIN_SIGNUP = os.environ.get('ALLOW_ADMIN_SIGNUP', 'false').lower() == 'true'

# Password rules
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 200


def get_credit_cost(generation_type: str) -> int:
    """
    Get the credit cost for a generation kind.

    Raises:
        ValueError: for an unknown generation type
    """
    return CREDIT_COSTS[GenerationType(generation_type).value]


def print_cost_table():
    """Print the credit cost table."""
    print("\n" + "=" * 40)
    print("STYLEPREVIEW CREDIT COSTS")
    print("=" * 40)
    for kind, cost in CREDIT_COSTS.items():
        print(f"{kind:<20} {cost:>8} credit(s)")
    print("=" * 40 + "\n")


if __name__ == '__main__':
    print_cost_table()
