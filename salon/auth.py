"""
salon/auth.py

Authentication module for StylePreview.

Features:
    - Email/password authentication
    - Flask-Login integration (JSON 401 for API clients)
    - Password hashing with bcrypt
    - Salon accounts get their salon and signup bonus in one transaction

Usage:
    from salon.auth import init_auth, register_user, authenticate_user

    # In Flask app:
    init_auth(app)

    # Registration (raises ServiceError subclasses on bad input):
    user = register_user('owner@example.com', 'secret1', 'Owner', 'salon',
                         salon_slug='downtown-cuts', salon_type='barbershop',
                         salon_services='male')

    # Login:
    user = authenticate_user('owner@example.com', 'secret1')
    if user:
        login(user)

Version History:
    2025-11-04: Initial implementation
    2025-11-12: Profile and password changes
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from flask import jsonify
from flask_login import LoginManager, login_user, logout_user, current_user
from sqlalchemy.exc import SQLAlchemyError

from salon.db import get_db
from salon.models import User, CreditReason, utcnow
from salon.config import (
    UserRole, USER_ROLES, SIGNUP_BONUS_CREDITS,
    MIN_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH,
)
from salon.errors import (
    MissingField, InvalidField, ValidationError, Conflict, PersistenceError,
    Unauthorized,
)
from salon import salons


# =============================================================================
# FLASK-LOGIN SETUP
# =============================================================================

login_manager = LoginManager()


@login_manager.user_loader
def load_user(user_id: str) -> Optional[User]:
    """Load user by ID for Flask-Login."""
    user = get_db().get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify(Unauthorized().to_dict()), 401


def init_auth(app):
    """
    Initialize authentication for Flask app.

    Call during app startup:
        app = Flask(__name__)
        init_auth(app)
    """
    login_manager.init_app(app)
    print("[Auth] Authentication initialized")


# =============================================================================
# PRINCIPAL
# =============================================================================

@dataclass(frozen=True)
class Principal:
    """Who is making a request, as far as tenancy checks care."""
    principal_id: Optional[str]
    role: Optional[str]
    salon_id: Optional[str]

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


ANONYMOUS = Principal(principal_id=None, role=None, salon_id=None)


def current_principal() -> Principal:
    """Principal for the logged-in user, or ANONYMOUS."""
    if not current_user.is_authenticated:
        return ANONYMOUS
    return Principal(
        principal_id=current_user.id,
        role=current_user.role,
        salon_id=current_user.salon_id,
    )


# =============================================================================
# VALIDATION
# =============================================================================

def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format.

    Returns:
        (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email is required"

    email = email.strip().lower()

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    if not re.match(pattern, email):
        return False, "Invalid email format"

    if len(email) > 500:
        return False, "Email too long"

    return True, None


def validate_password(password: str) -> Tuple[bool, Optional[str]]:
    """
    Validate password length.

    Returns:
        (is_valid, error_message)
    """
    if not password or not isinstance(password, str):
        return False, "Password is required"

    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    if len(password) > MAX_PASSWORD_LENGTH:
        return False, "Password too long"

    return True, None


def email_taken(email: str, exclude_id: Optional[str] = None) -> bool:
    query = get_db().query(User.id).filter(User.email == email)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


# =============================================================================
# USER REGISTRATION
# =============================================================================

def register_user(
    email: str,
    password: str,
    name: str,
    role: str,
    salon_slug: Optional[str] = None,
    salon_type: Optional[str] = None,
    salon_services: Optional[str] = None
) -> User:
    """
    Register a new user.

    Flow:
        1. Validate email/password/role
        2. Check email (and salon slug) not already taken
        3. Create user with hashed password
        4. For salon users: create the active salon with signup bonus credits

    Raises:
        MissingField / InvalidField / ValidationError: bad input
        Conflict: email or slug already in use
    """
    if not email or not password or not name or not role:
        raise ValidationError('Missing required fields')

    if not isinstance(role, str) or role not in USER_ROLES:
        raise InvalidField('role', 'Invalid role')

    if not isinstance(name, str) or not name.strip():
        raise InvalidField('name', 'Invalid name')

    valid, error = validate_email(email)
    if not valid:
        raise InvalidField('email', error)
    email = email.strip().lower()

    valid, error = validate_password(password)
    if not valid:
        raise InvalidField('password', error)

    if role == UserRole.SALON.value:
        if not salon_slug:
            raise MissingField('salonSlug', 'Salon slug is required for salon users')
        if not salon_type:
            raise MissingField('salonType', 'Salon type is required for salon users')
        if not salon_services:
            raise MissingField('salonServices', 'Salon services is required for salon users')

    if email_taken(email):
        raise Conflict('User with this email already exists', field='email')

    db = get_db()

    try:
        user = User(email=email, name=name.strip(), role=role)
        user.set_password(password)
        db.add(user)
        db.flush()  # Get user.id before creating the salon

        if role == UserRole.SALON.value:
            salons.create_salon(
                name=name,
                slug=salon_slug,
                salon_type=salon_type,
                services=salon_services,
                credits=SIGNUP_BONUS_CREDITS,
                owner_id=user.id,
                credit_reason=CreditReason.SIGNUP_BONUS,
                commit=False,
            )

        db.commit()

    except SQLAlchemyError as e:
        db.rollback()
        print(f"[Auth] Registration failed for {email}: {e}")
        raise PersistenceError('Registration failed. Please try again.') from e
    except Exception:
        db.rollback()
        raise

    print(f"[Auth] New {role} user registered: {email}")
    return user


# =============================================================================
# USER AUTHENTICATION
# =============================================================================

def authenticate_user(email: str, password: str) -> Optional[User]:
    """
    Authenticate user with email/password.

    Returns:
        User if authenticated, None otherwise
    """
    if not email or not password:
        return None

    email = email.strip().lower()
    db = get_db()

    user = db.query(User).filter_by(email=email).first()
    if not user or not user.is_active:
        return None

    if not user.check_password(password):
        return None

    user.last_login_at = utcnow()
    db.commit()

    return user


def login(user: User, remember: bool = False) -> bool:
    """Log in a user (Flask-Login wrapper)."""
    return login_user(user, remember=remember)


def logout() -> bool:
    """Log out current user (Flask-Login wrapper)."""
    return logout_user()


# =============================================================================
# PROFILE AND PASSWORD
# =============================================================================

def update_profile(user: User, name: str, email: str, image: Optional[str] = None) -> User:
    """
    Change display name, email and avatar reference.

    Raises:
        ValidationError: missing name/email
        InvalidField: bad email, name or non-string image
        Conflict: email belongs to another user
    """
    if not name or not email:
        raise ValidationError('Missing required fields')

    if not isinstance(name, str) or not name.strip():
        raise InvalidField('name', 'Invalid name')

    if image is not None and not isinstance(image, str):
        raise InvalidField('image', 'Invalid image')

    valid, error = validate_email(email)
    if not valid:
        raise InvalidField('email', error)
    email = email.strip().lower()

    if email_taken(email, exclude_id=user.id):
        raise Conflict('User with this email already exists', field='email')

    db = get_db()

    try:
        user.name = name.strip()
        user.email = email
        if image is not None:
            user.image = image
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        print(f"[Auth] Profile update failed for {user.id}: {e}")
        raise PersistenceError('Profile update failed') from e

    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    """
    Change user's password.

    Raises:
        ValidationError: missing fields or wrong current password
        InvalidField: new password too short/long
    """
    if not current_password or not new_password:
        raise ValidationError('Missing required fields')

    valid, error = validate_password(new_password)
    if not valid:
        raise InvalidField('newPassword', error)

    if not user.check_password(current_password):
        raise ValidationError('Invalid current password')

    db = get_db()

    try:
        user.set_password(new_password)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        print(f"[Auth] Password change failed for {user.email}: {e}")
        raise PersistenceError('Password change failed') from e
