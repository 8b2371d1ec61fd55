"""
salon/decorators.py

Decorators for route protection.

Usage:
    from salon.decorators import requires_auth, requires_admin, requires_salon

    @bp.route('/api/salons')
    @requires_admin
    def list_salons():
        # User is admin
        pass

    @bp.route('/api/salon/settings', methods=['PATCH'])
    @requires_salon
    def update_settings(salon):
        # Logged-in salon user; their Salon is passed in
        pass

Failures raise ServiceError subclasses; the app's error handler renders
them as JSON.

Version History:
    2025-11-04: Initial implementation
"""

from functools import wraps

from flask_login import current_user

from audit_log import audit, AuditEvent
from salon.config import UserRole
from salon.errors import Unauthorized, AdminRequired, SalonNotFound


def requires_auth(f):
    """
    Decorator that requires user to be authenticated.

    Raises Unauthorized (401) if not logged in.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            raise Unauthorized()
        return f(*args, **kwargs)
    return decorated_function


def requires_admin(f):
    """
    Decorator that requires user to be an admin.

    401 if anonymous, 403 if logged in without the admin role.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            raise Unauthorized()

        if not current_user.is_admin:
            audit.log_request_event(
                AuditEvent.ADMIN_ACCESS_DENIED,
                salon_id=current_user.salon_id,
                user_id=current_user.id,
            )
            raise AdminRequired()

        return f(*args, **kwargs)
    return decorated_function


def requires_salon(f):
    """
    Decorator for salon self-service routes.

    Passes the user's Salon as the first positional argument.
    401 for anyone who is not a salon user with a salon.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or current_user.role != UserRole.SALON.value:
            raise Unauthorized()

        salon = current_user.salon
        if salon is None:
            raise SalonNotFound()

        return f(salon, *args, **kwargs)
    return decorated_function
