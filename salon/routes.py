"""
salon/routes.py

Flask Blueprints for accounts, salon self-service and client photos.

Endpoints:
    Auth (auth_bp):
        POST  /auth/signup - Create account (salon users get a salon)
        POST  /auth/login - Login
        POST  /auth/logout - Logout
        GET   /auth/me - Current user info

    Salon self-service (salon_bp):
        PATCH  /api/user/profile - Name, email, avatar
        PATCH  /api/user/password - Change password
        GET    /api/salons/slug/<slug> - Salon by slug (admin or owner)
        PATCH  /api/salon/settings - Services offered
        POST   /api/salon/hairstyles - Add style library entry
        DELETE /api/salon/hairstyles?id=<id> - Remove style library entry
        GET    /api/salon/credits - Balance, cost table, recent ledger

    Images (images_bp):
        POST   /api/images - Upload client photo
        GET    /api/images - List salon's photos
        GET    /api/images/<id> - One photo
        DELETE /api/images/<id> - Delete photo

Version History:
    2025-11-04: Initial implementation
    2025-11-12: Style library and credit history endpoints
"""

import base64

from flask import Blueprint, request, jsonify
from flask_login import current_user

from audit_log import audit, AuditEvent
from salon.auth import (
    register_user, authenticate_user, login, logout,
    update_profile, change_password,
)
from salon.decorators import requires_auth, requires_salon
from salon.config import CREDIT_COSTS, UserRole
from salon.errors import Forbidden, Unauthorized, MissingField, ValidationError
from salon.ledger import get_salon_history
from salon import config, images, salons


auth_bp = Blueprint('auth_bp', __name__, url_prefix='/auth')
salon_bp = Blueprint('salon_bp', __name__)
images_bp = Blueprint('images_bp', __name__, url_prefix='/api/images')


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


# =============================================================================
# AUTH ROUTES
# =============================================================================

@auth_bp.route('/signup', methods=['POST'])
def signup():
    """
    Register a new user.

    Request:
        {
            "email": "owner@example.com",
            "password": "secret1",
            "name": "Downtown Cuts",
            "role": "salon",
            "salonSlug": "downtown-cuts",
            "salonType": "barbershop",
            "salonServices": "male"
        }

    Response (201):
        {
            "success": true,
            "message": "User created successfully",
            "user": {...}
        }
    """
    data = json_body()

    if data.get('role') == UserRole.ADMIN.value and not config.ALLOW_ADMIN_SIGNUP:
        raise Forbidden('Admin accounts cannot be created through signup')

    user = register_user(
        email=data.get('email'),
        password=data.get('password'),
        name=data.get('name'),
        role=data.get('role'),
        salon_slug=data.get('salonSlug'),
        salon_type=data.get('salonType'),
        salon_services=data.get('salonServices'),
    )

    audit.log_request_event(
        AuditEvent.AUTH_SIGNUP,
        salon_id=user.salon_id,
        user_id=user.id,
        details={'role': user.role},
    )

    return jsonify({
        'success': True,
        'message': 'User created successfully',
        'user': user.to_dict(),
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login_route():
    """
    Login with email/password.

    Request:
        {"email": "owner@example.com", "password": "secret1", "remember": true}
    """
    data = json_body()

    user = authenticate_user(data.get('email'), data.get('password'))

    if not user:
        audit.log_request_event(AuditEvent.AUTH_LOGIN_FAILED)
        raise Unauthorized('Invalid email or password')

    login(user, remember=bool(data.get('remember', False)))
    audit.log_request_event(AuditEvent.AUTH_LOGIN, salon_id=user.salon_id, user_id=user.id)

    return jsonify({
        'success': True,
        'user': user.to_dict(),
    })


@auth_bp.route('/logout', methods=['POST'])
def logout_route():
    """Logout current user."""
    if current_user.is_authenticated:
        audit.log_request_event(AuditEvent.AUTH_LOGOUT, user_id=current_user.id)
    logout()
    return jsonify({'success': True})


@auth_bp.route('/me', methods=['GET'])
def me():
    """Current user info, or authenticated=false."""
    if not current_user.is_authenticated:
        return jsonify({
            'authenticated': False,
            'user': None
        })

    return jsonify({
        'authenticated': True,
        'user': current_user.to_dict(),
    })


# =============================================================================
# USER ROUTES
# =============================================================================

@salon_bp.route('/api/user/profile', methods=['PATCH'])
@requires_auth
def profile():
    data = json_body()
    user = update_profile(
        current_user,
        name=data.get('name'),
        email=data.get('email'),
        image=data.get('image'),
    )
    return jsonify({
        'success': True,
        'message': 'Profile updated successfully',
        'user': user.to_dict(),
    })


@salon_bp.route('/api/user/password', methods=['PATCH'])
@requires_auth
def password():
    data = json_body()
    change_password(current_user, data.get('currentPassword'), data.get('newPassword'))
    audit.log_request_event(
        AuditEvent.AUTH_PASSWORD_CHANGED,
        salon_id=current_user.salon_id,
        user_id=current_user.id,
    )
    return jsonify({
        'success': True,
        'message': 'Password changed successfully',
    })


# =============================================================================
# SALON SELF-SERVICE ROUTES
# =============================================================================

@salon_bp.route('/api/salons/slug/<slug>', methods=['GET'])
@requires_auth
def salon_by_slug(slug):
    """Admins see any salon; salon users only their own."""
    if not current_user.is_admin and current_user.salon_slug != slug:
        raise Unauthorized()

    salon = salons.get_salon_by_slug(slug)
    return jsonify({'success': True, 'salon': salon.to_dict()})


@salon_bp.route('/api/salon/settings', methods=['PATCH'])
@requires_salon
def settings(salon):
    data = json_body()
    salon = salons.update_settings(salon, data.get('services'))
    return jsonify({
        'success': True,
        'message': 'Salon settings updated successfully',
        'salon': salon.to_dict(),
    })


@salon_bp.route('/api/salon/hairstyles', methods=['POST'])
@requires_salon
def add_hair_style(salon):
    """
    Add a reference photo to the style library.

    Multipart form: name, image. The image is kept inline as a data URL.
    """
    name = request.form.get('name')
    image_file = request.files.get('image')

    if not name or image_file is None:
        raise MissingField('image', 'Name and image are required')

    data = image_file.read()
    images.validate_upload(image_file.mimetype, data)
    image_url = f"data:{image_file.mimetype};base64,{base64.b64encode(data).decode('ascii')}"

    hair_style = salons.add_hair_style(salon, name, image_url)

    return jsonify({
        'success': True,
        'message': 'Hair style uploaded successfully',
        'hairStyle': hair_style.to_dict(),
    })


@salon_bp.route('/api/salon/hairstyles', methods=['DELETE'])
@requires_salon
def delete_hair_style(salon):
    hair_style_id = request.args.get('id')
    if not hair_style_id:
        raise MissingField('id', 'Hair style ID is required')

    salons.remove_hair_style(salon, hair_style_id)
    return jsonify({
        'success': True,
        'message': 'Hair style deleted successfully',
    })


@salon_bp.route('/api/salon/credits', methods=['GET'])
@requires_salon
def credits(salon):
    """
    Response:
        {
            "success": true,
            "credits": 48,
            "costs": {"prompt": 1, "style-reference": 2},
            "history": [{...}, ...]
        }
    """
    limit = request.args.get('limit', 20, type=int)
    history = get_salon_history(salon.id, limit=max(1, min(limit, 100)))

    return jsonify({
        'success': True,
        'credits': salon.credits,
        'costs': CREDIT_COSTS,
        'history': [entry.to_dict() for entry in history],
    })


# =============================================================================
# IMAGE ROUTES
# =============================================================================

@images_bp.route('', methods=['POST'])
@requires_salon
def upload_image(salon):
    """Multipart form field 'image'. Proxied to the image host."""
    image_file = request.files.get('image')
    if image_file is None:
        raise MissingField('image', 'Image file is required')

    image = images.store_upload(salon, image_file.mimetype, image_file.read())

    return jsonify({
        'success': True,
        'message': 'Image uploaded successfully',
        'image': image.to_dict(),
    })


@images_bp.route('', methods=['GET'])
@requires_salon
def list_images(salon):
    return jsonify({
        'success': True,
        'images': [image.to_dict() for image in images.list_images(salon.id)],
    })


@images_bp.route('/<image_id>', methods=['GET'])
@requires_salon
def get_image(salon, image_id):
    image = images.get_owned_image(image_id, salon.id)
    return jsonify({'success': True, 'image': image.to_dict()})


@images_bp.route('/<image_id>', methods=['DELETE'])
@requires_salon
def delete_image(salon, image_id):
    images.delete_image(image_id, salon.id)
    return jsonify({
        'success': True,
        'message': 'Image deleted successfully',
    })
