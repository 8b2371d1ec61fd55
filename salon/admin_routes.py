"""
salon/admin_routes.py

Admin back-office for salons.

Endpoints (admin only: 401 anonymous, 403 non-admin):
    GET    /api/salons - List salons
    POST   /api/salons - Create salon
    GET    /api/salons/<id> - Salon details
    PATCH  /api/salons/<id> - Partial update (credits via ledger)
    DELETE /api/salons/<id> - Delete salon and its data
    POST   /api/salons/<id>/credits - Grant credits
    GET    /api/salons/<id>/credits/history - Ledger entries

Version History:
    2025-11-04: Initial implementation
    2025-11-12: Credit grant and history endpoints
"""

from flask import Blueprint, request, jsonify
from flask_login import current_user

from audit_log import audit, AuditEvent
from salon.decorators import requires_admin
from salon.errors import ValidationError
from salon.models import CreditReason
from salon import ledger, salons


admin_bp = Blueprint('admin_bp', __name__, url_prefix='/api/salons')

UPDATABLE_FIELDS = ('name', 'slug', 'status', 'type', 'services', 'credits')


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@admin_bp.route('', methods=['GET'])
@requires_admin
def list_salons():
    return jsonify({
        'success': True,
        'salons': [salon.to_dict() for salon in salons.list_salons()],
    })


@admin_bp.route('', methods=['POST'])
@requires_admin
def create_salon():
    """
    Request:
        {
            "name": "Downtown Cuts",
            "slug": "downtown-cuts",
            "status": "active",
            "type": "barbershop",
            "services": "male",
            "credits": 20
        }
    """
    data = json_body()

    required = ('name', 'slug', 'status', 'type', 'services')
    if any(not data.get(field) for field in required):
        raise ValidationError('Missing required fields')

    salon = salons.create_salon(
        name=data['name'],
        slug=data['slug'],
        status=data['status'],
        salon_type=data['type'],
        services=data['services'],
        credits=data.get('credits', 0),
        created_by=current_user.id,
    )

    audit.log_request_event(
        AuditEvent.ADMIN_SALON_CREATED,
        salon_id=salon.id,
        user_id=current_user.id,
        details={'slug': salon.slug, 'amount': salon.credits},
    )

    return jsonify({
        'success': True,
        'message': 'Salon created successfully',
        'salon': salon.to_dict(),
    }), 201


@admin_bp.route('/<salon_id>', methods=['GET'])
@requires_admin
def get_salon(salon_id):
    salon = salons.get_salon(salon_id)
    return jsonify({'success': True, 'salon': salon.to_dict()})


@admin_bp.route('/<salon_id>', methods=['PATCH'])
@requires_admin
def update_salon(salon_id):
    data = json_body()
    updates = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}

    salon = salons.update_salon(salon_id, updates, admin_user_id=current_user.id)

    audit.log_request_event(
        AuditEvent.ADMIN_SALON_UPDATED,
        salon_id=salon.id,
        user_id=current_user.id,
        details={'fields': sorted(updates)},
    )
    if 'credits' in updates:
        audit.log_request_event(
            AuditEvent.CREDITS_ADJUSTED,
            salon_id=salon.id,
            user_id=current_user.id,
            details={'balance_after': salon.credits},
        )

    return jsonify({
        'success': True,
        'message': 'Salon updated successfully',
        'salon': salon.to_dict(),
    })


@admin_bp.route('/<salon_id>', methods=['DELETE'])
@requires_admin
def delete_salon(salon_id):
    salons.delete_salon(salon_id)

    audit.log_request_event(
        AuditEvent.ADMIN_SALON_DELETED,
        salon_id=salon_id,
        user_id=current_user.id,
    )

    return jsonify({
        'success': True,
        'message': 'Salon deleted successfully',
    })


@admin_bp.route('/<salon_id>/credits', methods=['POST'])
@requires_admin
def grant(salon_id):
    """
    Request:
        {"amount": 20, "notes": "Promo"}

    Response:
        {"success": true, "credits": 70}
    """
    data = json_body()
    salons.get_salon(salon_id)

    balance = ledger.grant_credits(
        salon_id,
        data.get('amount'),
        reason=CreditReason.ADMIN_GRANT,
        notes=data.get('notes'),
        created_by=current_user.id,
    )

    audit.log_request_event(
        AuditEvent.CREDITS_GRANTED,
        salon_id=salon_id,
        user_id=current_user.id,
        details={'amount': data.get('amount'), 'balance_after': balance},
    )

    return jsonify({'success': True, 'credits': balance})


@admin_bp.route('/<salon_id>/credits/history', methods=['GET'])
@requires_admin
def credit_history(salon_id):
    salons.get_salon(salon_id)

    limit = request.args.get('limit', 50, type=int)
    offset = request.args.get('offset', 0, type=int)
    entries = ledger.get_salon_history(salon_id, limit=max(1, min(limit, 200)), offset=max(0, offset))

    return jsonify({
        'success': True,
        'history': [entry.to_dict() for entry in entries],
    })
