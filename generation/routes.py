"""
generation/routes.py

Flask Blueprint for paid generations and generation history.

Endpoints:
    POST /api/generations - Prompt or style-reference generation
    POST /api/generations/style-transfer - Style-reference only (hair salons)
    GET  /api/generations - Salon's generations, newest first
    GET  /api/generations/<id> - One generation

The provider and refund policy are fixed when the app is created and kept
in app.extensions['generation'].

Version History:
    2025-11-04: Initial implementation
    2025-11-19: History endpoints
"""

from flask import Blueprint, current_app, request, jsonify

from audit_log import audit, AuditEvent
from generation.orchestrator import GenerationOrchestrator
from salon.auth import current_principal
from salon.db import get_db
from salon.decorators import requires_salon
from salon.errors import Forbidden, GenerationNotFound
from salon.models import Generation


generation_bp = Blueprint('generation_bp', __name__, url_prefix='/api/generations')


def get_orchestrator() -> GenerationOrchestrator:
    """New orchestrator per request, sharing the app's provider."""
    settings = current_app.extensions['generation']
    return GenerationOrchestrator(
        settings['provider'],
        refund_on_failure=settings['refund_on_failure'],
    )


def _body():
    """Parsed JSON as sent; its shape is checked after the tenant checks."""
    return request.get_json(silent=True)


def _respond(outcome):
    return jsonify({
        'success': True,
        'message': 'Generation completed successfully',
        **outcome.to_dict(),
    })


# =============================================================================
# GENERATION ROUTES
# =============================================================================

@generation_bp.route('', methods=['POST'])
def create_generation():
    """
    Request:
        {
            "inputImageId": "...",
            "prompt": "textured crop with a mid fade",
            "variations": 1
        }
        or {"inputImageId": "...", "hairStyleId": "..."}

    Response:
        {
            "success": true,
            "message": "Generation completed successfully",
            "generation": {...},
            "credits": {"used": 1, "remaining": 49}
        }
    """
    outcome = get_orchestrator().run(current_principal(), _body())
    return _respond(outcome)


@generation_bp.route('/style-transfer', methods=['POST'])
def create_style_transfer():
    """Style-reference generation; prompt is ignored."""
    outcome = get_orchestrator().run(current_principal(), _body(), style_transfer=True)
    return _respond(outcome)


# =============================================================================
# HISTORY ROUTES
# =============================================================================

@generation_bp.route('', methods=['GET'])
@requires_salon
def list_generations(salon):
    limit = request.args.get('limit', 50, type=int)
    generations = get_db().query(Generation).filter(
        Generation.salon_id == salon.id
    ).order_by(
        Generation.created_at.desc()
    ).limit(max(1, min(limit, 200))).all()

    return jsonify({
        'success': True,
        'generations': [g.to_dict() for g in generations],
    })


@generation_bp.route('/<generation_id>', methods=['GET'])
@requires_salon
def get_generation(salon, generation_id):
    generation = get_db().get(Generation, generation_id)
    if generation is None:
        raise GenerationNotFound(generation_id)

    if generation.salon_id != salon.id:
        audit.log_request_event(
            AuditEvent.SECURITY_CROSS_TENANT_ACCESS,
            salon_id=salon.id,
            details={'resource': 'generation', 'generation_id': generation_id},
        )
        raise Forbidden()

    return jsonify({'success': True, 'generation': generation.to_dict()})
