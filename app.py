"""
app.py

Flask application for StylePreview.

Salons upload client photos and generate AI hairstyle previews. Every
generation is paid for with salon credits.

Version History:
    2025-11-19: Compensating refunds on failed generations
                Admin signup disabled unless ALLOW_ADMIN_SIGNUP=true
    2025-11-12: Style library, credit history, generation history
    2025-11-04: Initial implementation
                - Tenant system (salon/) with credit ledger
                - Generation pipeline (generation/) with Gemini/OpenAI/stub providers
                - JSON error contract for every ServiceError
"""

import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from generation import init_generation
from salon import init_salon, register_blueprints, check_connection
from salon.errors import ServiceError

# =============================================================================
# APP FACTORY
# =============================================================================


def create_app(provider=None, refund_on_failure=None) -> Flask:
    """
    Build the application.

    Args:
        provider: AIProvider to use; chosen from credentials when None
        refund_on_failure: Override REFUND_ON_FAILURE for this app
    """
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = 16 * 1024 * 1024  # 16MB max request
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-key-change-in-prod')
    app.json.sort_keys = False

    init_salon(app)
    register_blueprints(app)
    init_generation(app, provider=provider, refund_on_failure=refund_on_failure)

    register_error_handlers(app)

    @app.route('/health')
    def health():
        """Health check endpoint."""
        database_ok = check_connection()
        return jsonify({
            'status': 'healthy' if database_ok else 'degraded',
            'database': database_ok,
            'provider': app.extensions['generation']['provider'].name,
        }), 200 if database_ok else 503

    return app


# =============================================================================
# ERROR HANDLING
# =============================================================================

def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(err):
        if err.status >= 500:
            print(f"[App] {err.code}: {err.message}")
        return jsonify(err.to_dict()), err.status

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify({
            'success': False,
            'error': err.description,
            'code': err.name.upper().replace(' ', '_'),
        }), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err):
        print(f"[App] Unhandled error: {type(err).__name__}: {err}")
        return jsonify({
            'success': False,
            'error': 'Internal server error',
            'code': 'INTERNAL_ERROR',
        }), 500


app = create_app()


# =============================================================================
# MAIN
# =============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    app.run(host='0.0.0.0', port=port, debug=debug)
