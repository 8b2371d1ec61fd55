"""
salon/__init__.py

Tenant module for StylePreview.

Multi-tenant salon accounts with:
    - Email/password authentication
    - Integer credit balance per salon with an audit ledger
    - Style library and client photo storage
    - Admin back-office

Quick Start:
    from salon import init_salon, register_blueprints

    app = Flask(__name__)
    init_salon(app)
    register_blueprints(app)

Version History:
    2025-11-04: Initial implementation
"""

from salon.db import init_db, get_db, create_all_tables, drop_all_tables, check_connection
from salon.auth import init_auth, current_principal, Principal
from salon.routes import auth_bp, salon_bp, images_bp
from salon.admin_routes import admin_bp
from salon.ledger import (
    get_balance, deduct_credits, refund_credits,
    grant_credits, set_balance, get_salon_history,
)
from salon.decorators import requires_auth, requires_admin, requires_salon
from salon.config import CREDIT_COSTS, SIGNUP_BONUS_CREDITS, get_credit_cost


def init_salon(app):
    """
    Initialize the tenant system for a Flask app.

    This initializes:
        - Database connection (tables created if missing)
        - Flask-Login authentication
        - Session cleanup on request teardown
    """
    init_db(app)
    init_auth(app)
    print("[Salon] Tenant system initialized")


def register_blueprints(app):
    for blueprint in (auth_bp, salon_bp, images_bp, admin_bp):
        app.register_blueprint(blueprint)


__all__ = [
    # Initialization
    'init_salon',
    'register_blueprints',
    'init_db',
    'init_auth',
    'create_all_tables',
    'drop_all_tables',
    'check_connection',

    # Database
    'get_db',

    # Principal
    'current_principal',
    'Principal',

    # Routes
    'auth_bp',
    'salon_bp',
    'images_bp',
    'admin_bp',

    # Ledger operations
    'get_balance',
    'deduct_credits',
    'refund_credits',
    'grant_credits',
    'set_balance',
    'get_salon_history',

    # Decorators
    'requires_auth',
    'requires_admin',
    'requires_salon',

    # Config
    'CREDIT_COSTS',
    'SIGNUP_BONUS_CREDITS',
    'get_credit_cost',
]
