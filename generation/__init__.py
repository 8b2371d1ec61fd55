"""
generation/__init__.py

Credit-metered hairstyle generation.

Quick Start:
    from generation import init_generation

    app = Flask(__name__)
    init_generation(app)                      # provider from credentials
    init_generation(app, provider=StubProvider())
"""

from typing import Optional

from generation.orchestrator import GenerationOrchestrator, GenerationOutcome, Stage
from generation.providers import AIProvider, create_ai_provider
from generation.routes import generation_bp
from generation.validator import GenerationRequest, validate


def init_generation(app, provider: Optional[AIProvider] = None, refund_on_failure: Optional[bool] = None):
    """Pick the provider once and register the generation blueprint."""
    provider = provider or create_ai_provider()
    app.extensions['generation'] = {
        'provider': provider,
        'refund_on_failure': refund_on_failure,
    }
    app.register_blueprint(generation_bp)
    print(f"[Generation] Provider: {provider.name}")
    return provider


__all__ = [
    'init_generation',
    'GenerationOrchestrator',
    'GenerationOutcome',
    'GenerationRequest',
    'Stage',
    'validate',
    'generation_bp',
]
