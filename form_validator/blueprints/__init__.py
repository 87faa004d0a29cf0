"""
Flask Blueprints Package

Blueprint Organization:
- Validate Blueprint (/api/validate): authenticated, rate limited form validation
- Health Blueprint (/, /health, /metrics): service banner, health and Prometheus metrics
"""

from .health import health_bp, init_health_blueprint
from .validate import internal_error_response, validate_bp

__all__ = [
    'health_bp',
    'init_health_blueprint',
    'internal_error_response',
    'validate_bp',
]
