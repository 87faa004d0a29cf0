"""
Health Monitoring Blueprint

Liveness and monitoring endpoints for load balancers and Prometheus.

Endpoint Implementation:
- /: Service banner
- /health: Service status with Redis connectivity and deployment runtime
- /metrics: Prometheus metrics in text exposition format

The service degrades to its in-memory cache when Redis is down, so
``/health`` reports ``redisStatus: "fallback"`` but stays healthy.
"""

import time
from datetime import datetime, timezone

import structlog
from flask import Blueprint, Flask, current_app, jsonify, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from form_validator.monitoring import monitor_endpoint_performance

logger = structlog.get_logger(__name__)

health_bp = Blueprint('health', __name__)


@health_bp.route('/', methods=['GET'])
def index():
    """Service banner."""
    return jsonify({'message': 'Service is running!'}), 200


@health_bp.route('/health', methods=['GET'])
@monitor_endpoint_performance
def basic_health():
    """
    Basic application health endpoint for load balancer integration.

    Returns:
        JSON response ``{status, timestamp, redisStatus, runtime}`` with HTTP 200
    """
    cache = current_app.extensions['form_validator'].cache
    redis_status = 'connected' if cache.check_connection() else 'fallback'

    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'redisStatus': redis_status,
        'runtime': current_app.config.get('RUNTIME', 'python'),
    }), 200


@health_bp.route('/metrics', methods=['GET'])
def prometheus_metrics():
    """
    Prometheus metrics endpoint for monitoring integration.

    Returns:
        Prometheus metrics in text format
    """
    start_time = time.time()
    metrics_data = generate_latest(REGISTRY)

    logger.debug(
        "Prometheus metrics generated",
        generation_time_ms=round((time.time() - start_time) * 1000, 2),
        metrics_size_bytes=len(metrics_data)
    )

    response = Response(metrics_data, mimetype=CONTENT_TYPE_LATEST)
    response.headers['Cache-Control'] = 'no-cache'
    return response


def init_health_blueprint(app: Flask) -> None:
    """
    Register the health monitoring Blueprint.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(health_bp)
    logger.info(
        "Health monitoring Blueprint initialized",
        blueprint_name='health',
        endpoints=['/', 'health', 'metrics']
    )


__all__ = ['health_bp', 'init_health_blueprint']
