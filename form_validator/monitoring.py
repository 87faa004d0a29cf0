"""
Prometheus Metrics for the Form Validation Service

Module-level prometheus-client collectors shared by the blueprints, the rate
limiter, the cache and the domain reputation checker, plus the
``monitor_endpoint_performance`` decorator used on HTTP handlers.

Dependencies:
- prometheus-client 0.17+ for metrics collection and exposition
- structlog 23.1+ for endpoint performance logging
"""

import time
from functools import wraps

import structlog
from flask import request
from prometheus_client import Counter, Gauge, Histogram

logger = structlog.get_logger(__name__)

# HTTP surface
REQUEST_COUNT = Counter(
    'form_validator_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

REQUEST_DURATION = Histogram(
    'form_validator_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

ACTIVE_REQUESTS = Gauge(
    'form_validator_active_requests',
    'Number of in-flight HTTP requests',
    ['endpoint']
)

ERROR_COUNT = Counter(
    'form_validator_errors_total',
    'Total unhandled errors',
    ['error_type', 'endpoint']
)

# Validation outcomes
VALIDATIONS = Counter(
    'form_validator_validations_total',
    'Validation requests by mode and outcome',
    ['mode', 'outcome']
)

VALIDATION_ERRORS = Counter(
    'form_validator_validation_errors_total',
    'Field errors reported, by check category',
    ['category']
)

# Rate limiting
RATE_LIMIT_DECISIONS = Counter(
    'form_validator_rate_limit_decisions_total',
    'Rate limiter decisions',
    ['decision']
)

# Domain reputation
DOMAIN_CHECKS = Counter(
    'form_validator_domain_checks_total',
    'Email domain reputation checks',
    ['source', 'verdict']
)

# Cache
CACHE_FALLBACKS = Counter(
    'form_validator_cache_fallbacks_total',
    'Cache operations served by the in-memory fallback store',
    ['operation']
)


def monitor_endpoint_performance(func):
    """Decorator to monitor endpoint performance with Prometheus metrics."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        endpoint = request.endpoint or 'unknown'
        method = request.method

        ACTIVE_REQUESTS.labels(endpoint=endpoint).inc()

        try:
            result = func(*args, **kwargs)

            if isinstance(result, tuple):
                status_code = result[1] if len(result) > 1 else 200
            else:
                status_code = getattr(result, 'status_code', 200)

            REQUEST_COUNT.labels(
                method=method,
                endpoint=endpoint,
                status_code=status_code
            ).inc()

            duration = time.time() - start_time
            REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

            logger.info(
                "API endpoint completed",
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                duration_ms=round(duration * 1000, 2)
            )

            return result

        except Exception as e:
            ERROR_COUNT.labels(error_type=type(e).__name__, endpoint=endpoint).inc()
            logger.info(
                "API endpoint raised",
                endpoint=endpoint,
                method=method,
                error_type=type(e).__name__,
                duration_ms=round((time.time() - start_time) * 1000, 2)
            )
            raise

        finally:
            ACTIVE_REQUESTS.labels(endpoint=endpoint).dec()

    return wrapper


__all__ = [
    'REQUEST_COUNT',
    'REQUEST_DURATION',
    'ACTIVE_REQUESTS',
    'ERROR_COUNT',
    'VALIDATIONS',
    'VALIDATION_ERRORS',
    'RATE_LIMIT_DECISIONS',
    'DOMAIN_CHECKS',
    'CACHE_FALLBACKS',
    'monitor_endpoint_performance',
]
