"""
Flask Application Factory for the Form Validation Service

Builds the Flask application, wires the shared components and registers the
HTTP surface.

Key Features:
- Environment-specific configuration through ``config.init_app_config``
- ``ProxyFix`` so rate limiting keys on the real client address behind a proxy
- flask-cors for cross-origin browser submissions
- One ``ServiceComponents`` bundle stored in ``app.extensions['form_validator']``
  (cache, rate limiter, domain reputation checker, validation service)
- JSON error envelopes for unknown routes, wrong methods and unexpected errors
- Request id propagation through ``X-Request-ID``

Usage:
    gunicorn --config gunicorn.conf.py "app:application"

Dependencies:
- Flask 3.x application factory and blueprints
- werkzeug ProxyFix for reverse proxy deployments
- flask-cors for CORS headers
- structlog for structured logging
"""

import time
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from flask import Flask, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import BaseConfig, get_config, init_app_config
from form_validator import __version__
from form_validator.blueprints import init_health_blueprint, internal_error_response, validate_bp
from form_validator.cache import RedisCache, create_cache
from form_validator.monitoring import ERROR_COUNT
from form_validator.security import SlidingWindowRateLimiter
from form_validator.validation import (
    DomainReputationChecker,
    DomainReputationOracle,
    FormValidationService,
    HttpDomainReputationOracle,
)

logger = structlog.get_logger(__name__)

EXTENSION_NAME = 'form_validator'


@dataclass
class ServiceComponents:
    """Shared service components for one application instance."""

    cache: RedisCache
    rate_limiter: SlidingWindowRateLimiter
    domain_checker: DomainReputationChecker
    validation_service: FormValidationService
    domain_oracle: Any

    def close(self) -> None:
        """Release the outbound HTTP client and the Redis connection pool."""
        close_oracle = getattr(self.domain_oracle, 'close', None)
        if callable(close_oracle):
            close_oracle()
        self.cache.close()


class FlaskApplicationFactory:
    """
    Flask application factory for the form validation service.

    Args:
        cache: Pre-built cache, otherwise created from ``REDIS_URL``
        domain_oracle: Domain reputation oracle, otherwise the HTTPS oracle
    """

    def __init__(self, cache: Optional[RedisCache] = None,
                 domain_oracle: Optional[DomainReputationOracle] = None):
        self.cache = cache
        self.domain_oracle = domain_oracle

    def create_application(self, config_name: Optional[str] = None,
                           config: Optional[BaseConfig] = None) -> Flask:
        """
        Create and configure the Flask application.

        Args:
            config_name: Configuration environment name (development, testing, production)
            config: Configuration instance, takes precedence over ``config_name``

        Returns:
            Flask: Configured application instance
        """
        creation_start_time = time.time()

        app = Flask(__name__.split('.')[0])
        settings = init_app_config(app, config or get_config(config_name))

        self._configure_reverse_proxy(app)
        self._initialize_flask_extensions(app)
        components = self._initialize_components(app)
        self._register_application_blueprints(app)
        self._configure_error_handlers(app)
        self._configure_middleware_pipeline(app)

        logger.info(
            "Flask application created",
            app_name=settings.APP_NAME,
            version=__version__,
            environment=settings.FLASK_ENV,
            config_class=settings.__class__.__name__,
            redis_connected=components.cache.is_connected(),
            rate_limit_enabled=components.rate_limiter.enabled,
            domain_check_enabled=components.domain_checker.enabled,
            creation_time_ms=round((time.time() - creation_start_time) * 1000, 2),
        )
        return app

    def _configure_reverse_proxy(self, app: Flask) -> None:
        if app.config.get('PROXY_FIX_ENABLED', False):
            app.wsgi_app = ProxyFix(
                app.wsgi_app,
                x_for=int(app.config.get('PROXY_FIX_X_FOR', 1)),
            )
            logger.info("Reverse proxy configuration applied",
                        x_for=app.config.get('PROXY_FIX_X_FOR', 1))

    def _initialize_flask_extensions(self, app: Flask) -> None:
        CORS(
            app,
            origins=app.config.get('CORS_ORIGINS', ['*']),
            allow_headers=['Content-Type', 'Authorization', 'X-Request-ID'],
            expose_headers=['Retry-After', 'X-Request-ID'],
            methods=['GET', 'POST', 'OPTIONS'],
        )

    def _initialize_components(self, app: Flask) -> ServiceComponents:
        """
        Build the cache, rate limiter and validation service.

        Args:
            app: Flask application instance

        Returns:
            The component bundle registered on the application
        """
        settings = app.config['SETTINGS']

        cache = self.cache or create_cache(settings)
        oracle = self.domain_oracle or HttpDomainReputationOracle(
            timeout=settings.DOMAIN_CHECK_TIMEOUT
        )
        domain_checker = DomainReputationChecker(
            oracle,
            cache,
            ttl=settings.DOMAIN_CACHE_TTL,
            enabled=settings.DOMAIN_CHECK_ENABLED,
        )
        rate_limiter = SlidingWindowRateLimiter(
            cache,
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            enabled=settings.RATE_LIMIT_ENABLED,
        )

        components = ServiceComponents(
            cache=cache,
            rate_limiter=rate_limiter,
            domain_checker=domain_checker,
            validation_service=FormValidationService(domain_checker),
            domain_oracle=oracle,
        )
        app.extensions[EXTENSION_NAME] = components
        return components

    def _register_application_blueprints(self, app: Flask) -> None:
        app.register_blueprint(validate_bp)
        init_health_blueprint(app)
        logger.debug("Blueprints registered", blueprints=list(app.blueprints.keys()))

    def _configure_error_handlers(self, app: Flask) -> None:
        """
        Render errors raised outside the validation blueprint as JSON.

        Args:
            app: Flask application instance
        """
        @app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            """Handle routing and protocol errors (404, 405, 413, ...)."""
            logger.info(
                "HTTP error",
                status_code=error.code,
                error_name=error.name,
                endpoint=request.endpoint,
            )
            response = jsonify({'success': False, 'error': error.name})
            response.status_code = error.code or 500
            if error.code == 405 and getattr(error, 'valid_methods', None):
                response.headers['Allow'] = ', '.join(error.valid_methods)
            return response

        @app.errorhandler(Exception)
        def handle_unexpected_error(error: Exception):
            """Handle unexpected exceptions with full tracebacks in the log."""
            ERROR_COUNT.labels(
                error_type=type(error).__name__,
                endpoint=request.endpoint or 'unknown',
            ).inc()
            logger.exception(
                "Unexpected error",
                error_type=type(error).__name__,
                endpoint=request.endpoint,
            )
            return internal_error_response()

    def _configure_middleware_pipeline(self, app: Flask) -> None:
        @app.before_request
        def assign_request_id():
            """Set up request context for logging."""
            g.request_start_time = time.time()
            g.request_id = request.headers.get('X-Request-ID') or uuid.uuid4().hex

        @app.after_request
        def add_response_headers(response):
            """Echo the request id and log completion."""
            response.headers['X-Request-ID'] = getattr(g, 'request_id', 'unknown')

            if hasattr(g, 'request_start_time'):
                logger.debug(
                    "Request completed",
                    status_code=response.status_code,
                    duration_ms=round((time.time() - g.request_start_time) * 1000, 2),
                )
            return response


def create_app(config_name: Optional[str] = None, config: Optional[BaseConfig] = None,
               cache: Optional[RedisCache] = None,
               domain_oracle: Optional[DomainReputationOracle] = None) -> Flask:
    """
    Create the form validation Flask application.

    Args:
        config_name: Configuration environment name, defaults to ``FLASK_ENV``
        config: Configuration instance overriding ``config_name``
        cache: Pre-built cache (tests inject an in-memory one)
        domain_oracle: Domain reputation oracle (tests inject a stub)

    Returns:
        Flask: Configured application instance
    """
    factory = FlaskApplicationFactory(cache=cache, domain_oracle=domain_oracle)
    return factory.create_application(config_name=config_name, config=config)


def get_components(app: Flask) -> ServiceComponents:
    """Return the component bundle registered on ``app``."""
    return app.extensions[EXTENSION_NAME]


__all__ = ['create_app', 'get_components', 'FlaskApplicationFactory', 'ServiceComponents']
