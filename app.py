"""
Form Validation Service WSGI Entry Point

WSGI application module for Gunicorn deployments and the local development
server.

Usage Examples:
    # Production WSGI deployment
    gunicorn --config gunicorn.conf.py "app:application"

    # Development server
    export FLASK_ENV=development
    python app.py --port 3001
"""

import atexit
import os
import sys
from typing import Optional

import structlog
from flask import Flask

from config import ConfigurationError, get_config
from form_validator.app import create_app, get_components

logger = structlog.get_logger(__name__)


class WSGIApplicationManager:
    """
    Lifecycle management for the WSGI application: configuration loading,
    application creation and resource cleanup on interpreter exit.
    """

    def __init__(self) -> None:
        self.app: Optional[Flask] = None
        self.config = None
        self.initialized: bool = False

    def initialize_application(self, config_name: Optional[str] = None) -> Flask:
        """
        Load configuration and create the Flask application.

        Args:
            config_name: Optional configuration environment name override

        Returns:
            Initialized Flask application instance

        Raises:
            RuntimeError: When configuration validation fails
        """
        if self.initialized and self.app:
            return self.app

        try:
            self.config = get_config(config_name)
        except ConfigurationError as e:
            raise RuntimeError(f"Configuration validation failed: {e}") from e

        self.app = create_app(config=self.config)
        atexit.register(self.shutdown)
        self.initialized = True
        return self.app

    def shutdown(self) -> None:
        """Release the cache connection pool and the outbound HTTP client."""
        if self.app is None:
            return
        get_components(self.app).close()
        logger.info("Application resources released")


# Global application manager instance
app_manager = WSGIApplicationManager()

# Primary entry point for Gunicorn
application = app_manager.initialize_application()
app = application


def create_dev_server(host: Optional[str] = None, port: Optional[int] = None,
                      debug: Optional[bool] = None) -> None:
    """
    Run the Flask development server.

    Args:
        host: Host override, defaults to ``HOST``
        port: Port override, defaults to ``PORT``
        debug: Debug override, defaults to ``DEBUG``
    """
    config = app_manager.config
    server_host = host or config.HOST
    server_port = port or config.PORT
    debug_mode = debug if debug is not None else config.DEBUG

    logger.info(
        "Starting development server",
        host=server_host,
        port=server_port,
        debug=debug_mode,
    )
    application.run(host=server_host, port=server_port, debug=debug_mode, threaded=True)


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Form validation service development server')
    parser.add_argument('--host', default=os.getenv('HOST'), help='Server host (default: HOST)')
    parser.add_argument('--port', type=int, default=None, help='Server port (default: PORT)')
    parser.add_argument('--debug', action='store_true', default=None, help='Enable debug mode')
    args = parser.parse_args()

    try:
        create_dev_server(host=args.host, port=args.port, debug=args.debug)
    except KeyboardInterrupt:
        logger.info("Development server stopped by user")
    except OSError as e:
        logger.error("Development server failed", error=str(e))
        sys.exit(1)
