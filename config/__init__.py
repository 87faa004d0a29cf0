"""
Configuration Package Initialization Module

Centralized access to the form validation service configuration: environment
specific configuration classes, python-dotenv environment management and the
structlog logging setup.

Usage Example:
    ```python
    from config import get_config, init_app_config

    config = get_config('production')
    app = Flask(__name__)
    init_app_config(app, config)
    ```
"""

import os
from typing import Optional

from flask import Flask

from .settings import (
    BaseConfig,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config,
    EnvironmentManager,
    ConfigurationError
)
from .logging import (
    LoggingConfiguration,
    LoggingConfigurationError,
    configure_application_logging
)


def init_app_config(app: Flask, config: Optional[BaseConfig] = None) -> BaseConfig:
    """
    Apply configuration to a Flask application and configure logging.

    Args:
        app: Flask application instance
        config: Optional configuration instance, resolved from FLASK_ENV when omitted

    Returns:
        The configuration instance that was applied
    """
    config = config or get_config(os.getenv('FLASK_ENV'))
    app.config.from_object(config)
    app.config['SETTINGS'] = config
    configure_application_logging(config)
    return config


__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'ProductionConfig',
    'TestingConfig',
    'get_config',
    'EnvironmentManager',
    'ConfigurationError',
    'LoggingConfiguration',
    'LoggingConfigurationError',
    'configure_application_logging',
    'init_app_config',
]
