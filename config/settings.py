"""
Core Flask Application Configuration Module

This module provides the central configuration infrastructure for the form validation
service, implementing environment-specific configuration classes on top of
python-dotenv environment variable management.

Key Features:
- python-dotenv 1.0+ environment variable management with typed getters
- Shared-secret bearer token configuration for the validation endpoint
- Redis connection settings with transparent in-memory fallback
- Sliding-window rate limiting and domain reputation check settings
- Environment-specific configuration inheritance (development, production, testing)

Dependencies:
- python-dotenv 1.0+ for environment variable management
- Flask 3.0+ for web framework configuration
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv, find_dotenv

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Custom exception for configuration validation errors."""
    pass


class EnvironmentManager:
    """
    Environment variable management using python-dotenv with typed access.

    Values already present in the process environment always win over the
    values found in the ``.env`` file.
    """

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize environment manager and load the ``.env`` file if present.

        Args:
            env_file: Optional path to .env file, defaults to auto-discovery
        """
        self.env_file = env_file or find_dotenv(usecwd=True)
        self.logger = logging.getLogger(f"{__name__}.EnvironmentManager")
        self._load_environment_variables()
        self._validate_environment_file_security()

    def _load_environment_variables(self) -> None:
        """
        Load environment variables from .env file.

        Raises:
            ConfigurationError: When environment loading fails
        """
        if not self.env_file:
            return

        try:
            load_dotenv(self.env_file, override=False)
            self.logger.debug("Environment variables loaded from %s", self.env_file)
        except OSError as e:
            error_msg = f"Failed to load environment variables: {str(e)}"
            self.logger.error(error_msg)
            raise ConfigurationError(error_msg)

    def _validate_environment_file_security(self) -> None:
        """Warn when the .env file holding the auth token is world readable."""
        if not self.env_file or not os.path.exists(self.env_file):
            return

        if os.name == 'posix':
            try:
                file_mode = oct(Path(self.env_file).stat().st_mode)[-3:]
                if file_mode not in ['600', '640', '644']:
                    self.logger.warning(
                        "Environment file permissions (%s) may be too permissive. "
                        "Recommended: 600 for production security.",
                        file_mode
                    )
            except OSError as e:
                self.logger.warning("Could not check environment file permissions: %s", e)

    @staticmethod
    def _convert(value: str, var_type: type) -> Any:
        if var_type == bool:
            return value.lower() in ('true', '1', 'yes', 'on')
        if var_type == list:
            return [item.strip() for item in value.split(',') if item.strip()]
        return var_type(value)

    def get_required_env(self, key: str, var_type: type = str) -> Any:
        """
        Get required environment variable with type validation.

        Args:
            key: Environment variable name
            var_type: Expected variable type for validation

        Returns:
            Validated environment variable value

        Raises:
            ConfigurationError: When required variable is missing or invalid
        """
        value = os.getenv(key)
        if value is None:
            raise ConfigurationError(f"Required environment variable '{key}' not found")

        try:
            return self._convert(value, var_type)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Environment variable '{key}' has invalid type: {str(e)}")

    def get_optional_env(self, key: str, default: Any = None, var_type: type = str) -> Any:
        """
        Get optional environment variable with default value and type validation.

        Args:
            key: Environment variable name
            default: Default value if variable is not set
            var_type: Expected variable type for validation

        Returns:
            Environment variable value or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return self._convert(value, var_type)
        except (ValueError, TypeError):
            self.logger.warning("Invalid type for '%s', using default: %s", key, default)
            return default


class BaseConfig:
    """
    Base configuration class shared by every environment.

    Attributes are upper-case so the instance can be handed to
    ``app.config.from_object``.
    """

    def __init__(self, env_manager: Optional[EnvironmentManager] = None):
        """Initialize base configuration with environment manager."""
        self.env_manager = env_manager or EnvironmentManager()
        self._configure_base_settings()
        self._configure_security_settings()
        self._configure_cache_settings()
        self._configure_rate_limit_settings()
        self._configure_domain_check_settings()
        self._configure_logging_settings()
        self._validate_configuration()

    def _configure_base_settings(self) -> None:
        """Configure core Flask application settings."""
        self.FLASK_ENV = self.env_manager.get_optional_env('FLASK_ENV', 'production')
        self.DEBUG = self.env_manager.get_optional_env('FLASK_DEBUG', False, bool)
        self.TESTING = False

        self.APP_NAME = self.env_manager.get_optional_env('APP_NAME', 'form-validator')
        self.APP_VERSION = self.env_manager.get_optional_env('APP_VERSION', '2.2.2')

        # Deployment runtime reported by /health (e.g. "node", "vercel", "docker")
        self.RUNTIME = self.env_manager.get_optional_env('RUNTIME', 'python')

        self.HOST = self.env_manager.get_optional_env('HOST', '0.0.0.0')
        self.PORT = self.env_manager.get_optional_env('PORT', 3001, int)

        self.MAX_CONTENT_LENGTH = self.env_manager.get_optional_env(
            'MAX_CONTENT_LENGTH', 1024 * 1024, int
        )

    def _configure_security_settings(self) -> None:
        """Configure the shared-secret bearer token and proxy/CORS handling."""
        self.AUTH_TOKEN = self.env_manager.get_optional_env('AUTH_TOKEN')
        self.CORS_ORIGINS: List[str] = self.env_manager.get_optional_env(
            'CORS_ORIGINS', ['*'], list
        )
        # Trust X-Forwarded-For so rate limiting keys on the real client address
        self.PROXY_FIX_ENABLED = self.env_manager.get_optional_env('PROXY_FIX_ENABLED', False, bool)
        self.PROXY_FIX_X_FOR = self.env_manager.get_optional_env('PROXY_FIX_X_FOR', 1, int)

    def _configure_cache_settings(self) -> None:
        """Configure Redis connection settings."""
        self.REDIS_URL = self.env_manager.get_optional_env('REDIS_URL')
        self.REDIS_CONNECTION_KWARGS: Dict[str, Any] = {
            'socket_timeout': self.env_manager.get_optional_env('REDIS_SOCKET_TIMEOUT', 2.0, float),
            'socket_connect_timeout': self.env_manager.get_optional_env(
                'REDIS_CONNECT_TIMEOUT', 10.0, float
            ),
            'health_check_interval': 30,
        }
        self.FALLBACK_CACHE_CLEANUP_THRESHOLD = self.env_manager.get_optional_env(
            'FALLBACK_CACHE_CLEANUP_THRESHOLD', 100, int
        )
        self.REDIS_RECONNECT_INTERVAL = self.env_manager.get_optional_env(
            'REDIS_RECONNECT_INTERVAL', 5.0, float
        )

    def _configure_rate_limit_settings(self) -> None:
        """Configure the sliding-window rate limiter."""
        self.RATE_LIMIT_ENABLED = self.env_manager.get_optional_env('RATE_LIMIT_ENABLED', True, bool)
        self.RATE_LIMIT_MAX_REQUESTS = self.env_manager.get_optional_env(
            'RATE_LIMIT_MAX_REQUESTS', 100, int
        )
        self.RATE_LIMIT_WINDOW_SECONDS = self.env_manager.get_optional_env(
            'RATE_LIMIT_WINDOW_SECONDS', 60, int
        )

    def _configure_domain_check_settings(self) -> None:
        """Configure the email domain reputation oracle."""
        self.DOMAIN_CHECK_ENABLED = self.env_manager.get_optional_env('DOMAIN_CHECK_ENABLED', True, bool)
        self.DOMAIN_CHECK_TIMEOUT = self.env_manager.get_optional_env('DOMAIN_CHECK_TIMEOUT', 5.0, float)
        self.DOMAIN_CACHE_TTL = self.env_manager.get_optional_env('DOMAIN_CACHE_TTL', 86400, int)

    def _configure_logging_settings(self) -> None:
        """Configure structured logging output."""
        self.LOG_LEVEL = self.env_manager.get_optional_env('LOG_LEVEL', 'INFO')
        self.LOG_FORMAT = self.env_manager.get_optional_env('LOG_FORMAT', 'json')

    def _validate_configuration(self) -> None:
        """
        Validate cross-setting constraints.

        Raises:
            ConfigurationError: When a setting is out of range
        """
        if self.RATE_LIMIT_MAX_REQUESTS < 1:
            raise ConfigurationError("RATE_LIMIT_MAX_REQUESTS must be at least 1")
        if self.RATE_LIMIT_WINDOW_SECONDS < 1:
            raise ConfigurationError("RATE_LIMIT_WINDOW_SECONDS must be at least 1")
        if self.DOMAIN_CHECK_TIMEOUT <= 0:
            raise ConfigurationError("DOMAIN_CHECK_TIMEOUT must be positive")
        if self.LOG_FORMAT.lower() not in ('json', 'console'):
            raise ConfigurationError("LOG_FORMAT must be 'json' or 'console'")

    def to_dict(self) -> Dict[str, Any]:
        """Return the upper-case settings, masking the auth token."""
        settings = {key: value for key, value in vars(self).items() if key.isupper()}
        if settings.get('AUTH_TOKEN'):
            settings['AUTH_TOKEN'] = '***'
        return settings


class DevelopmentConfig(BaseConfig):
    """Development environment configuration with debug settings."""

    def __init__(self, env_manager: Optional[EnvironmentManager] = None):
        super().__init__(env_manager)
        self.DEBUG = True
        self.LOG_LEVEL = 'DEBUG'
        self.LOG_FORMAT = self.env_manager.get_optional_env('LOG_FORMAT', 'console')
        logger.info("Development configuration loaded with debug settings")


class ProductionConfig(BaseConfig):
    """
    Production environment configuration.

    The validation endpoint is useless without a shared secret, so a missing
    ``AUTH_TOKEN`` aborts startup rather than locking every caller out.
    """

    def __init__(self, env_manager: Optional[EnvironmentManager] = None):
        super().__init__(env_manager)
        self.DEBUG = False
        self._validate_production_requirements()

    def _validate_production_requirements(self) -> None:
        """Validate production-specific requirements."""
        required_production_vars = ['AUTH_TOKEN']

        missing_vars = [var for var in required_production_vars if not getattr(self, var, None)]
        if missing_vars:
            raise ConfigurationError(
                f"Production deployment requires these environment variables: {', '.join(missing_vars)}"
            )


class TestingConfig(BaseConfig):
    """
    Testing environment configuration for unit and integration tests.

    Redis is disabled so every test runs against the in-process fallback store,
    and outbound domain checks are expected to be replaced by a stub oracle.
    """

    def __init__(self, env_manager: Optional[EnvironmentManager] = None):
        super().__init__(env_manager)
        self.TESTING = True
        self.DEBUG = True
        self.AUTH_TOKEN = 'test-auth-token'
        self.REDIS_URL = None
        self.LOG_LEVEL = 'WARNING'
        self.LOG_FORMAT = 'console'


def get_config(config_name: Optional[str] = None) -> BaseConfig:
    """
    Configuration factory function to get environment-specific configuration.

    Args:
        config_name: Optional configuration name override

    Returns:
        Environment-specific configuration instance

    Raises:
        ConfigurationError: When invalid configuration name is provided
    """
    config_name = config_name or os.getenv('FLASK_ENV', 'production')

    config_mapping = {
        'development': DevelopmentConfig,
        'production': ProductionConfig,
        'testing': TestingConfig
    }

    config_class = config_mapping.get(config_name.lower())
    if not config_class:
        available_configs = ', '.join(config_mapping.keys())
        raise ConfigurationError(
            f"Invalid configuration name '{config_name}'. "
            f"Available configurations: {available_configs}"
        )

    config_instance = config_class()
    logger.info("Configuration '%s' loaded successfully", config_name)
    return config_instance


__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'ProductionConfig',
    'TestingConfig',
    'get_config',
    'EnvironmentManager',
    'ConfigurationError'
]
