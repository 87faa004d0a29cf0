"""
Form Validation Service
=======================

Flask service that validates submitted form data against a fixed signup schema
or against rules inferred from field names and supplied by the caller.

Package Structure:
- ``form_validator.app``: application factory (``create_app``)
- ``form_validator.blueprints``: HTTP surface (``/api/validate``, ``/health``, ``/metrics``)
- ``form_validator.validation``: field inference, schemas, rule engine and orchestrator
- ``form_validator.security``: bearer token authentication and rate limiting
- ``form_validator.cache``: Redis client with an in-memory fallback store
- ``form_validator.monitoring``: Prometheus collectors
"""

# Package metadata and version information
__version__ = "2.2.2"
__title__ = "Form Validator"
__description__ = "Form validation HTTP service with dynamic field rules"

PACKAGE_NAME = "form_validator"
