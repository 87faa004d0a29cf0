"""
Gunicorn WSGI Server Configuration

Production Gunicorn configuration for the form validation service.

Usage:
    gunicorn --config gunicorn.conf.py "app:application"
"""

import multiprocessing
import os

# =============================================================================
# SERVER SOCKET CONFIGURATION
# =============================================================================

bind = f"{os.getenv('HOST', '0.0.0.0')}:{os.getenv('PORT', '3001')}"

backlog = 2048

# =============================================================================
# WORKER PROCESS CONFIGURATION
# =============================================================================

# (2 * CPU_COUNT) + 1, between 2 and 8
workers = int(os.getenv("GUNICORN_WORKERS", max(2, min(8, (2 * multiprocessing.cpu_count()) + 1))))

# Threads share the per-worker fallback cache and outbound HTTP client
worker_class = "gthread"
threads = int(os.getenv("GUNICORN_THREADS", 4))

max_requests = 1000
max_requests_jitter = 500

# =============================================================================
# TIMEOUT CONFIGURATION
# =============================================================================

# Domain reputation probes are bounded at 5 seconds
timeout = 30
keepalive = 5
graceful_timeout = 30

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

accesslog = "-"  # stdout for container logging
errorlog = "-"   # stderr for container logging

loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

capture_output = True

# =============================================================================
# PROCESS MANAGEMENT
# =============================================================================

# Each worker builds its own Redis pool and HTTP client
preload_app = False

proc_name = "form-validator"

daemon = False

limit_request_line = 8192
limit_request_fields = 100
limit_request_field_size = 8192

# =============================================================================
# SERVER HOOKS
# =============================================================================


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Gunicorn master process starting with %d workers", workers)


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    worker.log.info("Worker %s ready to handle requests", worker.pid)


def worker_abort(worker):
    """Called when a worker receives the SIGABRT signal."""
    worker.log.error("Worker %s aborted", worker.pid)


if os.getenv("FLASK_ENV") == "development":
    workers = 1
    timeout = 0
    reload = True
    loglevel = "debug"
