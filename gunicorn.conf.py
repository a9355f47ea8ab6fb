"""
Gunicorn configuration for production deployment.
"""
import os

# Server socket
PORT = int(os.environ.get("PORT", 5000))
bind = f"0.0.0.0:{PORT}"
backlog = 2048

# Worker processes
# Every worker runs its own poll loop against the shared store, so read
# load on the store grows linearly with the worker count.
workers = int(os.environ.get("WEB_CONCURRENCY", 1))
worker_class = "gthread"
threads = int(os.environ.get("GUNICORN_THREADS", 4))
timeout = 60
keepalive = 2
graceful_timeout = 30

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "info"

# Process naming
proc_name = "meterwatch"


def worker_int(worker):
    """Called when a worker receives INT or QUIT signal."""
    import logging
    logging.warning(f"Worker {worker.pid} received INT/QUIT signal")


def worker_exit(server, worker):
    """Stop the worker's poll loop on shutdown."""
    app = getattr(worker, "wsgi", None)
    services = getattr(app, "extensions", {}).get("meterwatch") if app else None
    if services is not None:
        services.engine.stop()
