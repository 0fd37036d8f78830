"""
Gunicorn configuration for production deployment.
"""
import multiprocessing
import os

# Server socket
PORT = int(os.environ.get("PORT", 13008))
bind = f"0.0.0.0:{PORT}"
backlog = 2048

# Worker processes
# Requests share no in-process state, so plain threaded workers scale freely
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "gthread"
threads = int(os.environ.get("GUNICORN_THREADS", 4))
timeout = 60
keepalive = 2
graceful_timeout = 30  # Time to wait for workers to finish before killing

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()

# Process naming
proc_name = "kanban"


def worker_int(worker):
    """Called when a worker receives INT or QUIT signal."""
    import logging
    logging.warning(f"Worker {worker.pid} received INT/QUIT signal")
