"""Gunicorn configuration for photog

  gunicorn -c gunicorn_config.py web:app
"""
import os
import multiprocessing

# Server socket
bind = os.getenv('PHOTOG_BIND', '0.0.0.0:9600')
backlog = 2048

# Worker processes
workers = int(os.getenv('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1))
worker_class = 'sync'
max_requests = 1000
max_requests_jitter = 50
# uploads are capped at MAX_FILE_SIZE_MB, nothing else bounds a request
timeout = 120
keepalive = 2

# Logging
accesslog = '-'
errorlog = '-'
loglevel = os.getenv('LOG_LEVEL', 'info').lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'photog'

# Server mechanics
daemon = False
pidfile = None
tmp_upload_dir = None

# Development vs Production
reload = os.getenv('FLASK_ENV') == 'development'

def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Starting photog server")

def when_ready(server):
    """Called just after the server is started."""
    server.log.info("photog server is ready. Listening on: %s", server.cfg.bind)
