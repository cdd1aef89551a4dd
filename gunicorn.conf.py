import os

# Reverse proxy handles 80/443 + TLS
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")

# Each request fans out one thread per tile, so keep per-worker threads modest
workers = int(os.environ.get("GUNICORN_WORKERS", 2))
threads = int(os.environ.get("GUNICORN_THREADS", 4))

# Artwork downloads have no timeout of their own; gunicorn's is the only deadline
timeout = int(os.environ.get("GUNICORN_TIMEOUT", 60))
graceful_timeout = 30

keepalive = 5

# Logging: stdout/stderr for Docker log collection
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info")

# Worker recycling: large collages allocate big numpy buffers
max_requests = 1000
max_requests_jitter = 50

# Preload app so fonts are parsed once and shared across forked workers
preload_app = True

forwarded_allow_ips = "*"

wsgi_app = "main:app"
