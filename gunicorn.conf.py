import os

wsgi_app = "authcore.wsgi:app"
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:5000")
workers = int(os.getenv("GUNICORN_WORKERS", 4))
worker_class = "sync"
# scrypt derivations per request add up on the reset endpoints
timeout = 60
keepalive = 5

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
