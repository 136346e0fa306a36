# ============================================
# Habilitations Tracker - Configuration Gunicorn
# Lancement : gunicorn -c gunicorn.conf.py api.index:app
# ============================================
import os
import multiprocessing

# --- Server ---
bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"
workers = int(os.getenv("HABILITATIONS_WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 4)))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000

# --- Timeouts ---
# Un import de plusieurs milliers de lignes reste sous la minute
timeout = 120
graceful_timeout = 30
keepalive = 5

# --- Memory ---
max_requests = 1000
max_requests_jitter = 50

# --- Logging ---
accesslog = os.getenv("HABILITATIONS_ACCESS_LOG", "-")
errorlog = os.getenv("HABILITATIONS_ERROR_LOG", "-")
loglevel = os.getenv("HABILITATIONS_LOG_LEVEL", "info")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)sms'

# --- Process ---
# Chaque worker ouvre ses propres connexions SQLite a la premiere requete
preload_app = False
daemon = False

# --- Security ---
limit_request_line = 8190
limit_request_fields = 100
limit_request_field_size = 8190


# --- Hooks ---
def on_starting(server):
    server.log.info("Habilitations Tracker starting...")


def when_ready(server):
    server.log.info(f"Habilitations Tracker ready with {workers} workers on {bind}")


def worker_exit(server, worker):
    server.log.info(f"Worker {worker.pid} exiting")
