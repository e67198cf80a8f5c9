import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

# "memory" keeps everything in process; "mysql" uses DB_CONFIG.
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "site_presence_db"),
}

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

LOCK_TIMEOUT_SECONDS = float(os.getenv("LOCK_TIMEOUT_SECONDS", "2.0"))
AUDIT_ASYNC = bool(int(os.getenv("AUDIT_ASYNC", "1")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
# Zones written by other instances become visible after at most this long.
ZONE_REFRESH_SECONDS = float(os.getenv("ZONE_REFRESH_SECONDS", "5"))
