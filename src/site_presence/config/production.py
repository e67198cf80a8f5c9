import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "site_presence_db"),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

LOCK_TIMEOUT_SECONDS = float(os.getenv("LOCK_TIMEOUT_SECONDS", "2.0"))
AUDIT_ASYNC = bool(int(os.getenv("AUDIT_ASYNC", "1")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
# Zones written by other instances become visible after at most this long.
ZONE_REFRESH_SECONDS = float(os.getenv("ZONE_REFRESH_SECONDS", "5"))
