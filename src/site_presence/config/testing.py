import os

SECRET_KEY = "test-secret"

STORAGE_BACKEND = "memory"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "site_presence_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = False

LOCK_TIMEOUT_SECONDS = 2.0
# Synchronous so tests can read the audit trail right after a request.
AUDIT_ASYNC = False
LOG_LEVEL = "WARNING"
ZONE_REFRESH_SECONDS = None
