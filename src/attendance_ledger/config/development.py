import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_ledger"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

# Counterpart node receiving offline records
SYNC_ENDPOINT = os.getenv("SYNC_ENDPOINT", "http://localhost:5000/api/v1/attendance/sync")
SYNC_TIMEOUT_SECONDS = int(os.getenv("SYNC_TIMEOUT_SECONDS", "30"))
SYNC_BATCH_SIZE = int(os.getenv("SYNC_BATCH_SIZE", "10"))
SYNC_RETRY_DELAY_SECONDS = int(os.getenv("SYNC_RETRY_DELAY_SECONDS", "60"))
SYNC_REQUEUE_ON_FAILURE = bool(int(os.getenv("SYNC_REQUEUE_ON_FAILURE", "0")))

SEED_LOCK_TIMEOUT_SECONDS = int(os.getenv("SEED_LOCK_TIMEOUT_SECONDS", "10"))
