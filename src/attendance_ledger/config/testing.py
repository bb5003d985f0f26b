import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_ledger_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

SYNC_ENDPOINT = "http://sync.invalid/api/v1/attendance/sync"
SYNC_TIMEOUT_SECONDS = 1
SYNC_BATCH_SIZE = 10
SYNC_RETRY_DELAY_SECONDS = 60
SYNC_REQUEUE_ON_FAILURE = False

SEED_LOCK_TIMEOUT_SECONDS = 1
