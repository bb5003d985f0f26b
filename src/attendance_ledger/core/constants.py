"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_START_TIME = "08:00"
DEFAULT_END_TIME = "16:00"
DEFAULT_LATE_THRESHOLD_MINUTES = 15

SYNC_BATCH_SIZE = 10
SYNC_TIMEOUT_SECONDS = 30
SYNC_RETRY_DELAY_SECONDS = 60
UNSYNCED_QUERY_LIMIT = 100

SEED_LOCK_TIMEOUT_SECONDS = 10
