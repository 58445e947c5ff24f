import os

from .config import Config

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = Config.db_config()

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = Config.AUTO_SEED_DB

FACILITY_TIMEZONE = Config.FACILITY_TIMEZONE
DEFAULT_LATE_TOLERANCE_MINUTES = Config.DEFAULT_LATE_TOLERANCE_MINUTES
RECONCILIATION_WORKERS = Config.RECONCILIATION_WORKERS
SCHEDULE_LOOKUP_TIMEOUT_SECONDS = Config.SCHEDULE_LOOKUP_TIMEOUT_SECONDS
NOTIFICATION_HISTORY_LIMIT = Config.NOTIFICATION_HISTORY_LIMIT

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
