import os

from .config import Config

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = Config.db_config()

DEBUG = False

AUTO_INIT_DB = Config.AUTO_INIT_DB
AUTO_SEED_DB = Config.AUTO_SEED_DB

FACILITY_TIMEZONE = Config.FACILITY_TIMEZONE
DEFAULT_LATE_TOLERANCE_MINUTES = Config.DEFAULT_LATE_TOLERANCE_MINUTES
RECONCILIATION_WORKERS = Config.RECONCILIATION_WORKERS
SCHEDULE_LOOKUP_TIMEOUT_SECONDS = Config.SCHEDULE_LOOKUP_TIMEOUT_SECONDS
NOTIFICATION_HISTORY_LIMIT = Config.NOTIFICATION_HISTORY_LIMIT

LOG_LEVEL = Config.LOG_LEVEL
