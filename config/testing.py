from .config import Config

SECRET_KEY = "test-secret"

DB_CONFIG = Config.db_config()

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
AUTO_SEED_DB = False

FACILITY_TIMEZONE = "America/Bogota"
DEFAULT_LATE_TOLERANCE_MINUTES = 20
RECONCILIATION_WORKERS = 2
SCHEDULE_LOOKUP_TIMEOUT_SECONDS = 1.0
NOTIFICATION_HISTORY_LIMIT = 50

LOG_LEVEL = "WARNING"
