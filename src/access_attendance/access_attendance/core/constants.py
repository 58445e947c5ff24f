"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_LATE_TOLERANCE_MINUTES = 20
DEFAULT_FACILITY_TIMEZONE = "America/Bogota"

DEFAULT_HISTORY_PAGE_SIZE = 20
MAX_HISTORY_PAGE_SIZE = 200

NOTIFICATION_HISTORY_LIMIT = 50
DEFAULT_NOTIFICATION_LIMIT = 20
NOTIFICATION_MAX_AGE_HOURS = 24
NOTIFICATION_RECENT_MINUTES = 60

MAX_VERSION_RETRIES = 3
DEFAULT_RECONCILIATION_WORKERS = 4
DEFAULT_SCHEDULE_LOOKUP_TIMEOUT_SECONDS = 5.0

FORCED_CHECKOUT_NOTE = "Forced check-out"
