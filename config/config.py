import os


class Config:
    """Settings shared by every environment; environment modules override."""

    SECRET_KEY = os.environ.get("SECRET_KEY") or "access-attendance-secret"

    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", "3306"))
    DB_NAME = os.environ.get("DB_NAME", "access_attendance")
    DB_CONNECT_TIMEOUT = int(os.environ.get("DB_CONNECT_TIMEOUT", "10"))

    AUTO_INIT_DB = bool(int(os.environ.get("AUTO_INIT_DB", "0")))
    AUTO_SEED_DB = bool(int(os.environ.get("AUTO_SEED_DB", "0")))

    # Every occurrence date and weekday is computed in this zone
    FACILITY_TIMEZONE = os.environ.get("FACILITY_TIMEZONE", "America/Bogota")
    DEFAULT_LATE_TOLERANCE_MINUTES = int(os.environ.get("DEFAULT_LATE_TOLERANCE_MINUTES", "20"))

    RECONCILIATION_WORKERS = int(os.environ.get("RECONCILIATION_WORKERS", "4"))
    SCHEDULE_LOOKUP_TIMEOUT_SECONDS = float(os.environ.get("SCHEDULE_LOOKUP_TIMEOUT_SECONDS", "5"))
    NOTIFICATION_HISTORY_LIMIT = int(os.environ.get("NOTIFICATION_HISTORY_LIMIT", "50"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    @classmethod
    def db_config(cls) -> dict:
        return {
            "host": cls.DB_HOST,
            "port": cls.DB_PORT,
            "user": cls.DB_USER,
            "password": cls.DB_PASSWORD,
            "database": cls.DB_NAME,
            "connection_timeout": cls.DB_CONNECT_TIMEOUT,
        }
