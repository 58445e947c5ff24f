from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, time, timedelta
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from mysql.connector import errorcode
from mysql.connector.errors import Error as MySQLError

from ..common.app_logger import get_logger
from .connection import DatabaseConnection

logger = get_logger("database")

_SECONDS_PER_DAY = 24 * 60 * 60


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True) -> Iterator[Tuple[Any, Any]]:
    """One connection and cursor per unit of work: commit on success, roll back on any error."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
    except Exception:
        conn.close()
        raise
    try:
        yield conn, cur
        conn.commit()
    except Exception as e:
        logger.debug("Rolling back: %s", e)
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    return cur.fetchone() or None


def fetchall(cur) -> List[Dict[str, Any]]:
    return list(cur.fetchall() or [])


def in_clause(values: Sequence[Any]) -> str:
    """``%s`` placeholders for an ``IN (...)`` list; callers must not pass an empty sequence."""
    if not values:
        raise ValueError("IN clause needs at least one value")
    return ", ".join(["%s"] * len(values))


def is_duplicate_key(exc: MySQLError, key: Optional[str] = None) -> bool:
    """True for ER_DUP_ENTRY, optionally only when the named unique key was hit."""
    if getattr(exc, "errno", None) != errorcode.ER_DUP_ENTRY:
        return False
    if key is None:
        return True
    # MySQL 8 reports "for key 'table.key'", 5.7 just "for key 'key'"
    message = getattr(exc, "msg", None) or str(exc)
    return f"'{key}'" in message or f".{key}'" in message


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Coerce a TIME column to ``datetime.time``.

    The C extension hands back ``timedelta``; the pure connector and some
    drivers return ``time`` or an ``HH:MM[:SS]`` string.
    """
    if value is None or isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        minutes, seconds = divmod(int(value.total_seconds()) % _SECONDS_PER_DAY, 60)
        hours, minutes = divmod(minutes, 60)
        return time(hours, minutes, seconds)
    if isinstance(value, (bytes, str)):
        text = value.decode() if isinstance(value, bytes) else value
        for fmt in ("%H:%M:%S", "%H:%M"):
            try:
                return datetime.strptime(text.strip(), fmt).time()
            except ValueError:
                continue
        raise ValueError(f"Invalid MySQL TIME value: {value!r}")
    raise TypeError(f"Unsupported MySQL TIME value type: {type(value).__name__}")
