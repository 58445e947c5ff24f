from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .access.mysql_access_repository import MySQLAccessRepository
from .access.repository import AccessRepository
from .access.service import AccessSessionTracker
from .attendance.dispatcher import Dispatcher, InlineDispatcher, ReconciliationDispatcher
from .attendance.factory import AttendanceStrategyFactory
from .attendance.ledger import AttendanceLedger
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.reconciliation import ReconciliationEngine
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import FacilityClock
from .core.constants import (
    DEFAULT_FACILITY_TIMEZONE,
    DEFAULT_LATE_TOLERANCE_MINUTES,
    DEFAULT_RECONCILIATION_WORKERS,
    DEFAULT_SCHEDULE_LOOKUP_TIMEOUT_SECONDS,
    NOTIFICATION_HISTORY_LIMIT,
)
from .database.connection import DBConfig, DatabaseConnection
from .directory.mysql_directory_repository import MySQLDirectoryRepository
from .directory.repository import DirectoryLookup
from .notifications.emitter import NotificationEmitter
from .notifications.sink import RecentNotificationSink
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.repository import ScheduleRepository
from .schedules.service import ScheduleService


@dataclass(frozen=True)
class Container:
    clock: FacilityClock

    access_repo: AccessRepository
    schedules_repo: ScheduleRepository
    attendance_repo: AttendanceRepository
    directory: DirectoryLookup

    ledger: AttendanceLedger
    notification_sink: RecentNotificationSink
    notifier: NotificationEmitter
    engine: ReconciliationEngine
    dispatcher: Dispatcher

    access_tracker: AccessSessionTracker
    schedule_service: ScheduleService
    attendance_service: AttendanceService

    conn: Optional[DatabaseConnection] = None

    def shutdown(self) -> None:
        self.dispatcher.shutdown(wait=True)


def assemble(
    *,
    clock: FacilityClock,
    access_repo: AccessRepository,
    schedules_repo: ScheduleRepository,
    attendance_repo: AttendanceRepository,
    directory: DirectoryLookup,
    sink: Optional[RecentNotificationSink] = None,
    inline: bool = False,
    workers: int = DEFAULT_RECONCILIATION_WORKERS,
    lookup_timeout: Optional[float] = DEFAULT_SCHEDULE_LOOKUP_TIMEOUT_SECONDS,
    default_late_tolerance: int = DEFAULT_LATE_TOLERANCE_MINUTES,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over the given repositories.

    ``inline=True`` reconciles in the request thread (tests, scripts).
    """
    sink = sink or RecentNotificationSink()
    ledger = AttendanceLedger(attendance_repo, clock=clock.now)
    notifier = NotificationEmitter(sink, clock=clock.now)
    engine = ReconciliationEngine(
        directory=directory,
        schedules=schedules_repo,
        ledger=ledger,
        notifier=notifier,
        clock=clock,
        strategy_factory=AttendanceStrategyFactory(),
        lookup_timeout=lookup_timeout,
        lookup_workers=workers,
    )
    dispatcher = InlineDispatcher(engine) if inline else ReconciliationDispatcher(engine, workers=workers)

    return Container(
        clock=clock,
        access_repo=access_repo,
        schedules_repo=schedules_repo,
        attendance_repo=attendance_repo,
        directory=directory,
        ledger=ledger,
        notification_sink=sink,
        notifier=notifier,
        engine=engine,
        dispatcher=dispatcher,
        access_tracker=AccessSessionTracker(access_repo, on_session_opened=dispatcher.on_session_opened),
        schedule_service=ScheduleService(
            schedules_repo,
            directory,
            ledger,
            clock=clock,
            default_late_tolerance=default_late_tolerance,
        ),
        attendance_service=AttendanceService(ledger, schedules_repo, directory, notifier, clock=clock),
        conn=conn,
    )


def build_container(*, db_config: dict, settings: object = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    return assemble(
        clock=FacilityClock.named(str(getattr(settings, "FACILITY_TIMEZONE", DEFAULT_FACILITY_TIMEZONE))),
        access_repo=MySQLAccessRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        directory=MySQLDirectoryRepository(conn),
        sink=RecentNotificationSink(
            history_limit=int(getattr(settings, "NOTIFICATION_HISTORY_LIMIT", NOTIFICATION_HISTORY_LIMIT))
        ),
        workers=int(getattr(settings, "RECONCILIATION_WORKERS", DEFAULT_RECONCILIATION_WORKERS)),
        lookup_timeout=float(
            getattr(settings, "SCHEDULE_LOOKUP_TIMEOUT_SECONDS", DEFAULT_SCHEDULE_LOOKUP_TIMEOUT_SECONDS)
        ),
        default_late_tolerance=int(
            getattr(settings, "DEFAULT_LATE_TOLERANCE_MINUTES", DEFAULT_LATE_TOLERANCE_MINUTES)
        ),
        conn=conn,
    )
