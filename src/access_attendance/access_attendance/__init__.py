"""Access & Attendance package.

Feature modules (access, schedules, attendance, notifications, directory) with a
thin Flask controller layer over service/repository layers. Physical check-ins
are reconciled against each learner's cohort timetable.
"""
