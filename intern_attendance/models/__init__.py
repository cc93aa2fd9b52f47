from intern_attendance.models.activity_log import ActivityLog
from intern_attendance.models.attendance import AttendanceRecord, AttendanceStatus
from intern_attendance.models.user import User, UserRole

__all__ = [
    "ActivityLog",
    "AttendanceRecord",
    "AttendanceStatus",
    "User",
    "UserRole",
]
