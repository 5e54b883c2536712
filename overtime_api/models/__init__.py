# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, overtime_request, setting, activity_log

# Explicit class exports for cleaner imports
from .user import User, UserRole, UserSession
from .overtime_request import OvertimeRequest, RequestStatus
from .setting import Setting
from .activity_log import ActivityLog, ActivityType, ActivityStatus

__all__ = [
    "User",
    "UserRole",
    "UserSession",
    "OvertimeRequest",
    "RequestStatus",
    "Setting",
    "ActivityLog",
    "ActivityType",
    "ActivityStatus",
]
