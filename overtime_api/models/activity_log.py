from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from sqlalchemy.sql import func
from overtime_api.database import Base
import enum


class ActivityType(str, enum.Enum):
    CRON_JOB = "cron_job"
    NOTIFICATION_SENT = "notification_sent"
    EMAIL_SENT = "email_sent"
    SYSTEM_EVENT = "system_event"
    DAILY_REMINDER = "daily_reminder"
    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"


class ActivityStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    WARNING = "warning"
    INFO = "info"


class ActivityLog(Base):
    """Append-only audit trail of system events."""
    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True, index=True)
    activity_type = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)
    status = Column(String, index=True, default=ActivityStatus.SUCCESS.value)
    performed_by = Column(String, default="system")
    request_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
