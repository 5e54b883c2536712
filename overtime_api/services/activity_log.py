import logging
import traceback
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from overtime_api.core.exceptions import StorageError
from overtime_api.models.activity_log import ActivityStatus, ActivityType
from overtime_api.schemas.activity import ActivityLogRecord, ActivityStat
from overtime_api.storage.base import RequestStore

logger = logging.getLogger(__name__)


class ActivityLogService:
    """System audit trail for cron runs, notifications and request events."""

    def __init__(self, store: RequestStore):
        self.store = store

    def log(
        self,
        activity_type: ActivityType,
        description: str,
        details: Optional[Dict[str, Any]] = None,
        status: ActivityStatus = ActivityStatus.SUCCESS,
        performed_by: str = "system",
        request_id: Optional[int] = None
    ) -> Optional[ActivityLogRecord]:
        """Append an entry. Returns None when the write fails; logging never breaks the caller."""
        try:
            entry = self.store.insert_activity({
                "activity_type": activity_type.value,
                "description": description,
                "details": details,
                "status": status.value,
                "performed_by": performed_by,
                "request_id": request_id,
            })
        except StorageError as e:
            logger.error(f"Failed to log activity {activity_type.value}: {e.message}")
            return None

        logger.info(
            "Activity logged",
            extra={"activity_type": activity_type.value, "status": status.value, "description": description[:100]}
        )
        return entry

    def log_cron_success(self, job_name: str, details: Optional[Dict[str, Any]] = None):
        return self.log(
            ActivityType.CRON_JOB,
            f'Cron job "{job_name}" executed successfully',
            details=details or {},
            performed_by="system:cron",
        )

    def log_cron_failure(self, job_name: str, error: Exception, details: Optional[Dict[str, Any]] = None):
        return self.log(
            ActivityType.CRON_JOB,
            f'Cron job "{job_name}" failed: {error}',
            details={
                **(details or {}),
                "error": str(error),
                "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            },
            status=ActivityStatus.FAILED,
            performed_by="system:cron",
        )

    def log_notification_sent(
        self,
        recipients: List[str],
        subject: str,
        request_id: Optional[int] = None,
        notification_type: str = "general",
        status: ActivityStatus = ActivityStatus.SUCCESS
    ):
        return self.log(
            ActivityType.NOTIFICATION_SENT,
            f'Notification sent to {len(recipients)} recipient(s): "{subject}"',
            details={
                "recipients": recipients,
                "recipientCount": len(recipients),
                "subject": subject,
                "notificationType": notification_type,
            },
            status=status,
            performed_by="system:notification",
            request_id=request_id,
        )

    def log_daily_reminder(self, approvers: List[str], pending_count: int, success: bool = True):
        return self.log(
            ActivityType.DAILY_REMINDER,
            f"Daily reminder sent to {len(approvers)} approver(s) for {pending_count} pending request(s)",
            details={"approvers": approvers, "approverCount": len(approvers), "pendingRequestCount": pending_count},
            status=ActivityStatus.SUCCESS if success else ActivityStatus.FAILED,
            performed_by="system:daily-reminder",
        )

    def log_request_submitted(self, employee_email: str, approvers: List[str], request_id: int):
        return self.log(
            ActivityType.REQUEST_SUBMITTED,
            f"Request #{request_id} submitted by {employee_email}, notified {len(approvers)} approver(s)",
            details={"employee": employee_email, "approvers": approvers, "approverCount": len(approvers)},
            status=ActivityStatus.INFO,
            performed_by=employee_email,
            request_id=request_id,
        )

    def log_request_decision(self, request_id: int, decided_by: str, approved: bool, details: Optional[Dict[str, Any]] = None):
        verb = "approved" if approved else "rejected"
        return self.log(
            ActivityType.REQUEST_APPROVED if approved else ActivityType.REQUEST_REJECTED,
            f"Request #{request_id} {verb} by {decided_by}",
            details=details,
            status=ActivityStatus.SUCCESS,
            performed_by=decided_by,
            request_id=request_id,
        )

    def get_recent_activities(
        self,
        activity_type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Sequence[ActivityLogRecord]:
        return self.store.list_activities(activity_type=activity_type, status=status, limit=limit, offset=offset)

    def get_statistics(self, days: int = 7) -> Sequence[ActivityStat]:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        return self.store.activity_statistics(since)
