from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Protocol, Sequence

from overtime_api.schemas.activity import ActivityLogRecord, ActivityStat
from overtime_api.schemas.auth import UserRecord
from overtime_api.schemas.request import OvertimeRequestRecord, RequestFilters, RequestStats
from overtime_api.schemas.settings import SettingRecord


class RequestStore(Protocol):
    """Persistence boundary shared by the SQLAlchemy and Supabase backends."""

    backend: str

    # Overtime requests
    def list_requests(self, filters: Optional[RequestFilters] = None) -> Sequence[OvertimeRequestRecord]:
        """Newest first."""

        raise NotImplementedError

    def get_request(self, request_id: int) -> Optional[OvertimeRequestRecord]:
        raise NotImplementedError

    def list_requests_by_employee(self, employee_id: str) -> Sequence[OvertimeRequestRecord]:
        raise NotImplementedError

    def list_pending_requests(self) -> Sequence[OvertimeRequestRecord]:
        """Unresolved requests, oldest first."""

        raise NotImplementedError

    def get_statistics(self, employee_id: Optional[str] = None) -> RequestStats:
        raise NotImplementedError

    def insert_request(self, data: Dict[str, Any]) -> OvertimeRequestRecord:
        raise NotImplementedError

    def approve_request(self, request_id: int, approved_by: str) -> Optional[OvertimeRequestRecord]:
        raise NotImplementedError

    def reject_request(self, request_id: int, rejected_by: str, reason: str) -> Optional[OvertimeRequestRecord]:
        raise NotImplementedError

    def find_duplicates(self, employee_id: str, payroll_date: date) -> Sequence[OvertimeRequestRecord]:
        raise NotImplementedError

    # Settings
    def get_setting(self, key: str) -> Optional[SettingRecord]:
        raise NotImplementedError

    def list_settings(self) -> Sequence[SettingRecord]:
        raise NotImplementedError

    def upsert_setting(self, key: str, value: Any, description: Optional[str] = None) -> SettingRecord:
        raise NotImplementedError

    def delete_setting(self, key: str) -> bool:
        raise NotImplementedError

    # Users and sessions
    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        raise NotImplementedError

    def create_user(self, data: Dict[str, Any]) -> UserRecord:
        raise NotImplementedError

    def update_user(self, email: str, updates: Dict[str, Any]) -> Optional[UserRecord]:
        raise NotImplementedError

    def create_session(self, session_token: str, email: str, expires_at: datetime) -> None:
        raise NotImplementedError

    def get_session_user(self, session_token: str, now: datetime) -> Optional[UserRecord]:
        """User owning an active, unexpired session; None otherwise."""

        raise NotImplementedError

    def deactivate_session(self, session_token: str) -> None:
        raise NotImplementedError

    # Activity log
    def insert_activity(self, data: Dict[str, Any]) -> ActivityLogRecord:
        raise NotImplementedError

    def list_activities(
        self,
        *,
        activity_type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[ActivityLogRecord]:
        raise NotImplementedError

    def activity_statistics(self, since: datetime) -> Sequence[ActivityStat]:
        raise NotImplementedError

    def health_check(self) -> bool:
        raise NotImplementedError


def summarize_requests(rows: Iterable[OvertimeRequestRecord]) -> RequestStats:
    stats = RequestStats()
    for row in rows:
        stats.total += 1
        status = row.status.value
        if status == "pending":
            stats.pending += 1
        elif status == "approved":
            stats.approved += 1
        else:
            stats.rejected += 1
        stats.totalHours += float(row.hours or 0)
    return stats


def tally_activities(rows: Iterable[Dict[str, Any]]) -> Sequence[ActivityStat]:
    counts: Dict[tuple, int] = {}
    for row in rows:
        key = (row.get("activity_type"), row.get("status"))
        counts[key] = counts.get(key, 0) + 1
    return [
        ActivityStat(activity_type=activity_type, status=status, count=count)
        for (activity_type, status), count in sorted(counts.items(), key=lambda item: (item[0][0] or "", item[0][1] or ""))
    ]
