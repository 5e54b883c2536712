"""
Hosted backend: the same tables reached through Supabase's REST API.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from postgrest.exceptions import APIError
from supabase import Client, create_client

from overtime_api.core.config import settings
from overtime_api.core.exceptions import StorageError
from overtime_api.models.overtime_request import RequestStatus
from overtime_api.schemas.activity import ActivityLogRecord, ActivityStat
from overtime_api.schemas.auth import UserRecord
from overtime_api.schemas.request import OvertimeRequestRecord, RequestFilters, RequestStats
from overtime_api.schemas.settings import SettingRecord
from overtime_api.storage.base import RequestStore, summarize_requests, tally_activities

logger = logging.getLogger(__name__)

REQUESTS_TABLE = "Overtime-Requests"
SETTINGS_TABLE = "settings"
USERS_TABLE = "users"
SESSIONS_TABLE = "sessions"
ACTIVITY_TABLE = "activity_log"


def create_supabase_client() -> Client:
    if not settings.storage.supabase_url or not settings.storage.supabase_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be defined when DB_TYPE=supabase")
    client = create_client(settings.storage.supabase_url, settings.storage.supabase_key)
    logger.info("Supabase client initialized")
    return client


def _jsonable(data: Dict[str, Any]) -> Dict[str, Any]:
    payload = {}
    for key, value in data.items():
        if isinstance(value, (date, datetime)):
            payload[key] = value.isoformat()
        elif hasattr(value, "value"):
            # enums
            payload[key] = value.value
        else:
            payload[key] = value
    return payload


class SupabaseStore(RequestStore):
    backend = "supabase"

    def __init__(self, client: Client):
        self.client = client

    def _execute(self, query, operation: str) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except APIError as e:
            logger.error(f"Supabase error during {operation}: {e}", exc_info=True)
            raise StorageError(f"Failed to {operation}") from e
        return response.data or []

    # -------- Overtime requests --------
    def list_requests(self, filters: Optional[RequestFilters] = None) -> Sequence[OvertimeRequestRecord]:
        filters = filters or RequestFilters()
        query = self.client.table(REQUESTS_TABLE).select("*").order("created_at", desc=True)

        if filters.status == RequestStatus.PENDING:
            query = query.is_("approved_by", "null")
        elif filters.status == RequestStatus.APPROVED:
            query = query.not_.is_("approved_by", "null").is_("reject_reason", "null")
        elif filters.status == RequestStatus.REJECTED:
            query = query.not_.is_("reject_reason", "null")

        if filters.date_from:
            query = query.gte("payroll_date", filters.date_from.isoformat())
        if filters.date_to:
            query = query.lte("payroll_date", filters.date_to.isoformat())
        if filters.employee_id:
            query = query.eq("frappe_employee_id", filters.employee_id)

        return [OvertimeRequestRecord.model_validate(row) for row in self._execute(query, "fetch requests")]

    def get_request(self, request_id: int) -> Optional[OvertimeRequestRecord]:
        rows = self._execute(
            self.client.table(REQUESTS_TABLE).select("*").eq("id", request_id).limit(1),
            "fetch request",
        )
        return OvertimeRequestRecord.model_validate(rows[0]) if rows else None

    def list_requests_by_employee(self, employee_id: str) -> Sequence[OvertimeRequestRecord]:
        return self.list_requests(RequestFilters(employee_id=employee_id))

    def list_pending_requests(self) -> Sequence[OvertimeRequestRecord]:
        rows = self._execute(
            self.client.table(REQUESTS_TABLE).select("*").is_("approved_by", "null").order("created_at", desc=False),
            "fetch pending requests",
        )
        return [OvertimeRequestRecord.model_validate(row) for row in rows]

    def get_statistics(self, employee_id: Optional[str] = None) -> RequestStats:
        return summarize_requests(self.list_requests(RequestFilters(employee_id=employee_id)))

    def insert_request(self, data: Dict[str, Any]) -> OvertimeRequestRecord:
        rows = self._execute(self.client.table(REQUESTS_TABLE).insert(_jsonable(data)), "insert request")
        return OvertimeRequestRecord.model_validate(rows[0])

    def _update_request(self, request_id: int, updates: Dict[str, Any], operation: str) -> Optional[OvertimeRequestRecord]:
        rows = self._execute(
            self.client.table(REQUESTS_TABLE).update(_jsonable(updates)).eq("id", request_id),
            operation,
        )
        return OvertimeRequestRecord.model_validate(rows[0]) if rows else None

    def approve_request(self, request_id: int, approved_by: str) -> Optional[OvertimeRequestRecord]:
        return self._update_request(
            request_id,
            {"approved_by": approved_by, "approved_at": datetime.now(timezone.utc), "reject_reason": None},
            "approve request",
        )

    def reject_request(self, request_id: int, rejected_by: str, reason: str) -> Optional[OvertimeRequestRecord]:
        return self._update_request(
            request_id,
            {"approved_by": rejected_by, "reject_reason": reason},
            "reject request",
        )

    def find_duplicates(self, employee_id: str, payroll_date: date) -> Sequence[OvertimeRequestRecord]:
        rows = self._execute(
            self.client.table(REQUESTS_TABLE)
            .select("*")
            .eq("frappe_employee_id", employee_id)
            .eq("payroll_date", payroll_date.isoformat()),
            "check for duplicates",
        )
        return [OvertimeRequestRecord.model_validate(row) for row in rows]

    # -------- Settings --------
    def get_setting(self, key: str) -> Optional[SettingRecord]:
        rows = self._execute(self.client.table(SETTINGS_TABLE).select("*").eq("key", key).limit(1), "fetch setting")
        return SettingRecord.model_validate(rows[0]) if rows else None

    def list_settings(self) -> Sequence[SettingRecord]:
        rows = self._execute(self.client.table(SETTINGS_TABLE).select("*").order("key"), "fetch settings")
        return [SettingRecord.model_validate(row) for row in rows]

    def upsert_setting(self, key: str, value: Any, description: Optional[str] = None) -> SettingRecord:
        payload = {"key": key, "value": value}
        if description is not None:
            payload["description"] = description
        rows = self._execute(
            self.client.table(SETTINGS_TABLE).upsert(payload, on_conflict="key"),
            "update setting",
        )
        return SettingRecord.model_validate(rows[0])

    def delete_setting(self, key: str) -> bool:
        rows = self._execute(self.client.table(SETTINGS_TABLE).delete().eq("key", key), "delete setting")
        return len(rows) > 0

    # -------- Users and sessions --------
    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        rows = self._execute(self.client.table(USERS_TABLE).select("*").eq("email", email).limit(1), "fetch user")
        return UserRecord.model_validate(rows[0]) if rows else None

    def create_user(self, data: Dict[str, Any]) -> UserRecord:
        rows = self._execute(self.client.table(USERS_TABLE).insert(_jsonable(data)), "create user")
        return UserRecord.model_validate(rows[0])

    def update_user(self, email: str, updates: Dict[str, Any]) -> Optional[UserRecord]:
        rows = self._execute(
            self.client.table(USERS_TABLE).update(_jsonable(updates)).eq("email", email),
            "update user",
        )
        return UserRecord.model_validate(rows[0]) if rows else None

    def create_session(self, session_token: str, email: str, expires_at: datetime) -> None:
        self._execute(
            self.client.table(SESSIONS_TABLE).insert(
                _jsonable({"session_token": session_token, "email": email, "expires_at": expires_at, "is_active": True})
            ),
            "create session",
        )

    def get_session_user(self, session_token: str, now: datetime) -> Optional[UserRecord]:
        sessions = self._execute(
            self.client.table(SESSIONS_TABLE)
            .select("email")
            .eq("session_token", session_token)
            .eq("is_active", True)
            .gt("expires_at", now.isoformat())
            .limit(1),
            "verify session",
        )
        if not sessions:
            return None
        users = self._execute(
            self.client.table(USERS_TABLE)
            .select("*")
            .eq("email", sessions[0]["email"])
            .eq("is_active", True)
            .limit(1),
            "verify session user",
        )
        return UserRecord.model_validate(users[0]) if users else None

    def deactivate_session(self, session_token: str) -> None:
        self._execute(
            self.client.table(SESSIONS_TABLE).update({"is_active": False}).eq("session_token", session_token),
            "deactivate session",
        )

    # -------- Activity log --------
    def insert_activity(self, data: Dict[str, Any]) -> ActivityLogRecord:
        rows = self._execute(self.client.table(ACTIVITY_TABLE).insert(_jsonable(data)), "insert activity")
        return ActivityLogRecord.model_validate(rows[0])

    def list_activities(
        self,
        *,
        activity_type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[ActivityLogRecord]:
        query = self.client.table(ACTIVITY_TABLE).select("*").order("created_at", desc=True)
        if activity_type:
            query = query.eq("activity_type", activity_type)
        if status:
            query = query.eq("status", status)
        query = query.range(offset, offset + limit - 1)
        return [ActivityLogRecord.model_validate(row) for row in self._execute(query, "fetch activities")]

    def activity_statistics(self, since: datetime) -> Sequence[ActivityStat]:
        rows = self._execute(
            self.client.table(ACTIVITY_TABLE).select("activity_type,status").gte("created_at", since.isoformat()),
            "fetch activity statistics",
        )
        return tally_activities(rows)

    def health_check(self) -> bool:
        try:
            self.client.table(REQUESTS_TABLE).select("id").limit(1).execute()
            return True
        except APIError as e:
            logger.error(f"Supabase health check failed: {e}")
            return False
