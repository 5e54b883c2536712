"""
SQLAlchemy backend (PostgreSQL in production, SQLite locally and in tests).
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from overtime_api.core.exceptions import StorageError
from overtime_api.models.activity_log import ActivityLog
from overtime_api.models.overtime_request import OvertimeRequest, RequestStatus
from overtime_api.models.setting import Setting
from overtime_api.models.user import User, UserSession
from overtime_api.schemas.activity import ActivityLogRecord, ActivityStat
from overtime_api.schemas.auth import UserRecord
from overtime_api.schemas.request import OvertimeRequestRecord, RequestFilters, RequestStats
from overtime_api.schemas.settings import SettingRecord
from overtime_api.storage.base import RequestStore, summarize_requests

logger = logging.getLogger(__name__)


class SqlAlchemyStore(RequestStore):
    backend = "postgresql"

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, operation: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Storage error during {operation}: {e}", exc_info=True)
            raise StorageError(f"Failed to {operation}") from e

    # -------- Overtime requests --------
    def list_requests(self, filters: Optional[RequestFilters] = None) -> Sequence[OvertimeRequestRecord]:
        filters = filters or RequestFilters()
        query = self.db.query(OvertimeRequest)

        if filters.status == RequestStatus.PENDING:
            query = query.filter(OvertimeRequest.approved_by.is_(None))
        elif filters.status == RequestStatus.APPROVED:
            query = query.filter(
                OvertimeRequest.approved_by.isnot(None),
                OvertimeRequest.reject_reason.is_(None)
            )
        elif filters.status == RequestStatus.REJECTED:
            query = query.filter(OvertimeRequest.reject_reason.isnot(None))

        if filters.date_from:
            query = query.filter(OvertimeRequest.payroll_date >= filters.date_from)
        if filters.date_to:
            query = query.filter(OvertimeRequest.payroll_date <= filters.date_to)
        if filters.employee_id:
            query = query.filter(OvertimeRequest.frappe_employee_id == filters.employee_id)

        rows = query.order_by(OvertimeRequest.created_at.desc(), OvertimeRequest.id.desc()).all()
        return [OvertimeRequestRecord.model_validate(row) for row in rows]

    def get_request(self, request_id: int) -> Optional[OvertimeRequestRecord]:
        row = self.db.get(OvertimeRequest, request_id)
        return OvertimeRequestRecord.model_validate(row) if row else None

    def list_requests_by_employee(self, employee_id: str) -> Sequence[OvertimeRequestRecord]:
        return self.list_requests(RequestFilters(employee_id=employee_id))

    def list_pending_requests(self) -> Sequence[OvertimeRequestRecord]:
        rows = (
            self.db.query(OvertimeRequest)
            .filter(OvertimeRequest.approved_by.is_(None))
            .order_by(OvertimeRequest.created_at.asc(), OvertimeRequest.id.asc())
            .all()
        )
        return [OvertimeRequestRecord.model_validate(row) for row in rows]

    def get_statistics(self, employee_id: Optional[str] = None) -> RequestStats:
        return summarize_requests(self.list_requests(RequestFilters(employee_id=employee_id)))

    def insert_request(self, data: Dict[str, Any]) -> OvertimeRequestRecord:
        row = OvertimeRequest(**data)
        self.db.add(row)
        self._commit("insert request")
        self.db.refresh(row)
        return OvertimeRequestRecord.model_validate(row)

    def _resolve(self, request_id: int, updates: Dict[str, Any], operation: str) -> Optional[OvertimeRequestRecord]:
        row = self.db.get(OvertimeRequest, request_id)
        if row is None:
            return None
        for field, value in updates.items():
            setattr(row, field, value)
        self._commit(operation)
        self.db.refresh(row)
        return OvertimeRequestRecord.model_validate(row)

    def approve_request(self, request_id: int, approved_by: str) -> Optional[OvertimeRequestRecord]:
        return self._resolve(
            request_id,
            {"approved_by": approved_by, "approved_at": datetime.now(timezone.utc), "reject_reason": None},
            "approve request",
        )

    def reject_request(self, request_id: int, rejected_by: str, reason: str) -> Optional[OvertimeRequestRecord]:
        return self._resolve(
            request_id,
            {"approved_by": rejected_by, "reject_reason": reason},
            "reject request",
        )

    def find_duplicates(self, employee_id: str, payroll_date: date) -> Sequence[OvertimeRequestRecord]:
        rows = (
            self.db.query(OvertimeRequest)
            .filter(
                OvertimeRequest.frappe_employee_id == employee_id,
                OvertimeRequest.payroll_date == payroll_date
            )
            .all()
        )
        return [OvertimeRequestRecord.model_validate(row) for row in rows]

    # -------- Settings --------
    def get_setting(self, key: str) -> Optional[SettingRecord]:
        row = self.db.query(Setting).filter(Setting.key == key).first()
        return SettingRecord.model_validate(row) if row else None

    def list_settings(self) -> Sequence[SettingRecord]:
        return [SettingRecord.model_validate(row) for row in self.db.query(Setting).order_by(Setting.key).all()]

    def upsert_setting(self, key: str, value: Any, description: Optional[str] = None) -> SettingRecord:
        row = self.db.query(Setting).filter(Setting.key == key).first()
        if row is None:
            row = Setting(key=key, value=value, description=description)
            self.db.add(row)
        else:
            row.value = value
            # Keep the existing description unless a new one is given
            if description is not None:
                row.description = description
        self._commit("update setting")
        self.db.refresh(row)
        return SettingRecord.model_validate(row)

    def delete_setting(self, key: str) -> bool:
        deleted = self.db.query(Setting).filter(Setting.key == key).delete(synchronize_session=False)
        self._commit("delete setting")
        return deleted > 0

    # -------- Users and sessions --------
    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        row = self.db.query(User).filter(User.email == email).first()
        return UserRecord.model_validate(row) if row else None

    def create_user(self, data: Dict[str, Any]) -> UserRecord:
        row = User(**data)
        self.db.add(row)
        self._commit("create user")
        self.db.refresh(row)
        return UserRecord.model_validate(row)

    def update_user(self, email: str, updates: Dict[str, Any]) -> Optional[UserRecord]:
        row = self.db.query(User).filter(User.email == email).first()
        if row is None:
            return None
        for field, value in updates.items():
            setattr(row, field, value)
        self._commit("update user")
        self.db.refresh(row)
        return UserRecord.model_validate(row)

    def create_session(self, session_token: str, email: str, expires_at: datetime) -> None:
        self.db.add(UserSession(session_token=session_token, email=email, expires_at=expires_at, is_active=True))
        self._commit("create session")

    def get_session_user(self, session_token: str, now: datetime) -> Optional[UserRecord]:
        row = (
            self.db.query(User)
            .join(UserSession, UserSession.email == User.email)
            .filter(
                UserSession.session_token == session_token,
                UserSession.is_active.is_(True),
                UserSession.expires_at > now,
                User.is_active.is_(True)
            )
            .first()
        )
        return UserRecord.model_validate(row) if row else None

    def deactivate_session(self, session_token: str) -> None:
        self.db.query(UserSession).filter(UserSession.session_token == session_token).update(
            {UserSession.is_active: False}, synchronize_session=False
        )
        self._commit("deactivate session")

    # -------- Activity log --------
    def insert_activity(self, data: Dict[str, Any]) -> ActivityLogRecord:
        row = ActivityLog(**data)
        self.db.add(row)
        self._commit("insert activity")
        self.db.refresh(row)
        return ActivityLogRecord.model_validate(row)

    def list_activities(
        self,
        *,
        activity_type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[ActivityLogRecord]:
        query = self.db.query(ActivityLog)
        if activity_type:
            query = query.filter(ActivityLog.activity_type == activity_type)
        if status:
            query = query.filter(ActivityLog.status == status)
        rows = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).offset(offset).limit(limit).all()
        return [ActivityLogRecord.model_validate(row) for row in rows]

    def activity_statistics(self, since: datetime) -> Sequence[ActivityStat]:
        rows = (
            self.db.query(ActivityLog.activity_type, ActivityLog.status, func.count(ActivityLog.id))
            .filter(ActivityLog.created_at >= since)
            .group_by(ActivityLog.activity_type, ActivityLog.status)
            .order_by(ActivityLog.activity_type, ActivityLog.status)
            .all()
        )
        return [ActivityStat(activity_type=t, status=s, count=c) for t, s, c in rows]

    def health_check(self) -> bool:
        try:
            self.db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False
