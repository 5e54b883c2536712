"""
Orchestration of the request lifecycle: submit, list, decide, notify.

Storage writes happen inline. E-mail fan-out runs afterwards as background work
(notify_* methods), so a relay outage never undoes a stored request or decision.
"""
import logging
from contextlib import AbstractContextManager
from datetime import date
from typing import Callable, List, NamedTuple, Optional, Sequence

from overtime_api.core.exceptions import AppException, NotFoundError, UpstreamServiceError, AccessDeniedError
from overtime_api.models.activity_log import ActivityStatus
from overtime_api.models.user import UserRole
from overtime_api.schemas.auth import UserRecord
from overtime_api.schemas.employee import EmployeeProfile
from overtime_api.schemas.request import (
    DuplicateCheckResult,
    OvertimeRequestCreate,
    OvertimeRequestRecord,
    RequestFilters,
    RequestStats,
)
from overtime_api.services import email_templates
from overtime_api.services.activity_log import ActivityLogService
from overtime_api.services.authorization import (
    HIERARCHY_BYPASS_ROLES,
    HierarchyService,
    can_view_request,
    ensure_can_decide,
    is_admin_viewer,
)
from overtime_api.services.notification_routing import NotificationRouter, dedupe
from overtime_api.services.settings_service import SettingsService
from overtime_api.services.workflow_relay import WorkflowRelay
from overtime_api.storage.base import RequestStore

logger = logging.getLogger(__name__)

ActivityScope = Callable[[], AbstractContextManager]


class SubmissionResult(NamedTuple):
    request: OvertimeRequestRecord
    employee: EmployeeProfile
    duplicates: Sequence[OvertimeRequestRecord]
    extra_recipients: List[str]


class DecisionResult(NamedTuple):
    request: OvertimeRequestRecord
    erpnext_error: Optional[str] = None


class RequestService:
    def __init__(
        self,
        store: RequestStore,
        relay: WorkflowRelay,
        router: NotificationRouter,
        hierarchy: HierarchyService,
        activity_scope: ActivityScope
    ):
        self.store = store
        self.relay = relay
        self.router = router
        self.hierarchy = hierarchy
        self.activity_scope = activity_scope
        self.activity = ActivityLogService(store)

    # -------- Submission --------
    def validate_employee(self, email: str) -> EmployeeProfile:
        employee = self.relay.validate_employee(email)
        if not employee.frappe_employee_id:
            raise AppException("Employee not found or invalid email address", status_code=400, error_code="EMPLOYEE_NOT_FOUND")
        return employee

    def check_duplicate(self, email: str, payroll_date: date) -> DuplicateCheckResult:
        employee = self.validate_employee(email)
        duplicates = self.store.find_duplicates(employee.frappe_employee_id, payroll_date)
        return DuplicateCheckResult(hasDuplicate=len(duplicates) > 0, duplicates=list(duplicates))

    def submit(self, payload: OvertimeRequestCreate) -> SubmissionResult:
        logger.info("Submitting new request", extra={"email": payload.email, "request_type": payload.requestType})
        employee = self.validate_employee(payload.email)

        duplicates = self.store.find_duplicates(employee.frappe_employee_id, payload.dateAffected)
        if duplicates:
            # Allowed, but worth a trace
            logger.warning(
                "Duplicate request detected",
                extra={"employee_id": employee.frappe_employee_id, "payroll_date": payload.dateAffected.isoformat()}
            )

        record = self.store.insert_request({
            "frappe_employee_id": employee.frappe_employee_id,
            "employee_name": employee.employee_name,
            "payroll_date": payload.dateAffected,
            "hours": payload.signed_hours,
            "minutes": payload.minutes,
            "reason": payload.reason,
            "projects_affected": payload.projectTaskAssociated,
        })
        logger.info(f"Request {record.id} stored", extra={"employee_id": employee.frappe_employee_id})

        extra_recipients = [str(e) for e in SettingsService(self.store).get_notification_recipients().emails]
        return SubmissionResult(record, employee, duplicates, extra_recipients)

    def notify_submission(self, payload: OvertimeRequestCreate, submission: SubmissionResult) -> None:
        record, employee = submission.request, submission.employee
        template_data = {
            "employeeName": employee.employee_name or "Employee",
            "employeeId": employee.frappe_employee_id,
            "requestType": payload.requestType,
            "dateAffected": payload.dateAffected.isoformat(),
            "numberOfHours": payload.numberOfHours,
            "minutes": payload.minutes,
            "reason": payload.reason,
            "projectTaskAssociated": payload.projectTaskAssociated,
            "requestId": record.id,
        }
        request_data = {**payload.model_dump(mode="json"), "employeeId": employee.frappe_employee_id,
                        "employeeName": employee.employee_name, "requestId": record.id}

        confirmation = email_templates.request_submitted(template_data)
        result = self.relay.send_notification([str(payload.email)], confirmation.subject, confirmation.message, request_data)
        if not result.get("success"):
            logger.error(f"Failed to send confirmation for request {record.id}: {result.get('error')}")

        recipients = dedupe(self.router.get_all_recipients(employee) + submission.extra_recipients)
        if not recipients:
            logger.warning("No notification recipients found", extra={"employee_id": employee.frappe_employee_id})
            return

        admin_mail = email_templates.admin_notification(
            {**template_data, "employeeName": employee.employee_name or str(payload.email)}
        )
        result = self.relay.send_notification(recipients, admin_mail.subject, admin_mail.message, request_data)
        with self.activity_scope() as activity:
            if result.get("success"):
                activity.log_request_submitted(str(payload.email), recipients, record.id)
            else:
                activity.log_notification_sent(
                    recipients,
                    admin_mail.subject,
                    request_id=record.id,
                    notification_type="request_submission",
                    status=ActivityStatus.FAILED,
                )

    # -------- Queries --------
    def list_requests(self, user: UserRecord, filters: RequestFilters) -> List[dict]:
        return self.hierarchy.annotate(user, self.store.list_requests(filters))

    def get_request(self, user: UserRecord, request_id: int) -> OvertimeRequestRecord:
        record = self.store.get_request(request_id)
        if record is None:
            raise NotFoundError(f"Request {request_id} not found")
        direct_ids = [] if is_admin_viewer(user) else self.hierarchy.direct_report_ids(user.erpnext_employee_id)
        if not can_view_request(user, record, direct_ids):
            raise AccessDeniedError(
                "Access denied. You can only view your own requests or those from your direct reports."
            )
        return record

    def list_by_employee(self, user: UserRecord, employee_id: str) -> Sequence[OvertimeRequestRecord]:
        if not is_admin_viewer(user) and user.erpnext_employee_id != employee_id:
            raise AccessDeniedError("Access denied. You can only view your own requests.")
        return self.store.list_requests_by_employee(employee_id)

    def list_pending(self, user: UserRecord) -> Sequence[OvertimeRequestRecord]:
        pending = self.store.list_pending_requests()
        if user.role in HIERARCHY_BYPASS_ROLES:
            return pending
        if user.role == UserRole.PROJECT_COORDINATOR or user.erpnext_employee_id:
            direct_ids = set(self.hierarchy.direct_report_ids(user.erpnext_employee_id))
            return [r for r in pending if r.frappe_employee_id in direct_ids]
        return []

    def statistics(self, employee_id: Optional[str] = None) -> RequestStats:
        return self.store.get_statistics(employee_id)

    # -------- Decisions --------
    def _load_for_decision(self, user: UserRecord, request_id: int) -> OvertimeRequestRecord:
        record = self.store.get_request(request_id)
        if record is None:
            raise NotFoundError(f"Request {request_id} not found")
        direct_ids = [] if user.role in HIERARCHY_BYPASS_ROLES else self.hierarchy.direct_report_ids(user.erpnext_employee_id)
        ensure_can_decide(user, record, direct_ids)
        return record

    def approve(self, user: UserRecord, request_id: int) -> DecisionResult:
        logger.info(f"Approving request {request_id}", extra={"approver": user.email, "approver_role": user.role.value})
        self._load_for_decision(user, request_id)
        updated = self.store.approve_request(request_id, user.email)
        if updated is None:
            raise NotFoundError(f"Request {request_id} not found")

        erpnext_error = None
        try:
            self.relay.create_additional_salary(updated)
            logger.info(f"Additional Salary created for request {request_id}")
        except UpstreamServiceError as e:
            # The approval stands; payroll entry can be created by hand
            erpnext_error = e.message
            logger.error(f"Additional Salary creation failed for request {request_id}: {e.message}")

        self.activity.log_request_decision(
            request_id, user.email, approved=True,
            details={"erpnextError": erpnext_error} if erpnext_error else None
        )
        return DecisionResult(updated, erpnext_error)

    def reject(self, user: UserRecord, request_id: int, reason: str) -> DecisionResult:
        logger.info(f"Rejecting request {request_id}", extra={"rejector": user.email, "rejector_role": user.role.value})
        self._load_for_decision(user, request_id)
        updated = self.store.reject_request(request_id, user.email, reason)
        if updated is None:
            raise NotFoundError(f"Request {request_id} not found")
        self.activity.log_request_decision(request_id, user.email, approved=False, details={"reason": reason})
        return DecisionResult(updated)

    def notify_decision(self, record: OvertimeRequestRecord) -> None:
        """E-mail the employee about an approval or rejection."""
        try:
            employee = self.relay.get_employee_details(record.frappe_employee_id)
        except UpstreamServiceError as e:
            logger.error(f"Failed to get employee e-mail for request {record.id}: {e.message}")
            return
        if not employee.company_email:
            logger.warning(f"No company e-mail for {record.frappe_employee_id}; decision e-mail skipped")
            return

        approved = record.reject_reason is None
        data = {
            "employeeName": employee.employee_name or record.employee_name,
            "requestType": record.request_type,
            "dateAffected": record.payroll_date,
            "hours": record.hours,
            "minutes": record.minutes,
        }
        if approved:
            mail = email_templates.request_approved({**data, "approvedBy": record.approved_by})
        else:
            mail = email_templates.request_rejected({**data, "rejectedBy": record.approved_by, "reason": record.reject_reason})

        result = self.relay.send_notification([employee.company_email], mail.subject, mail.message, record.to_response())
        with self.activity_scope() as activity:
            activity.log_notification_sent(
                [employee.company_email],
                mail.subject,
                request_id=record.id,
                notification_type="approval" if approved else "rejection",
                status=ActivityStatus.SUCCESS if result.get("success") else ActivityStatus.FAILED,
            )
