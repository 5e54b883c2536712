"""
Who may see and who may act on an overtime request.

Approval authority comes from the ERPNext reporting hierarchy: a supervisor
approves for their direct reports, and HR additionally approves for the
company owner's direct reports, acting as the owner's delegate.
"""
import logging
from typing import Collection, List, Optional, Sequence

from overtime_api.core.config import settings
from overtime_api.core.exceptions import AccessDeniedError, RequestAlreadyResolvedError
from overtime_api.models.user import UserRole
from overtime_api.schemas.auth import UserRecord
from overtime_api.schemas.request import OvertimeRequestRecord
from overtime_api.services.erpnext import ERPNextClient

logger = logging.getLogger(__name__)

ADMIN_VIEWER_ROLES = (UserRole.OWNER, UserRole.HR, UserRole.PROJECT_COORDINATOR)
HIERARCHY_BYPASS_ROLES = (UserRole.OWNER, UserRole.HR)


def is_admin_viewer(user: UserRecord) -> bool:
    return user.role in ADMIN_VIEWER_ROLES


def is_own_request(user: UserRecord, request: OvertimeRequestRecord) -> bool:
    return user.erpnext_employee_id is not None and request.frappe_employee_id == user.erpnext_employee_id


def can_approve_request(
    user: UserRecord,
    request: OvertimeRequestRecord,
    direct_report_ids: Collection[str],
    owner_report_ids: Collection[str] = ()
) -> bool:
    if request.frappe_employee_id == user.erpnext_employee_id:
        return False
    if request.is_resolved:
        return False
    if request.frappe_employee_id in direct_report_ids:
        return True
    # HR approves on the owner's behalf
    if user.role == UserRole.HR and request.frappe_employee_id in owner_report_ids:
        return True
    return False


def can_view_request(user: UserRecord, request: OvertimeRequestRecord, direct_report_ids: Collection[str]) -> bool:
    if is_admin_viewer(user):
        return True
    return is_own_request(user, request) or request.frappe_employee_id in direct_report_ids


def ensure_can_decide(user: UserRecord, request: OvertimeRequestRecord, direct_report_ids: Collection[str]) -> None:
    """
    Guard for the approve/reject endpoints.

    Raises:
        RequestAlreadyResolvedError: The request already carries a decision.
        AccessDeniedError: Self-authored request, or the author is outside the caller's reports.
    """
    if request.is_resolved:
        raise RequestAlreadyResolvedError(request.id)
    if is_own_request(user, request):
        raise AccessDeniedError("You cannot approve or reject your own request.")
    if user.role in HIERARCHY_BYPASS_ROLES:
        return
    if request.frappe_employee_id not in direct_report_ids:
        logger.warning(
            "Unauthorized decision attempt",
            extra={"user_email": user.email, "user_role": user.role.value, "overtime_request_id": request.id}
        )
        raise AccessDeniedError("Access denied. You can only act on requests from your direct reports.")


class HierarchyService:
    """Direct-report lookups against ERPNext."""

    def __init__(self, erpnext: ERPNextClient, owner_employee_id: Optional[str] = None):
        self.erpnext = erpnext
        self.owner_employee_id = owner_employee_id or settings.org.owner_employee_id

    def direct_report_ids(self, employee_id: Optional[str]) -> List[str]:
        if not employee_id:
            return []
        return [employee.employee_id for employee in self.erpnext.get_direct_reports(employee_id)]

    def owner_report_ids_for(self, user: UserRecord) -> List[str]:
        if user.role != UserRole.HR:
            return []
        try:
            ids = self.direct_report_ids(self.owner_employee_id)
        except Exception as e:
            logger.warning(f"Failed to fetch owner direct reports for HR delegation: {e}")
            return []
        logger.info(f"HR delegation: {len(ids)} owner direct reports")
        return ids

    def annotate(self, user: UserRecord, requests: Sequence[OvertimeRequestRecord]) -> List[dict]:
        """Apply the viewing rules and attach a per-request can_approve flag."""
        direct_ids = self.direct_report_ids(user.erpnext_employee_id)
        owner_ids = self.owner_report_ids_for(user) if user.erpnext_employee_id else []

        return [
            request.to_response(can_approve=can_approve_request(user, request, direct_ids, owner_ids))
            for request in requests
            if can_view_request(user, request, direct_ids)
        ]
