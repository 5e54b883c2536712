import pytest
from datetime import date

from overtime_api.core.exceptions import AccessDeniedError, RequestAlreadyResolvedError
from overtime_api.models.user import UserRole
from overtime_api.schemas.auth import UserRecord
from overtime_api.schemas.request import OvertimeRequestRecord
from overtime_api.services.authorization import (
    HierarchyService,
    can_approve_request,
    can_view_request,
    ensure_can_decide,
)


def _user(role=UserRole.EMPLOYEE, employee_id="HR-EMP-00010"):
    return UserRecord(id=1, email="approver@rooche.digital", role=role, erpnext_employee_id=employee_id)


def _request(employee_id="HR-EMP-00020", approved_by=None, reject_reason=None):
    return OvertimeRequestRecord(
        id=7,
        frappe_employee_id=employee_id,
        payroll_date=date(2026, 10, 12),
        hours=2,
        reason="Release night support",
        approved_by=approved_by,
        reject_reason=reject_reason,
    )


@pytest.mark.parametrize("role", list(UserRole))
def test_self_approval_is_never_allowed(role):
    user = _user(role=role, employee_id="HR-EMP-00020")
    assert can_approve_request(user, _request(), ["HR-EMP-00020"]) is False


@pytest.mark.parametrize("role", list(UserRole))
@pytest.mark.parametrize("approved_by, reject_reason", [("hr@rooche.digital", None), ("hr@rooche.digital", "No")])
def test_resolved_requests_cannot_be_approved(role, approved_by, reject_reason):
    request = _request(approved_by=approved_by, reject_reason=reject_reason)
    assert can_approve_request(_user(role=role), request, ["HR-EMP-00020"]) is False


def test_direct_report_can_be_approved():
    assert can_approve_request(_user(), _request(), ["HR-EMP-00020"]) is True


def test_non_report_cannot_be_approved_even_by_owner():
    assert can_approve_request(_user(role=UserRole.OWNER), _request(), []) is False


def test_hr_approves_owner_direct_reports():
    hr = _user(role=UserRole.HR)
    assert can_approve_request(hr, _request(), [], owner_report_ids=["HR-EMP-00020"]) is True


def test_owner_delegation_is_hr_only():
    coordinator = _user(role=UserRole.PROJECT_COORDINATOR)
    assert can_approve_request(coordinator, _request(), [], owner_report_ids=["HR-EMP-00020"]) is False


def test_admin_viewers_see_everything():
    for role in (UserRole.OWNER, UserRole.HR, UserRole.PROJECT_COORDINATOR):
        assert can_view_request(_user(role=role), _request(), []) is True


def test_employee_sees_own_and_reports_only():
    employee = _user()
    assert can_view_request(employee, _request(employee_id="HR-EMP-00010"), []) is True
    assert can_view_request(employee, _request(), ["HR-EMP-00020"]) is True
    assert can_view_request(employee, _request(), []) is False


def test_decision_guard_checks_resolution_first():
    with pytest.raises(RequestAlreadyResolvedError):
        ensure_can_decide(_user(employee_id="HR-EMP-00020"), _request(approved_by="x@rooche.digital"), [])


def test_decision_guard_denies_own_request_for_hr():
    with pytest.raises(AccessDeniedError):
        ensure_can_decide(_user(role=UserRole.HR, employee_id="HR-EMP-00020"), _request(), [])


def test_decision_guard_lets_owner_and_hr_through():
    ensure_can_decide(_user(role=UserRole.OWNER), _request(), [])
    ensure_can_decide(_user(role=UserRole.HR), _request(), [])


def test_decision_guard_requires_direct_report_otherwise():
    with pytest.raises(AccessDeniedError):
        ensure_can_decide(_user(role=UserRole.PROJECT_COORDINATOR), _request(), [])
    ensure_can_decide(_user(role=UserRole.PROJECT_COORDINATOR), _request(), ["HR-EMP-00020"])


def test_hierarchy_annotate_adds_flags_and_filters(erpnext):
    erpnext.add_report("HR-EMP-00010", "HR-EMP-00020")
    hierarchy = HierarchyService(erpnext, owner_employee_id="HR-EMP-00001")
    requests = [_request(), _request(employee_id="HR-EMP-00099")]

    annotated = hierarchy.annotate(_user(), requests)

    assert [r["frappe_employee_id"] for r in annotated] == ["HR-EMP-00020"]
    assert annotated[0]["can_approve"] is True
    assert annotated[0]["status"] == "pending"


def test_hierarchy_owner_reports_for_hr(erpnext):
    erpnext.add_report("HR-EMP-00001", "HR-EMP-00020")
    hierarchy = HierarchyService(erpnext, owner_employee_id="HR-EMP-00001")

    annotated = hierarchy.annotate(_user(role=UserRole.HR), [_request()])

    assert annotated[0]["can_approve"] is True


def test_hierarchy_owner_lookup_failure_is_tolerated(erpnext):
    def broken(employee_id):
        raise RuntimeError("ERPNext down")

    erpnext.get_direct_reports = broken
    hierarchy = HierarchyService(erpnext, owner_employee_id="HR-EMP-00001")

    assert hierarchy.owner_report_ids_for(_user(role=UserRole.HR)) == []
