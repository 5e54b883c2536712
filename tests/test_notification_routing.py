import pytest

from overtime_api.core.exceptions import UpstreamServiceError
from overtime_api.schemas.employee import EmployeeProfile
from overtime_api.services.notification_routing import NotificationRouter, dedupe

OWNER_ID = "HR-EMP-00001"


@pytest.fixture
def router(relay):
    relay.add_employee(OWNER_ID, "owner@rooche.digital", name="Owner", designation="CEO")
    relay.add_employee("HR-EMP-00020", "lead@rooche.digital", name="Lead", designation="Team Lead")
    return NotificationRouter(relay, owner_employee_id=OWNER_ID)


def _employee(designation="Developer", reports_to="HR-EMP-00020"):
    return EmployeeProfile(frappe_employee_id="HR-EMP-00100", designation=designation, reports_to=reports_to)


def test_dedupe_keeps_first_seen_order():
    assert dedupe(["a@x", "b@x", "a@x", None, "c@x", "b@x"]) == ["a@x", "b@x", "c@x"]


def test_supervisor_is_the_approver(router):
    assert router.get_approvers(_employee()) == ["lead@rooche.digital"]


def test_project_coordinators_route_to_coordinators(router):
    assert router.get_approvers(_employee(designation="Project Coordinator")) == ["pc@rooche.digital"]


def test_lead_generation_routes_to_lead_coordinators(router):
    assert router.get_approvers(_employee(designation="Lead Generation Specialist")) == ["lead.pc@rooche.digital"]


def test_owner_reports_escalate_to_configured_mailbox(relay):
    router = NotificationRouter(relay, owner_employee_id=OWNER_ID, owner_escalation_email="hr-desk@rooche.digital")
    assert router.get_approvers(_employee(reports_to=OWNER_ID)) == ["hr-desk@rooche.digital"]


def test_owner_reports_fall_back_to_owner_email(router, monkeypatch):
    monkeypatch.setattr(router, "owner_escalation_email", None)
    assert router.get_approvers(_employee(reports_to=OWNER_ID)) == ["owner@rooche.digital"]


def test_no_supervisor_means_no_approvers(router):
    assert router.get_approvers(_employee(reports_to=None)) == []


def test_all_recipients_merge_hr_and_approvers(router, relay):
    relay.hr_staff = ["hr@rooche.digital", "lead@rooche.digital"]
    assert router.get_all_recipients(_employee()) == ["hr@rooche.digital", "lead@rooche.digital"]


def test_routing_never_raises_on_relay_failure(router, relay):
    def fail(*args, **kwargs):
        raise UpstreamServiceError("relay down")

    relay.get_hr_staff = fail
    relay.get_approvers_by_designation = fail
    relay.get_employee_details = fail

    assert router.get_hr_staff() == []
    assert router.get_approvers_by_designation("Project Coordinator") == []
    assert router.get_approvers(_employee()) == []
    assert router.get_all_recipients(_employee()) == []


def test_routing_tolerates_unexpected_errors(router, relay):
    def explode(*args, **kwargs):
        raise KeyError("company_email")

    relay.get_employee_details = explode
    assert router.get_all_recipients(_employee()) == ["hr@rooche.digital"]
