import pytest
from datetime import date

from overtime_api.core.security import sanitize_input
from overtime_api.schemas.request import OvertimeRequestRecord
from overtime_api.services.email_templates import get_email_template


def test_submitted_confirmation():
    mail = get_email_template("request_submitted", {
        "employeeName": "Jane",
        "requestType": "Undertime",
        "numberOfHours": 2,
        "minutes": 15,
        "dateAffected": "2026-10-12",
        "reason": "Doctor appointment",
        "projectTaskAssociated": "Internal",
    })
    assert mail.subject == "Confirmation: Your Undertime Request Has Been Received"
    assert "2h 15m" in mail.message
    assert "Pending Approval" in mail.message


def test_user_input_is_escaped():
    mail = get_email_template("admin_notification", {
        "employeeName": "<script>alert(1)</script>",
        "reason": "<img src=x onerror=alert(1)>",
        "requestId": 5,
    })
    assert "<script>" not in mail.message
    assert "<img" not in mail.message
    assert "&lt;script&gt;" in mail.message


def test_approved_uses_long_date_and_absolute_hours():
    mail = get_email_template("request_approved", {
        "employeeName": "Jane",
        "requestType": "Undertime",
        "dateAffected": date(2026, 10, 12),
        "hours": -1.5,
        "minutes": 0,
        "approvedBy": "hr@rooche.digital",
    })
    assert mail.subject == "Your Undertime Request Has Been Approved"
    assert "October 12, 2026" in mail.message
    assert "1.5h 0m" in mail.message


def test_rejected_includes_reason():
    mail = get_email_template("request_rejected", {
        "requestType": "Overtime",
        "dateAffected": "2026-10-12",
        "hours": 2,
        "rejectedBy": "lead@rooche.digital",
        "reason": "Not pre-approved",
    })
    assert mail.subject == "Your Overtime Request Has Been Rejected"
    assert "Not pre-approved" in mail.message


def test_daily_reminder_lists_requests():
    requests = [
        OvertimeRequestRecord(
            id=i, frappe_employee_id=f"HR-EMP-0000{i}", employee_name=f"Employee {i}",
            payroll_date=date(2026, 10, 12), hours=2, minutes=30, reason="Release support",
        )
        for i in (1, 2)
    ]
    mail = get_email_template("daily_reminder", {"requests": requests})
    assert mail.subject == "Daily Reminder: 2 Pending Overtime/Undertime Request(s)"
    assert "Employee 2" in mail.message
    assert "/admin" in mail.message


def test_unknown_template_raises():
    with pytest.raises(KeyError):
        get_email_template("payslip", {})


def test_script_blocks_are_removed_before_escaping():
    assert sanitize_input("Late<script>alert(1)</script> deploy") == "Late deploy"
    assert sanitize_input("a <b>bold</b> claim") == "a &lt;b&gt;bold&lt;/b&gt; claim"
