"""
HTML e-mail bodies sent through the workflow relay.

Every value interpolated into markup passes through sanitize_input.
"""
from datetime import date
from typing import Any, Callable, Dict, NamedTuple, Optional, Sequence, Union

from overtime_api.core.config import settings
from overtime_api.core.security import sanitize_input


class EmailContent(NamedTuple):
    subject: str
    message: str


def _e(value: Any) -> str:
    return sanitize_input("" if value is None else str(value))


def _long_date(value: Union[date, str, None]) -> str:
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return _e(value)
    if value is None:
        return ""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def _duration(hours: Any, minutes: Any) -> str:
    hours = abs(float(hours or 0))
    hours_text = str(int(hours)) if hours.is_integer() else str(hours)
    return f"{hours_text}h {int(minutes or 0)}m"


def _layout(body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
{body}
  <hr style="border: none; border-top: 1px solid #e0e0e0; margin: 30px 0;">
  <p style="color: #666; font-size: 14px;">Thanks,<br><em>{_e(settings.org.sender_signature)}</em></p>
</body>
</html>"""


def _panel(title: str, items: Dict[str, str]) -> str:
    rows = "\n".join(f"      <li><strong>{label}:</strong> {value}</li>" for label, value in items.items())
    return f"""  <div style="background-color: #f4f4f4; padding: 15px; border-radius: 5px; margin: 20px 0;">
    <strong style="color: #2c3e50;">{title}:</strong>
    <ul style="padding-left: 20px;">
{rows}
    </ul>
  </div>"""


def _callout(title: str, text: str, border: str = "#ffc107", background: str = "#fff3cd") -> str:
    return f"""  <div style="background-color: {background}; border-left: 4px solid {border}; padding: 15px; margin: 20px 0; border-radius: 5px;">
    <p style="margin: 0;"><strong>{title}</strong></p>
    <p style="margin: 10px 0 0 0;">{text}</p>
  </div>"""


def request_submitted(data: Dict[str, Any]) -> EmailContent:
    """Confirmation to the employee who submitted."""
    request_type = _e(data.get("requestType") or "Overtime")
    summary = _panel("Request Summary", {
        "Request Type": request_type,
        "Duration": _duration(data.get("numberOfHours"), data.get("minutes")),
        "Date Affected": _e(data.get("dateAffected")),
        "Project/Task": _e(data.get("projectTaskAssociated")),
        "Current Status": '<span style="color: #ff8c00; font-weight: bold;">Pending Approval</span>',
    })
    reason = _callout("Reason for request:", _e(data.get("reason")))
    greeting = _e(data.get("employeeName")) or "there"
    body = f"""  <div style="background-color: #f8f9fa; border-radius: 10px; padding: 20px; margin-bottom: 20px;">
    <h2 style="color: #2c3e50; margin-top: 0;">Request Confirmation</h2>
    <p>Hey {greeting},</p>
    <p>This is a quick confirmation that we have received your {request_type.lower()} request. It is now pending review.</p>
  </div>
{summary}
{reason}
  <p>You don't need to take any action. We will e-mail you again as soon as the status of your request changes.</p>"""
    return EmailContent(f"Confirmation: Your {data.get('requestType') or 'Overtime'} Request Has Been Received", _layout(body))


def admin_notification(data: Dict[str, Any]) -> EmailContent:
    request_type = _e(data.get("requestType") or "Overtime")
    employee = _panel("Employee Details", {
        "Name": _e(data.get("employeeName")),
        "Employee ID": _e(data.get("employeeId")),
    })
    details = _panel("Request Details", {
        "Request ID": "#" + _e(data.get("requestId")),
        "Type": request_type,
        "Duration": _duration(data.get("numberOfHours"), data.get("minutes")),
        "Date Affected": _e(data.get("dateAffected")),
        "Project/Task": _e(data.get("projectTaskAssociated")),
    })
    reason = _callout("Reason:", _e(data.get("reason")))
    next_steps = _callout(
        "Next Steps:", "Please review and approve or reject this request in the admin dashboard.", "#007bff", "#e7f3ff"
    )
    body = f"""  <div style="background-color: #007bff; color: white; border-radius: 10px; padding: 20px; margin-bottom: 20px;">
    <h2 style="margin-top: 0;">New Request Submitted</h2>
    <p style="margin: 0;">A new {request_type.lower()} request requires your review.</p>
  </div>
{employee}
{details}
{reason}
{next_steps}"""
    return EmailContent(f"New {data.get('requestType') or 'Overtime'} Request - {data.get('employeeName')}", _layout(body))


def request_approved(data: Dict[str, Any]) -> EmailContent:
    request_type = data.get("requestType") or "Overtime"
    employee_name = _e(data.get("employeeName"))
    approved_by = _e(data.get("approvedBy"))
    salutation = f"Good news, {employee_name}!" if employee_name else "Good news!"
    details = _panel("Approved Request Details", {
        "Date": _long_date(data.get("dateAffected")),
        "Hours": _duration(data.get("hours"), data.get("minutes")),
        "Approved By": approved_by,
        "Status": '<span style="color: #28a745; font-weight: bold;">Approved</span>',
    })
    next_steps = _callout(
        "What happens next?",
        "The approved hours will be reflected in your next payroll cycle. No further action is required from you.",
        "#17a2b8",
        "#d1ecf1",
    )
    body = f"""  <div style="background-color: #d4edda; border-left: 4px solid #28a745; border-radius: 10px; padding: 20px; margin-bottom: 20px;">
    <h2 style="color: #155724; margin-top: 0;">Request Approved!</h2>
    <p style="color: #155724; margin: 0;">{salutation}</p>
  </div>
  <p>Your {_e(request_type).lower()} request has been approved by <strong>{approved_by}</strong>.</p>
{details}
{next_steps}"""
    return EmailContent(f"Your {request_type} Request Has Been Approved", _layout(body))


def request_rejected(data: Dict[str, Any]) -> EmailContent:
    request_type = data.get("requestType") or "Overtime"
    employee_name = _e(data.get("employeeName"))
    rejected_by = _e(data.get("rejectedBy"))
    greeting = employee_name or "there"
    details = _panel("Request Details", {
        "Date": _long_date(data.get("dateAffected")),
        "Hours": _duration(data.get("hours"), data.get("minutes")),
        "Rejected By": rejected_by,
        "Status": '<span style="color: #dc3545; font-weight: bold;">Rejected</span>',
    })
    reason = _callout("Reason for rejection:", _e(data.get("reason")), "#dc3545", "#f8d7da")
    help_note = _callout(
        "Need clarification?",
        "If you have any questions about this decision, please contact your supervisor or HR.",
        "#17a2b8",
        "#d1ecf1",
    )
    body = f"""  <div style="background-color: #f8d7da; border-left: 4px solid #dc3545; border-radius: 10px; padding: 20px; margin-bottom: 20px;">
    <h2 style="color: #721c24; margin-top: 0;">Request Status Update</h2>
    <p style="color: #721c24; margin: 0;">Hi {greeting},</p>
  </div>
  <p>Unfortunately, your {_e(request_type).lower()} request has been rejected by <strong>{rejected_by}</strong>.</p>
{details}
{reason}
{help_note}"""
    return EmailContent(f"Your {request_type} Request Has Been Rejected", _layout(body))


def daily_reminder(data: Dict[str, Any]) -> EmailContent:
    """Digest of pending requests for approvers. Expects data["requests"] as request records."""
    requests: Sequence[Any] = data.get("requests") or []
    dashboard_url = _e(data.get("dashboardUrl") or f"{settings.frontend_url.rstrip('/')}/admin")
    rows = "\n".join(
        f"""      <tr>
        <td style="padding: 8px; border: 1px solid #ddd;">#{_e(r.id)}</td>
        <td style="padding: 8px; border: 1px solid #ddd;">{_e(r.employee_name or r.frappe_employee_id)}</td>
        <td style="padding: 8px; border: 1px solid #ddd;">{_e(r.request_type)}</td>
        <td style="padding: 8px; border: 1px solid #ddd;">{_e(r.payroll_date)}</td>
        <td style="padding: 8px; border: 1px solid #ddd;">{_duration(r.hours, r.minutes)}</td>
        <td style="padding: 8px; border: 1px solid #ddd;">{_e(r.projects_affected)}</td>
      </tr>"""
        for r in requests
    )
    count = len(requests)
    waiting = "There is 1 request" if count == 1 else f"There are {count} requests"
    body = f"""  <div style="background-color: #fff3cd; border-left: 4px solid #ffc107; border-radius: 10px; padding: 20px; margin-bottom: 20px;">
    <h2 style="color: #856404; margin-top: 0;">Daily Reminder: Pending Requests</h2>
    <p style="color: #856404; margin: 0;">{waiting} awaiting review.</p>
  </div>
  <table style="width: 100%; border-collapse: collapse; font-size: 14px;">
    <thead>
      <tr style="background-color: #f4f4f4;">
        <th style="padding: 8px; border: 1px solid #ddd; text-align: left;">ID</th>
        <th style="padding: 8px; border: 1px solid #ddd; text-align: left;">Employee</th>
        <th style="padding: 8px; border: 1px solid #ddd; text-align: left;">Type</th>
        <th style="padding: 8px; border: 1px solid #ddd; text-align: left;">Date</th>
        <th style="padding: 8px; border: 1px solid #ddd; text-align: left;">Duration</th>
        <th style="padding: 8px; border: 1px solid #ddd; text-align: left;">Project/Task</th>
      </tr>
    </thead>
    <tbody>
{rows}
    </tbody>
  </table>
  <p style="margin-top: 20px;"><a href="{dashboard_url}" style="background-color: #007bff; color: white; padding: 10px 20px; border-radius: 5px; text-decoration: none;">Open Admin Dashboard</a></p>"""
    return EmailContent(f"Daily Reminder: {count} Pending Overtime/Undertime Request(s)", _layout(body))


TEMPLATES: Dict[str, Callable[[Dict[str, Any]], EmailContent]] = {
    "request_submitted": request_submitted,
    "admin_notification": admin_notification,
    "request_approved": request_approved,
    "request_rejected": request_rejected,
    "daily_reminder": daily_reminder,
}


def get_email_template(name: str, data: Optional[Dict[str, Any]] = None) -> EmailContent:
    template = TEMPLATES.get(name)
    if template is None:
        raise KeyError(f"Email template '{name}' not found")
    return template(data or {})
