import logging
from typing import Any, Dict, List, Optional

import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from overtime_api.core.config import settings, RelaySettings
from overtime_api.core.exceptions import UpstreamServiceError
from overtime_api.schemas.employee import EmployeeProfile
from overtime_api.schemas.request import OvertimeRequestRecord

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


def _error_message(response: Optional[requests.Response], fallback: str) -> str:
    if response is None:
        return fallback
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or fallback
    return fallback


def _extract_emails(body: Any) -> List[str]:
    rows = body.get("data", []) if isinstance(body, dict) else []
    return [row["company_email"] for row in rows or [] if isinstance(row, dict) and row.get("company_email")]


def normalize_employee(data: Any, email: Optional[str] = None) -> EmployeeProfile:
    """The relay answers with either an object or a one-element array."""
    if isinstance(data, list):
        data = data[0] if data else {}
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    data = data or {}
    return EmployeeProfile(
        frappe_employee_id=data.get("employee") or data.get("frappe_employee_id") or data.get("name"),
        employee_name=data.get("employee_name"),
        reports_to=data.get("reports_to"),
        designation=data.get("designation"),
        company_email=data.get("company_email") or email,
    )


class WorkflowRelay:
    """
    Client for the n8n workflows that front ERPNext lookups, payroll writes and e-mail.

    Reads are retried on connection errors; writes (salary, notifications) are sent once.
    """

    def __init__(self, config: Optional[RelaySettings] = None, session: Optional[requests.Session] = None):
        self.config = config or settings.relay
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    @property
    def base_url(self) -> str:
        if not self.config.base_url:
            logger.error("N8N_BASE_URL is not configured")
            raise UpstreamServiceError("Workflow relay is not configured", status_code=503)
        return self.config.base_url.rstrip("/")

    def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        response = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.config.timeout_seconds)
        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        reraise=True
    )
    def _read(self, path: str, payload: Dict[str, Any]) -> Any:
        return self._post(path, payload)

    def _service_call(self, operation: str, **fields) -> Any:
        return self._read(self.config.erpnext_service_path, {"operation": operation, **fields})

    def validate_employee(self, email: str) -> EmployeeProfile:
        """Resolve a company e-mail to its ERPNext employee record."""
        if self.config.use_erpnext_service:
            path = self.config.erpnext_service_path
            payload = {"operation": "validate_employee", "email": email}
        else:
            path = self.config.validate_employee_path
            payload = {"email": email}
        if not path:
            raise UpstreamServiceError("Employee validation webhook is not configured", status_code=503)

        logger.info("Validating employee via workflow relay", extra={"email": email, "webhook_path": path})
        try:
            data = self._read(path, payload)
        except requests.exceptions.Timeout as e:
            logger.error(f"Employee validation timed out for {email}: {e}")
            raise UpstreamServiceError("Request to the workflow relay timed out. Please try again.", status_code=504)
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Workflow relay unreachable at {self.config.base_url}: {e}")
            raise UpstreamServiceError(
                f"Unable to connect to the workflow relay at {self.config.base_url}.", status_code=503
            )
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else 500
            logger.error(f"Employee validation failed for {email}: HTTP {status}")
            if status == 404:
                raise UpstreamServiceError("Employee validation webhook not found.", status_code=404)
            if status in (401, 403):
                raise UpstreamServiceError("Authentication with the workflow relay failed.", status_code=status)
            raise UpstreamServiceError(_error_message(e.response, "Failed to validate employee"), status_code=status)
        except requests.exceptions.RequestException as e:
            logger.error(f"Employee validation failed for {email}: {e}")
            raise UpstreamServiceError("Failed to validate employee", status_code=500)

        employee = normalize_employee(data, email)
        logger.info("Employee validated", extra={"email": email, "employee_id": employee.frappe_employee_id})
        return employee

    def get_employee_details(self, employee_id: str) -> EmployeeProfile:
        try:
            data = self._service_call("get_employee_details", employee_id=employee_id)
        except requests.exceptions.RequestException as e:
            logger.error(f"Error getting employee details for {employee_id}: {e}")
            raise UpstreamServiceError("Failed to get employee details")
        return normalize_employee(data)

    def get_hr_staff(self) -> List[str]:
        """E-mails of all active HR staff."""
        try:
            emails = _extract_emails(self._service_call("get_hr_staff"))
        except requests.exceptions.RequestException as e:
            logger.error(f"Error getting HR staff: {e}")
            raise UpstreamServiceError("Failed to get HR staff from ERPNext")
        logger.info(f"HR staff retrieved: {len(emails)}")
        return emails

    def get_approvers_by_designation(self, designation: str) -> List[str]:
        try:
            emails = _extract_emails(self._service_call("get_approvers_by_designation", designation=designation))
        except requests.exceptions.RequestException as e:
            logger.error(f"Error getting approvers for designation '{designation}': {e}")
            raise UpstreamServiceError("Failed to get approvers by designation from ERPNext")
        logger.info(f"Approvers for '{designation}' retrieved: {len(emails)}")
        return emails

    def create_additional_salary(self, request: OvertimeRequestRecord) -> Dict[str, Any]:
        """Book approved hours as an Additional Salary document in ERPNext."""
        requested_on = request.created_at.date().isoformat() if request.created_at else "unknown"
        notes = (
            f"Reason: {request.reason}\n"
            f"Projects: {request.projects_affected}\n"
            f"Approved by: {request.approved_by}\n"
            f"Requested on: {requested_on}"
        )
        payload = {
            "operation": "create_additional_salary",
            "employee_id": request.frappe_employee_id,
            "payroll_date": request.payroll_date.isoformat(),
            "salary_component": request.request_type,
            "hours": abs(float(request.hours)),
            "notes": notes,
        }
        logger.info("Creating Additional Salary", extra={"employee_id": request.frappe_employee_id, "overtime_request_id": request.id})
        try:
            data = self._post(self.config.erpnext_service_path, payload)
        except requests.exceptions.RequestException as e:
            response = getattr(e, "response", None)
            logger.error(f"Error creating Additional Salary for request {request.id}: {e}")
            raise UpstreamServiceError(
                _error_message(response, "Failed to create Additional Salary in ERPNext"),
                status_code=response.status_code if response is not None else 502,
            )
        return data if isinstance(data, dict) else {"data": data}

    def send_notification(
        self,
        recipients: List[str],
        subject: str,
        message: str,
        request_data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Send an HTML e-mail. Failures are reported in the result, never raised."""
        logger.info(f"Sending notification '{subject}' to {len(recipients)} recipient(s)")
        try:
            data = self._post(
                self.config.send_notification_path,
                {"to": ",".join(recipients), "subject": subject, "message": message, "requestData": request_data},
            )
        except (requests.exceptions.RequestException, UpstreamServiceError) as e:
            logger.warning(f"Notification '{subject}' failed: {e}")
            return {"success": False, "error": str(e)}
        if isinstance(data, dict):
            return {"success": True, **data}
        return {"success": True, "data": data}
