import logging
from typing import Iterable, List, Optional

from overtime_api.core.config import settings
from overtime_api.schemas.employee import EmployeeProfile
from overtime_api.services.workflow_relay import WorkflowRelay

logger = logging.getLogger(__name__)


def dedupe(emails: Iterable[str]) -> List[str]:
    seen = []
    for email in emails:
        if email and email not in seen:
            seen.append(email)
    return seen


class NotificationRouter:
    """
    Picks e-mail recipients for a new request from the organisational hierarchy.

    None of the public methods raise: a failing lookup contributes an empty list.
    """

    def __init__(self, relay: WorkflowRelay, owner_employee_id: Optional[str] = None, owner_escalation_email: Optional[str] = None):
        self.relay = relay
        self.owner_employee_id = owner_employee_id or settings.org.owner_employee_id
        self.owner_escalation_email = owner_escalation_email or settings.org.owner_escalation_email

    def _company_email(self, employee_id: str) -> Optional[str]:
        details = self.relay.get_employee_details(employee_id)
        return details.company_email if details else None

    def get_approvers(self, employee: EmployeeProfile) -> List[str]:
        designation = employee.designation or ""
        reports_to = employee.reports_to
        logger.info("Determining approvers", extra={"designation": designation, "reports_to": reports_to})

        try:
            if reports_to and reports_to == self.owner_employee_id:
                # Owner's reports are handled by the HR mailbox
                email = self.owner_escalation_email or self._company_email(reports_to)
                return [email] if email else []

            if "Project Coordinator" in designation:
                approvers = self.get_approvers_by_designation("Project Coordinator")
            elif "Lead Generation" in designation:
                approvers = self.get_approvers_by_designation("Lead Project Coordinator")
            elif reports_to:
                supervisor_email = self._company_email(reports_to)
                if not supervisor_email:
                    logger.warning(f"Direct supervisor {reports_to} has no company_email")
                approvers = [supervisor_email] if supervisor_email else []
            else:
                logger.warning("No reports_to found for employee")
                approvers = []
        except Exception as e:
            logger.error(f"Error determining approvers: {e}", extra={"designation": designation, "reports_to": reports_to})
            return []

        approvers = dedupe(approvers)
        logger.info(f"Approvers determined: {len(approvers)}")
        return approvers

    def get_hr_staff(self) -> List[str]:
        try:
            return self.relay.get_hr_staff()
        except Exception as e:
            logger.error(f"Error fetching HR staff: {e}")
            return []

    def get_approvers_by_designation(self, designation: str) -> List[str]:
        try:
            return self.relay.get_approvers_by_designation(designation)
        except Exception as e:
            logger.error(f"Error fetching approvers for designation '{designation}': {e}")
            return []

    def get_all_recipients(self, employee: EmployeeProfile) -> List[str]:
        """HR staff plus hierarchy approvers, deduplicated in first-seen order."""
        try:
            hr_staff = self.get_hr_staff()
            approvers = self.get_approvers(employee)
        except Exception as e:
            logger.error(f"Error getting notification recipients: {e}")
            return []
        recipients = dedupe(hr_staff + approvers)
        logger.info(
            f"Notification recipients determined: {len(recipients)}",
            extra={"hr_count": len(hr_staff), "approver_count": len(approvers)}
        )
        return recipients
