import json
import logging
from typing import Dict, List, Optional

import requests

from overtime_api.core.config import settings, ERPNextSettings
from overtime_api.schemas.employee import ERPNextEmployee

logger = logging.getLogger(__name__)


class ERPNextClient:
    """
    Direct read access to the ERPNext Employee resource.

    Lookups degrade instead of raising: a user unknown to ERPNext can still
    sign in, and an unreachable HR system just means an empty hierarchy.
    """

    def __init__(self, config: Optional[ERPNextSettings] = None, session: Optional[requests.Session] = None):
        self.config = config or settings.erpnext
        self.session = session or requests.Session()

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"token {self.config.api_key}:{self.config.api_secret}",
            "Content-Type": "application/json",
        }

    def _get(self, path: str, params: Optional[dict] = None) -> dict:
        response = self.session.get(
            f"{self.config.base_url.rstrip('/')}{path}",
            params=params,
            headers=self._headers,
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    def _list_employees(self, filters: list, fields: list) -> List[dict]:
        body = self._get(
            "/api/resource/Employee",
            params={"filters": json.dumps(filters), "fields": json.dumps(fields)},
        )
        return body.get("data") or []

    def get_employee_by_email(self, email: str) -> Optional[ERPNextEmployee]:
        try:
            rows = self._list_employees(
                [["company_email", "=", email], ["status", "=", "Active"]],
                ["name", "employee_name", "company_email", "designation", "reports_to", "status"],
            )
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"ERPNext employee lookup failed for {email}: {e}")
            return None

        if not rows:
            return None
        employee = rows[0]
        return ERPNextEmployee(
            employee_id=employee["name"],
            employee_name=employee.get("employee_name"),
            email=employee.get("company_email"),
            designation=employee.get("designation") or "Employee",
            reports_to=employee.get("reports_to"),
            status=employee.get("status"),
        )

    def get_direct_reports(self, employee_id: str) -> List[ERPNextEmployee]:
        """Active employees whose reports_to is employee_id."""
        try:
            rows = self._list_employees(
                [["reports_to", "=", employee_id], ["status", "=", "Active"]],
                ["name", "employee_name", "company_email"],
            )
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"ERPNext direct reports lookup failed for {employee_id}: {e}")
            return []

        return [
            ERPNextEmployee(
                employee_id=row["name"],
                employee_name=row.get("employee_name"),
                email=row.get("company_email"),
                reports_to=employee_id,
            )
            for row in rows
        ]

    def is_company_owner(self, employee_id: str) -> bool:
        try:
            employee = self._get(f"/api/resource/Employee/{employee_id}").get("data") or {}
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"ERPNext owner check failed for {employee_id}: {e}")
            return False
        designation = employee.get("designation") or ""
        return any(title in designation for title in self.config.owner_designations)
