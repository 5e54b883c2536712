from pydantic import BaseModel
from typing import Optional


class EmployeeProfile(BaseModel):
    """Employee as returned by the workflow relay's validate/get-details operations."""
    frappe_employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    designation: Optional[str] = None
    reports_to: Optional[str] = None
    company_email: Optional[str] = None


class ERPNextEmployee(BaseModel):
    """Employee read directly from the ERPNext REST API."""
    employee_id: str
    employee_name: Optional[str] = None
    email: Optional[str] = None
    designation: Optional[str] = "Employee"
    reports_to: Optional[str] = None
    status: Optional[str] = None
