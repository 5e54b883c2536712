from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import date, datetime
from typing import List, Literal, Optional

from overtime_api.models.overtime_request import RequestStatus

ALLOWED_MINUTES = (0, 15, 30, 45)


class OvertimeRequestCreate(BaseModel):
    """Web form payload. Field names follow the form (camelCase)."""
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    requestType: Literal["Overtime", "Undertime"]
    dateAffected: date
    numberOfHours: int = Field(ge=1, le=8)
    minutes: int
    reason: str = Field(min_length=10, max_length=500)
    projectTaskAssociated: str = Field(min_length=3, max_length=200)

    @field_validator("minutes")
    @classmethod
    def minutes_in_quarters(cls, value: int) -> int:
        if value not in ALLOWED_MINUTES:
            raise ValueError(f"minutes must be one of {list(ALLOWED_MINUTES)}")
        return value

    @property
    def signed_hours(self) -> float:
        return float(-self.numberOfHours if self.requestType == "Undertime" else self.numberOfHours)


class OvertimeRequestRecord(BaseModel):
    """Storage-agnostic view of a request row."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    frappe_employee_id: str
    employee_name: Optional[str] = None
    payroll_date: date
    hours: float
    minutes: int = 0
    reason: str
    projects_affected: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    reject_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def status(self) -> RequestStatus:
        if self.approved_by is None:
            return RequestStatus.PENDING
        if self.reject_reason is not None:
            return RequestStatus.REJECTED
        return RequestStatus.APPROVED

    @property
    def is_resolved(self) -> bool:
        return self.approved_by is not None or self.reject_reason is not None

    @property
    def request_type(self) -> str:
        return "Overtime" if self.hours >= 0 else "Undertime"

    def to_response(self, **extra) -> dict:
        data = self.model_dump(mode="json")
        data["status"] = self.status.value
        data["request_type"] = self.request_type
        data.update(extra)
        return data


class RequestFilters(BaseModel):
    employee_id: Optional[str] = None
    status: Optional[RequestStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class RequestStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    totalHours: float = 0.0


class DuplicateCheckResult(BaseModel):
    hasDuplicate: bool
    duplicates: List[OvertimeRequestRecord] = []


class RejectRequestBody(BaseModel):
    reason: Optional[str] = None


class StatusUpdateWebhook(BaseModel):
    requestId: int
    status: Optional[str] = None
    approvedBy: Optional[str] = None
    rejectReason: Optional[str] = None
