from sqlalchemy import Column, Integer, String, Date, Float, DateTime, Text
from sqlalchemy.sql import func
from overtime_api.database import Base
import enum


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OvertimeRequest(Base):
    """
    Overtime/undertime claim for a payroll date.

    Status is derived, not stored: pending while approved_by is empty,
    rejected once reject_reason is set, approved otherwise. The sign of
    hours carries the type (negative for undertime).
    """
    __tablename__ = "overtime_requests"

    id = Column(Integer, primary_key=True, index=True)
    frappe_employee_id = Column(String, index=True, nullable=False)
    employee_name = Column(String, nullable=True)
    payroll_date = Column(Date, index=True, nullable=False)
    hours = Column(Float, nullable=False)
    minutes = Column(Integer, default=0, nullable=False)
    reason = Column(Text, nullable=False)
    projects_affected = Column(String, nullable=True)

    # Resolution: approved_by holds the acting user for both outcomes
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    reject_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
