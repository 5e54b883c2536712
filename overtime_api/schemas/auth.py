from pydantic import BaseModel, ConfigDict
from typing import Optional
from overtime_api.models.user import UserRole
from datetime import datetime


class UserRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: Optional[str] = None
    google_id: Optional[str] = None
    profile_picture: Optional[str] = None
    role: UserRole = UserRole.EMPLOYEE
    erpnext_employee_id: Optional[str] = None
    designation: Optional[str] = None
    reports_to: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SessionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_token: str
    email: str
    expires_at: datetime
    is_active: bool = True


class GoogleProfile(BaseModel):
    email: str
    full_name: Optional[str] = None
    google_id: Optional[str] = None
    profile_picture: Optional[str] = None
    email_verified: bool = False
