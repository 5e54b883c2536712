"""
User and session models.
Users are created from Google sign-in and enriched with ERPNext data.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from overtime_api.database import Base


class UserRole(str, enum.Enum):
    """
    Closed set of application roles.

    - OWNER: Company owner, may act on any unresolved request
    - HR: HR staff, may act on any unresolved request and delegates for the owner
    - PROJECT_COORDINATOR: Sees all requests, approves direct reports
    - EMPLOYEE: Self-service, approves direct reports if they have any
    """
    OWNER = "Owner"
    HR = "HR"
    PROJECT_COORDINATOR = "Project Coordinator"
    EMPLOYEE = "Employee"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    google_id = Column(String, nullable=True)
    profile_picture = Column(String, nullable=True)

    role = Column(Enum(UserRole, values_callable=lambda e: [m.value for m in e]), default=UserRole.EMPLOYEE, nullable=False)

    # ERPNext context
    erpnext_employee_id = Column(String, nullable=True, index=True)
    designation = Column(String, nullable=True)
    reports_to = Column(String, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"


class UserSession(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    session_token = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, ForeignKey("users.email"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="sessions")
