import pytest
import os
from datetime import datetime, timedelta, timezone

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["DB_TYPE"] = "postgresql"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CET_ENABLED"] = "false"
os.environ["OWNER_EMPLOYEE_ID"] = "HR-EMP-00001"

from overtime_api.database import Base, SessionLocal, engine
from overtime_api.dependencies import get_access_checker, get_erpnext, get_oauth, get_relay
from overtime_api.main import app
from overtime_api.models.overtime_request import OvertimeRequest
from overtime_api.models.user import User, UserRole, UserSession
from overtime_api.schemas.auth import GoogleProfile
from overtime_api.schemas.employee import EmployeeProfile, ERPNextEmployee
from overtime_api.core.exceptions import AuthenticationError, UpstreamServiceError
from fastapi.testclient import TestClient

OWNER_ID = "HR-EMP-00001"


class FakeRelay:
    """In-memory stand-in for the n8n workflow relay."""

    def __init__(self):
        self.employees = {}
        self.hr_staff = ["hr@rooche.digital"]
        self.designations = {
            "Project Coordinator": ["pc@rooche.digital"],
            "Lead Project Coordinator": ["lead.pc@rooche.digital"],
        }
        self.sent = []
        self.salary_requests = []
        self.salary_error = None
        self.notification_success = True

    def add_employee(self, employee_id, email, name="Test Employee", designation="Developer", reports_to=None):
        self.employees[email] = EmployeeProfile(
            frappe_employee_id=employee_id,
            employee_name=name,
            designation=designation,
            reports_to=reports_to,
            company_email=email,
        )

    def validate_employee(self, email):
        return self.employees.get(email, EmployeeProfile(company_email=email))

    def get_employee_details(self, employee_id):
        for employee in self.employees.values():
            if employee.frappe_employee_id == employee_id:
                return employee
        return EmployeeProfile()

    def get_hr_staff(self):
        return list(self.hr_staff)

    def get_approvers_by_designation(self, designation):
        return list(self.designations.get(designation, []))

    def create_additional_salary(self, record):
        self.salary_requests.append(record)
        if self.salary_error:
            raise UpstreamServiceError(self.salary_error)
        return {"success": True}

    def send_notification(self, recipients, subject, message, request_data=None):
        self.sent.append({"to": list(recipients), "subject": subject, "message": message, "requestData": request_data})
        if not self.notification_success:
            return {"success": False, "error": "relay down"}
        return {"success": True}


class FakeERPNext:
    def __init__(self):
        self.employees = {}
        self.reports = {}
        self.owners = set()

    def add_report(self, manager_id, employee_id):
        self.reports.setdefault(manager_id, []).append(ERPNextEmployee(employee_id=employee_id, reports_to=manager_id))

    def get_employee_by_email(self, email):
        return self.employees.get(email)

    def get_direct_reports(self, employee_id):
        return list(self.reports.get(employee_id, []))

    def is_company_owner(self, employee_id):
        return employee_id in self.owners


class FakeOAuth:
    def __init__(self):
        self.profiles = {}
        self.allowed_domains = ["rooche.digital", "rooche.net"]

    def get_authorization_url(self):
        return "https://accounts.google.com/o/oauth2/v2/auth?client_id=test"

    def exchange_code(self, code):
        if code not in self.profiles:
            raise AuthenticationError("Failed to authenticate with Google")
        return self.profiles[code]

    def check_domain_access(self, email):
        return email.lower().split("@")[-1] in self.allowed_domains


class FakeAccessChecker:
    def __init__(self):
        self.allowed = True

    def check_user_access(self, email):
        return self.allowed


@pytest.fixture(scope="function", autouse=True)
def setup_database():
    """Fresh schema per test; background tasks open their own sessions on the shared engine."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def relay():
    return FakeRelay()


@pytest.fixture(scope="function")
def erpnext():
    return FakeERPNext()


@pytest.fixture(scope="function")
def oauth():
    return FakeOAuth()


@pytest.fixture(scope="function")
def access_checker():
    return FakeAccessChecker()


@pytest.fixture(scope="function")
def client(relay, erpnext, oauth, access_checker):
    """TestClient with every outbound integration replaced by an in-memory fake."""
    app.dependency_overrides[get_relay] = lambda: relay
    app.dependency_overrides[get_erpnext] = lambda: erpnext
    app.dependency_overrides[get_oauth] = lambda: oauth
    app.dependency_overrides[get_access_checker] = lambda: access_checker
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def make_user(db_session):
    """Create a user with an active session and return (user, auth headers)."""
    counter = {"n": 0}

    def _make_user(role=UserRole.EMPLOYEE, employee_id=None, email=None, expires_in=timedelta(days=5)):
        counter["n"] += 1
        email = email or f"user{counter['n']}@rooche.digital"
        user = User(
            email=email,
            full_name=f"User {counter['n']}",
            role=role,
            erpnext_employee_id=employee_id,
            is_active=True,
        )
        db_session.add(user)
        token = f"session-token-{counter['n']}"
        db_session.add(UserSession(
            session_token=token,
            email=email,
            expires_at=datetime.now(timezone.utc) + expires_in,
            is_active=True,
        ))
        db_session.commit()
        return user, {"Authorization": f"Bearer {token}"}
    return _make_user


@pytest.fixture(scope="function")
def make_request(db_session):
    """Insert an overtime request row directly."""
    def _make_request(employee_id="HR-EMP-00100", hours=2.0, payroll_date=None, approved_by=None, reject_reason=None):
        row = OvertimeRequest(
            frappe_employee_id=employee_id,
            employee_name="Jane Doe",
            payroll_date=payroll_date or datetime(2026, 10, 12).date(),
            hours=hours,
            minutes=30,
            reason="Production incident follow-up",
            projects_affected="Client Portal",
            approved_by=approved_by,
            reject_reason=reject_reason,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row
    return _make_request


@pytest.fixture(scope="function")
def google_profile():
    return GoogleProfile(
        email="jane@rooche.digital",
        full_name="Jane Doe",
        google_id="google-123",
        profile_picture="https://example.com/jane.png",
        email_verified=True,
    )
