import logging
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from overtime_api.core.exceptions import AuthenticationError, LoginRejectedError, NotFoundError
from overtime_api.core.security import as_utc, generate_session_token, session_expiration
from overtime_api.models.user import UserRole
from overtime_api.schemas.auth import GoogleProfile, UserRecord
from overtime_api.schemas.employee import ERPNextEmployee
from overtime_api.services.access_control import AccessChecker
from overtime_api.services.erpnext import ERPNextClient
from overtime_api.services.oauth import GoogleOAuthClient
from overtime_api.storage.base import RequestStore

logger = logging.getLogger(__name__)


class LoginResult(NamedTuple):
    user: UserRecord
    session_token: str
    is_new_user: bool


def determine_role(employee: Optional[ERPNextEmployee], is_owner: bool = False) -> UserRole:
    """Initial role for a first-time user, derived from the ERPNext designation."""
    if employee is None:
        return UserRole.EMPLOYEE
    if is_owner:
        return UserRole.OWNER
    designation = (employee.designation or "").lower()
    if "hr" in designation:
        return UserRole.HR
    if "coordinator" in designation or "manager" in designation:
        return UserRole.PROJECT_COORDINATOR
    return UserRole.EMPLOYEE


def is_session_valid(expires_at: datetime, is_active: bool = True, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return is_active and as_utc(expires_at) > as_utc(now)


class AuthService:
    def __init__(
        self,
        store: RequestStore,
        erpnext: ERPNextClient,
        oauth: GoogleOAuthClient,
        access_checker: AccessChecker
    ):
        self.store = store
        self.erpnext = erpnext
        self.oauth = oauth
        self.access_checker = access_checker

    def login(self, code: str) -> LoginResult:
        """
        Complete a Google sign-in and open a session.

        Raises:
            AuthenticationError: The authorization code could not be exchanged.
            LoginRejectedError: Domain not allowed, or the tracker denied access.
        """
        profile = self.oauth.exchange_code(code)

        if not self.oauth.check_domain_access(profile.email):
            logger.warning(f"Login from unauthorized domain: {profile.email}")
            raise LoginRejectedError("unauthorized_domain", "Email domain is not allowed")

        if not self.access_checker.check_user_access(profile.email):
            logger.warning(f"CET access denied for {profile.email}")
            raise LoginRejectedError(
                "access_denied",
                "You do not have permission to access this application. "
                "Please contact your administrator to request access."
            )

        user = self.store.get_user_by_email(profile.email)
        is_new_user = user is None
        if is_new_user:
            user = self._register(profile)
        else:
            user = self.store.update_user(profile.email, {
                "full_name": profile.full_name or user.full_name,
                "google_id": profile.google_id or user.google_id,
                "profile_picture": profile.profile_picture,
                "last_login": datetime.now(timezone.utc),
            })

        token = generate_session_token()
        self.store.create_session(token, user.email, session_expiration())
        logger.info(f"Session opened for {user.email}", extra={"role": user.role.value, "new_user": is_new_user})
        return LoginResult(user=user, session_token=token, is_new_user=is_new_user)

    def _register(self, profile: GoogleProfile) -> UserRecord:
        employee = self.erpnext.get_employee_by_email(profile.email)
        is_owner = self.erpnext.is_company_owner(employee.employee_id) if employee else False
        role = determine_role(employee, is_owner)
        logger.info(f"Registering {profile.email} as {role.value}")
        return self.store.create_user({
            "email": profile.email,
            "full_name": profile.full_name,
            "google_id": profile.google_id,
            "profile_picture": profile.profile_picture,
            "role": role,
            "erpnext_employee_id": employee.employee_id if employee else None,
            "designation": employee.designation if employee else None,
            "reports_to": employee.reports_to if employee else None,
            "last_login": datetime.now(timezone.utc),
        })

    def authenticate(self, session_token: Optional[str]) -> UserRecord:
        if not session_token:
            raise AuthenticationError("No session token provided")
        user = self.store.get_session_user(session_token, datetime.now(timezone.utc))
        if user is None:
            raise AuthenticationError()
        return user

    def logout(self, session_token: str) -> None:
        self.store.deactivate_session(session_token)

    def sync_with_erpnext(self, user: UserRecord) -> UserRecord:
        employee = self.erpnext.get_employee_by_email(user.email)
        if employee is None:
            raise NotFoundError("Employee not found in ERPNext")
        return self.store.update_user(user.email, {
            "erpnext_employee_id": employee.employee_id,
            "designation": employee.designation,
            "reports_to": employee.reports_to,
        })
