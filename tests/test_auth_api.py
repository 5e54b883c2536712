import pytest
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

from overtime_api.models.user import User, UserRole, UserSession
from overtime_api.schemas.employee import ERPNextEmployee


def _callback(client, code):
    return client.get(f"/api/auth/google/callback?code={code}", follow_redirects=False)


def _query(response):
    return parse_qs(urlparse(response.headers["location"]).query)


def test_google_login_redirects_to_consent_screen(client):
    response = client.get("/api/auth/google/login", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"].startswith("https://accounts.google.com/")


def test_callback_without_code_redirects_with_error(client):
    response = client.get("/api/auth/google/callback", follow_redirects=False)
    assert response.status_code == 307
    assert "/login" in response.headers["location"]
    assert _query(response)["error"] == ["no_code"]


def test_first_login_registers_user_with_erpnext_role(client, oauth, erpnext, google_profile, db_session):
    oauth.profiles["good-code"] = google_profile
    erpnext.employees[google_profile.email] = ERPNextEmployee(
        employee_id="HR-EMP-00042", employee_name="Jane Doe", designation="HR Officer", reports_to="HR-EMP-00001"
    )

    response = _callback(client, "good-code")

    assert response.status_code == 307
    params = _query(response)
    assert params["new_user"] == ["true"]
    token = params["session_token"][0]

    user = db_session.query(User).filter(User.email == google_profile.email).first()
    assert user.role == UserRole.HR
    assert user.erpnext_employee_id == "HR-EMP-00042"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == google_profile.email


def test_returning_user_is_not_flagged_new(client, oauth, google_profile, make_user):
    make_user(role=UserRole.EMPLOYEE, email=google_profile.email)
    oauth.profiles["code"] = google_profile

    response = _callback(client, "code")

    params = _query(response)
    assert "session_token" in params
    assert "new_user" not in params


def test_unauthorized_domain_is_rejected(client, oauth, google_profile):
    oauth.profiles["code"] = google_profile.model_copy(update={"email": "someone@gmail.com"})
    response = _callback(client, "code")
    assert _query(response)["error"] == ["unauthorized_domain"]


def test_access_gate_denial_carries_message(client, oauth, access_checker, google_profile):
    oauth.profiles["code"] = google_profile
    access_checker.allowed = False
    response = _callback(client, "code")
    params = _query(response)
    assert params["error"] == ["access_denied"]
    assert "permission" in params["message"][0]


def test_failed_code_exchange_redirects_auth_failed(client):
    response = _callback(client, "bogus")
    assert _query(response)["error"] == ["auth_failed"]


def test_me_requires_session(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_expired_session_is_rejected(client, make_user):
    _, headers = make_user(expires_in=timedelta(minutes=-5))
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401


def test_logout_deactivates_session(client, make_user, db_session):
    _, headers = make_user()
    response = client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200

    db_session.expire_all()
    session = db_session.query(UserSession).first()
    assert session.is_active is False
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_sync_erpnext_updates_profile(client, make_user, erpnext):
    user, headers = make_user(email="sync@rooche.digital")
    erpnext.employees["sync@rooche.digital"] = ERPNextEmployee(
        employee_id="HR-EMP-00077", designation="Developer", reports_to="HR-EMP-00010"
    )
    response = client.post("/api/auth/sync-erpnext", headers=headers)
    assert response.status_code == 200
    synced = response.json()["user"]
    assert synced["erpnext_employee_id"] == "HR-EMP-00077"
    assert synced["reports_to"] == "HR-EMP-00010"


def test_sync_erpnext_unknown_employee_is_404(client, make_user):
    _, headers = make_user()
    response = client.post("/api/auth/sync-erpnext", headers=headers)
    assert response.status_code == 404
