import pytest

from overtime_api.dependencies import get_scheduler
from overtime_api.main import app
from overtime_api.models.activity_log import ActivityLog
from overtime_api.models.user import UserRole


def test_settings_crud_for_hr(client, make_user):
    _, headers = make_user(role=UserRole.HR)

    put = client.put("/api/settings/reminder_hour", json={"value": 8, "description": "Hour of the digest"}, headers=headers)
    assert put.status_code == 200
    assert put.json()["data"]["value"] == 8

    assert client.get("/api/settings/reminder_hour", headers=headers).json()["data"]["value"] == 8
    assert len(client.get("/api/settings", headers=headers).json()["data"]) == 1

    assert client.delete("/api/settings/reminder_hour", headers=headers).status_code == 200
    assert client.get("/api/settings/reminder_hour", headers=headers).status_code == 404


def test_setting_write_requires_value(client, make_user):
    _, headers = make_user(role=UserRole.OWNER)
    response = client.put("/api/settings/reminder_hour", json={"description": "no value"}, headers=headers)
    assert response.status_code == 400


def test_employees_can_read_but_not_write_settings(client, make_user):
    _, headers = make_user(role=UserRole.EMPLOYEE)
    assert client.get("/api/settings", headers=headers).status_code == 200
    assert client.put("/api/settings/x", json={"value": 1}, headers=headers).status_code == 403
    assert client.delete("/api/settings/x", headers=headers).status_code == 403


def test_settings_require_session(client):
    assert client.get("/api/settings").status_code == 401


def test_notification_recipients_roundtrip(client, make_user):
    _, headers = make_user(role=UserRole.HR)
    assert client.get("/api/settings/notification-recipients", headers=headers).json()["data"] == {"emails": []}

    response = client.put(
        "/api/settings/notification-recipients", json={"emails": ["payroll@rooche.digital"]}, headers=headers
    )

    assert response.status_code == 200
    data = client.get("/api/settings/notification-recipients", headers=headers).json()["data"]
    assert data == {"emails": ["payroll@rooche.digital"]}


def test_notification_recipients_reject_bad_email(client, make_user):
    _, headers = make_user(role=UserRole.HR)
    response = client.put("/api/settings/notification-recipients", json={"emails": ["nope"]}, headers=headers)
    assert response.status_code == 400


def test_admin_routes_reject_employees(client, make_user):
    _, headers = make_user(role=UserRole.EMPLOYEE)
    assert client.get("/api/admin/activity-logs", headers=headers).status_code == 403


def test_activity_logs_filter_and_stats(client, make_user, db_session):
    db_session.add_all([
        ActivityLog(activity_type="cron_job", description="ok", status="success", performed_by="system:cron"),
        ActivityLog(activity_type="cron_job", description="boom", status="failed", performed_by="system:cron"),
        ActivityLog(activity_type="notification_sent", description="mail", status="success", performed_by="system"),
    ])
    db_session.commit()
    _, headers = make_user(role=UserRole.PROJECT_COORDINATOR)

    logs = client.get("/api/admin/activity-logs", params={"activityType": "cron_job"}, headers=headers).json()
    assert logs["count"] == 2

    failed = client.get("/api/admin/activity-logs", params={"status": "failed"}, headers=headers).json()
    assert [log["description"] for log in failed["data"]] == ["boom"]

    stats = client.get("/api/admin/activity-logs/stats", headers=headers).json()["data"]
    counts = {(s["activity_type"], s["status"]): s["count"] for s in stats}
    assert counts[("cron_job", "failed")] == 1
    assert counts[("notification_sent", "success")] == 1


class StubScheduler:
    def __init__(self):
        self.triggered = 0

    def get_jobs_status(self):
        return [{"name": "daily_reminder", "schedule": "0 8 * * 1-5", "timezone": "Asia/Manila",
                 "running": True, "nextRunTime": None}]

    def trigger_daily_reminder(self):
        self.triggered += 1
        return {"sent": True}


@pytest.fixture
def stub_scheduler(client):
    stub = StubScheduler()
    app.dependency_overrides[get_scheduler] = lambda: stub
    return stub


def test_scheduler_status(client, make_user, stub_scheduler):
    _, headers = make_user(role=UserRole.HR)
    response = client.get("/api/admin/scheduler/status", headers=headers)
    assert response.json()["data"][0]["name"] == "daily_reminder"


def test_manual_daily_reminder_runs_in_background(client, make_user, stub_scheduler):
    _, headers = make_user(role=UserRole.OWNER)
    response = client.post("/api/admin/scheduler/trigger-daily-reminder", headers=headers)
    assert response.status_code == 200
    assert stub_scheduler.triggered == 1


def test_scheduler_status_uses_app_scheduler(client, make_user):
    _, headers = make_user(role=UserRole.HR)
    # Scheduler is disabled in tests, so no jobs are registered
    response = client.get("/api/admin/scheduler/status", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"] == []
