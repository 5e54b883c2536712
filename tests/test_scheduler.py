import pytest

from apscheduler.schedulers.background import BackgroundScheduler

from overtime_api.core.config import SchedulerSettings
from overtime_api.dependencies import store_scope
from overtime_api.models.activity_log import ActivityLog
from overtime_api.services.scheduler import DAILY_REMINDER_JOB, SchedulerService


@pytest.fixture
def config():
    return SchedulerSettings(enabled=True, daily_reminder_cron="0 8 * * 1-5", timezone="Asia/Manila")


@pytest.fixture
def service(relay, config):
    scheduler = SchedulerService(store_scope, relay, config=config, scheduler=BackgroundScheduler(timezone=config.timezone))
    yield scheduler
    scheduler.stop_all()


def _activities(db_session, activity_type=None):
    db_session.expire_all()
    query = db_session.query(ActivityLog)
    if activity_type:
        query = query.filter(ActivityLog.activity_type == activity_type)
    return query.all()


def test_initialize_registers_daily_reminder(service):
    service.initialize()

    status = service.get_jobs_status()

    assert [job["name"] for job in status] == [DAILY_REMINDER_JOB]
    assert status[0]["schedule"] == "0 8 * * 1-5"
    assert status[0]["timezone"] == "Asia/Manila"
    assert status[0]["running"] is True
    assert status[0]["nextRunTime"] is not None


def test_invalid_cron_does_not_crash_startup(relay):
    bad = SchedulerSettings(enabled=True, daily_reminder_cron="not a cron", timezone="Asia/Manila")
    service = SchedulerService(store_scope, relay, config=bad, scheduler=BackgroundScheduler())

    service.initialize()

    assert service.get_jobs_status() == []
    service.stop_all()


def test_stop_all_clears_jobs(service):
    service.initialize()
    service.stop_all()
    assert service.jobs == {}
    assert service.scheduler.running is False


def test_approvers_are_hr_and_coordinators_deduplicated(service, relay):
    relay.hr_staff = ["hr@rooche.digital", "pc@rooche.digital"]
    assert service.get_all_approvers() == ["hr@rooche.digital", "pc@rooche.digital", "lead.pc@rooche.digital"]


def test_no_pending_requests_logs_cron_success(service, relay, db_session):
    result = service.send_daily_reminder()

    assert result == {"sent": False, "pendingCount": 0, "approverCount": 0}
    assert relay.sent == []
    logs = _activities(db_session, "cron_job")
    assert len(logs) == 1
    assert logs[0].status == "success"


def test_no_approvers_logs_cron_success(service, relay, make_request, db_session):
    make_request()
    relay.hr_staff = []
    relay.designations = {}

    result = service.send_daily_reminder()

    assert result["sent"] is False
    assert result["pendingCount"] == 1
    assert relay.sent == []
    assert _activities(db_session, "cron_job")[0].details["approverCount"] == 0


def test_reminder_is_sent_for_pending_requests(service, relay, make_request, db_session):
    make_request()
    make_request()
    make_request(approved_by="hr@rooche.digital")

    result = service.send_daily_reminder()

    assert result == {"sent": True, "pendingCount": 2, "approverCount": 3}
    mail = relay.sent[0]
    assert mail["subject"] == "Daily Reminder: 2 Pending Overtime/Undertime Request(s)"
    assert mail["requestData"]["notificationType"] == DAILY_REMINDER_JOB
    reminder_logs = _activities(db_session, "daily_reminder")
    assert len(reminder_logs) == 1
    assert reminder_logs[0].status == "success"


def test_failed_send_is_recorded(service, relay, make_request, db_session):
    make_request()
    relay.notification_success = False

    result = service.send_daily_reminder()

    assert result["sent"] is False
    assert _activities(db_session, "daily_reminder")[0].status == "failed"
    cron = _activities(db_session, "cron_job")
    assert cron[0].status == "failed"
    assert "stack" in cron[0].details


def test_unexpected_error_is_logged_not_raised(service, relay, make_request, db_session):
    make_request()

    def explode():
        raise RuntimeError("relay exploded")

    relay.get_hr_staff = explode

    result = service.send_daily_reminder()

    assert result["sent"] is False
    assert "relay exploded" in result["error"]
    assert _activities(db_session, "cron_job")[0].status == "failed"


def test_manual_trigger_runs_the_job(service, relay, make_request):
    make_request()
    assert service.trigger_daily_reminder()["sent"] is True
