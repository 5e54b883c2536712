"""
Recurring jobs. Currently a single one: the workday digest of pending requests
sent to every approver.
"""
import logging
import time
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from apscheduler.job import Job
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from overtime_api.core.config import settings, SchedulerSettings
from overtime_api.services import email_templates
from overtime_api.services.activity_log import ActivityLogService
from overtime_api.services.notification_routing import dedupe
from overtime_api.services.workflow_relay import WorkflowRelay

logger = logging.getLogger(__name__)

DAILY_REMINDER_JOB = "daily_reminder"

StoreScope = Callable[[], AbstractContextManager]


class SchedulerService:
    def __init__(
        self,
        store_scope: StoreScope,
        relay: WorkflowRelay,
        config: Optional[SchedulerSettings] = None,
        scheduler: Optional[BackgroundScheduler] = None
    ):
        self.store_scope = store_scope
        self.relay = relay
        self.config = config or settings.scheduler
        self.scheduler = scheduler or BackgroundScheduler(timezone=self.config.timezone)
        self.jobs: Dict[str, Job] = {}

    def initialize(self):
        logger.info("Initializing scheduler service")
        try:
            self.schedule_daily_reminder()
            if not self.scheduler.running:
                self.scheduler.start()
        except (ValueError, LookupError) as e:
            # Bad cron expression or unknown timezone; the API keeps serving
            logger.error(f"Failed to initialize scheduler: {e}", exc_info=True)
            return
        logger.info(f"Scheduler initialized with {len(self.jobs)} job(s)")

    def schedule_daily_reminder(self) -> Job:
        trigger = CronTrigger.from_crontab(self.config.daily_reminder_cron, timezone=self.config.timezone)
        job = self.scheduler.add_job(
            self.send_daily_reminder,
            trigger=trigger,
            id=DAILY_REMINDER_JOB,
            name="Daily reminder for pending requests",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.jobs[DAILY_REMINDER_JOB] = job
        logger.info(
            "Daily reminder job scheduled",
            extra={"schedule": self.config.daily_reminder_cron, "timezone": self.config.timezone}
        )
        return job

    def get_all_approvers(self) -> List[str]:
        """HR staff, Project Coordinators and Lead Project Coordinators, deduplicated."""
        hr_staff = self.relay.get_hr_staff()
        coordinators = self.relay.get_approvers_by_designation("Project Coordinator")
        lead_coordinators = self.relay.get_approvers_by_designation("Lead Project Coordinator")
        approvers = dedupe(hr_staff + coordinators + lead_coordinators)
        logger.info(
            f"Retrieved {len(approvers)} approver(s)",
            extra={"hr_count": len(hr_staff), "pc_count": len(coordinators), "lead_pc_count": len(lead_coordinators)}
        )
        return approvers

    def format_daily_reminder_email(self, pending_requests) -> email_templates.EmailContent:
        return email_templates.daily_reminder({"requests": pending_requests})

    def send_daily_reminder(self) -> Dict[str, Any]:
        """One run of the digest job. Failures are recorded in the activity log, never raised."""
        started = time.monotonic()
        logger.info("Starting daily reminder job")

        with self.store_scope() as store:
            activity = ActivityLogService(store)
            try:
                pending = store.list_pending_requests()
                if not pending:
                    logger.info("No pending requests for daily reminder")
                    activity.log_cron_success(DAILY_REMINDER_JOB, {
                        "pendingCount": 0, "message": "No pending requests to remind about"
                    })
                    return {"sent": False, "pendingCount": 0, "approverCount": 0}

                approvers = self.get_all_approvers()
                if not approvers:
                    logger.warning("No approvers found for daily reminder")
                    activity.log_cron_success(DAILY_REMINDER_JOB, {
                        "pendingCount": len(pending), "approverCount": 0,
                        "message": "No approvers found to send reminders"
                    })
                    return {"sent": False, "pendingCount": len(pending), "approverCount": 0}

                mail = self.format_daily_reminder_email(pending)
                result = self.relay.send_notification(approvers, mail.subject, mail.message, {
                    "notificationType": DAILY_REMINDER_JOB,
                    "pendingCount": len(pending),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                })
            except Exception as e:
                logger.error(f"Daily reminder job failed: {e}", exc_info=True)
                activity.log_cron_failure(DAILY_REMINDER_JOB, e)
                return {"sent": False, "error": str(e)}

            sent = bool(result.get("success"))
            activity.log_daily_reminder(approvers, len(pending), success=sent)
            if not sent:
                error = RuntimeError(result.get("error") or "Notification relay rejected the reminder")
                logger.error(f"Failed to send daily reminder: {error}")
                activity.log_cron_failure(DAILY_REMINDER_JOB, error, {
                    "approverCount": len(approvers), "pendingCount": len(pending)
                })

        logger.info(
            "Daily reminder finished",
            extra={"sent": sent, "pending_count": len(pending), "duration_ms": round((time.monotonic() - started) * 1000)}
        )
        return {"sent": sent, "pendingCount": len(pending), "approverCount": len(approvers)}

    def trigger_daily_reminder(self) -> Dict[str, Any]:
        logger.info("Manually triggering daily reminder")
        return self.send_daily_reminder()

    def get_jobs_status(self) -> List[Dict[str, Any]]:
        status = []
        for name, job in self.jobs.items():
            # Jobs added before start() only get a next_run_time once the scheduler runs
            job = self.scheduler.get_job(name) or job
            next_run = getattr(job, "next_run_time", None)
            status.append({
                "name": name,
                "schedule": self.config.daily_reminder_cron if name == DAILY_REMINDER_JOB else None,
                "timezone": self.config.timezone,
                "running": self.scheduler.running and next_run is not None,
                "nextRunTime": next_run.isoformat() if next_run else None,
            })
        return status

    def stop_all(self):
        logger.info("Stopping all scheduled jobs")
        for name in list(self.jobs):
            if self.scheduler.get_job(name):
                self.scheduler.remove_job(name)
        self.jobs.clear()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("All scheduled jobs stopped")
