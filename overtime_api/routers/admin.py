from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from overtime_api.dependencies import get_activity_log, get_scheduler
from overtime_api.services.activity_log import ActivityLogService
from overtime_api.services.scheduler import SchedulerService
from overtime_api.routers.auth_deps import require_admin_viewer

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_viewer())]
)


@router.get("/activity-logs")
def list_activity_logs(
    activity_type: Optional[str] = Query(None, alias="activityType"),
    status: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    activity: ActivityLogService = Depends(get_activity_log)
):
    logs = activity.get_recent_activities(activity_type=activity_type, status=status, limit=limit, offset=offset)
    return {"success": True, "count": len(logs), "data": [log.model_dump(mode="json") for log in logs]}


@router.get("/activity-logs/stats")
def activity_log_statistics(activity: ActivityLogService = Depends(get_activity_log)):
    stats = activity.get_statistics(days=7)
    return {"success": True, "data": [s.model_dump(mode="json") for s in stats]}


@router.get("/scheduler/status")
def scheduler_status(scheduler: SchedulerService = Depends(get_scheduler)):
    return {"success": True, "data": scheduler.get_jobs_status()}


@router.post("/scheduler/trigger-daily-reminder")
def trigger_daily_reminder(
    background_tasks: BackgroundTasks,
    scheduler: SchedulerService = Depends(get_scheduler)
):
    background_tasks.add_task(scheduler.trigger_daily_reminder)
    return {"success": True, "message": "Daily reminder triggered. Check activity logs for results."}
