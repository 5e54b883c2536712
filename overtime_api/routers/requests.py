import logging
import secrets
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, status

from overtime_api.core.config import settings
from overtime_api.core.exceptions import AccessDeniedError, AppException
from overtime_api.dependencies import get_request_service
from overtime_api.models.overtime_request import RequestStatus
from overtime_api.schemas.auth import UserRecord
from overtime_api.schemas.request import (
    OvertimeRequestCreate,
    RejectRequestBody,
    RequestFilters,
    StatusUpdateWebhook,
)
from overtime_api.services.authorization import is_admin_viewer
from overtime_api.services.realtime import ADMIN_ROOM, manager
from overtime_api.services.request_service import RequestService
from overtime_api.routers.auth_deps import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/requests",
    tags=["requests"]
)


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
def submit_request(
    payload: OvertimeRequestCreate,
    background_tasks: BackgroundTasks,
    current_user: UserRecord = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    # Admin viewers may file on behalf of others
    if not is_admin_viewer(current_user) and payload.email.lower() != current_user.email.lower():
        raise AccessDeniedError("You can only submit requests for your own account")

    submission = service.submit(payload)
    record = submission.request

    background_tasks.add_task(service.notify_submission, payload, submission)
    background_tasks.add_task(manager.broadcast, ADMIN_ROOM, "new-request", record.to_response())

    return {
        "success": True,
        "message": "Request submitted successfully. Admins have been notified.",
        "data": {
            "id": record.id,
            "employeeId": submission.employee.frappe_employee_id,
            "employeeName": submission.employee.employee_name,
            "status": record.status.value,
            "duplicate": len(submission.duplicates) > 0,
        }
    }


@router.get("")
@router.get("/", include_in_schema=False)
def list_requests(
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    current_user: UserRecord = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    filters = RequestFilters(employee_id=employee_id, status=status_filter, date_from=date_from, date_to=date_to)
    requests = service.list_requests(current_user, filters)
    return {"success": True, "count": len(requests), "data": requests}


@router.get("/stats")
def get_statistics(
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    current_user: UserRecord = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    return {"success": True, "data": service.statistics(employee_id).model_dump()}


@router.get("/pending")
def list_pending_requests(
    current_user: UserRecord = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    requests = [r.to_response() for r in service.list_pending(current_user)]
    return {"success": True, "count": len(requests), "data": requests, "userRole": current_user.role.value}


@router.get("/check-duplicate")
def check_duplicate(
    email: str,
    payroll_date: date = Query(..., alias="payrollDate"),
    current_user: UserRecord = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    result = service.check_duplicate(email, payroll_date)
    return {
        "success": True,
        "data": {
            "hasDuplicate": result.hasDuplicate,
            "duplicates": [r.to_response() for r in result.duplicates],
        }
    }


@router.post("/webhook/status-update")
def handle_status_update(
    payload: StatusUpdateWebhook,
    x_webhook_secret: Optional[str] = Header(None)
):
    """Callback from the workflow relay. Acknowledged and logged only."""
    if settings.webhook_secret and not secrets.compare_digest(x_webhook_secret or "", settings.webhook_secret):
        raise AccessDeniedError("Invalid webhook secret")
    logger.info("Received status update from workflow relay", extra={"overtime_request_id": payload.requestId, "status": payload.status})
    return {"success": True, "message": "Status update received"}


@router.get("/employee/{employee_id}")
def list_requests_by_employee(
    employee_id: str,
    current_user: UserRecord = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    requests = [r.to_response() for r in service.list_by_employee(current_user, employee_id)]
    return {"success": True, "count": len(requests), "data": requests}


@router.get("/{request_id}")
def get_request(
    request_id: int,
    current_user: UserRecord = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    return {"success": True, "data": service.get_request(current_user, request_id).to_response()}


@router.post("/{request_id}/approve")
def approve_request(
    request_id: int,
    background_tasks: BackgroundTasks,
    current_user: UserRecord = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    result = service.approve(current_user, request_id)
    background_tasks.add_task(service.notify_decision, result.request)

    response = {
        "success": True,
        "message": "Request approved successfully. Additional Salary has been created in ERPNext.",
        "data": result.request.to_response(),
    }
    if result.erpnext_error:
        response["message"] = (
            f"Request approved successfully. Note: {result.erpnext_error}. "
            "The Additional Salary must be created manually in ERPNext."
        )
        response["warning"] = "Additional Salary creation failed in ERPNext"
        response["erpNextError"] = result.erpnext_error
    return response


@router.post("/{request_id}/reject")
def reject_request(
    request_id: int,
    body: RejectRequestBody,
    background_tasks: BackgroundTasks,
    current_user: UserRecord = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    reason = (body.reason or "").strip()
    if not reason:
        raise AppException("reason is required", status_code=400, error_code="VALIDATION_ERROR")

    result = service.reject(current_user, request_id, reason)
    background_tasks.add_task(service.notify_decision, result.request)
    return {"success": True, "message": "Request rejected successfully", "data": result.request.to_response()}
