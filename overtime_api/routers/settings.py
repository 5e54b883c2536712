from fastapi import APIRouter, Depends

from overtime_api.core.exceptions import AppException
from overtime_api.dependencies import get_settings_service
from overtime_api.schemas.auth import UserRecord
from overtime_api.schemas.settings import NotificationRecipients, SettingUpsert
from overtime_api.services.settings_service import SettingsService
from overtime_api.routers.auth_deps import get_current_user, require_settings_admin

router = APIRouter(
    prefix="/settings",
    tags=["settings"],
    dependencies=[Depends(get_current_user)]
)


@router.get("")
@router.get("/", include_in_schema=False)
def list_settings(service: SettingsService = Depends(get_settings_service)):
    return {"success": True, "data": [s.model_dump(mode="json") for s in service.get_all_settings()]}


# Declared before /{key} so the path is not captured as a key
@router.get("/notification-recipients")
def get_notification_recipients(service: SettingsService = Depends(get_settings_service)):
    return {"success": True, "data": service.get_notification_recipients().model_dump(mode="json")}


@router.put("/notification-recipients")
def update_notification_recipients(
    body: NotificationRecipients,
    current_user: UserRecord = Depends(require_settings_admin()),
    service: SettingsService = Depends(get_settings_service)
):
    setting = service.update_notification_recipients(body)
    return {"success": True, "message": "Notification recipients updated", "data": setting.model_dump(mode="json")}


@router.get("/{key}")
def get_setting(key: str, service: SettingsService = Depends(get_settings_service)):
    return {"success": True, "data": service.get_setting(key).model_dump(mode="json")}


@router.put("/{key}")
def update_setting(
    key: str,
    body: SettingUpsert,
    current_user: UserRecord = Depends(require_settings_admin()),
    service: SettingsService = Depends(get_settings_service)
):
    if body.value is None:
        raise AppException("value is required", status_code=400, error_code="VALIDATION_ERROR")
    setting = service.upsert_setting(key, body.value, body.description)
    return {"success": True, "message": "Setting updated successfully", "data": setting.model_dump(mode="json")}


@router.delete("/{key}")
def delete_setting(
    key: str,
    current_user: UserRecord = Depends(require_settings_admin()),
    service: SettingsService = Depends(get_settings_service)
):
    service.delete_setting(key)
    return {"success": True, "message": "Setting deleted successfully"}
