import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from overtime_api.core.config import settings
from overtime_api.core.exceptions import AppException, LoginRejectedError
from overtime_api.dependencies import get_auth_service, get_oauth
from overtime_api.schemas.auth import UserRecord
from overtime_api.services.auth import AuthService
from overtime_api.services.oauth import GoogleOAuthClient
from overtime_api.routers.auth_deps import get_current_user, get_session_token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


def _login_error(reason: str, message: Optional[str] = None) -> RedirectResponse:
    params = {"error": reason}
    if message:
        params["message"] = message
    return RedirectResponse(f"{settings.frontend_url.rstrip('/')}/login?{urlencode(params)}")


@router.get("/google/login")
def google_login(oauth: GoogleOAuthClient = Depends(get_oauth)):
    return RedirectResponse(oauth.get_authorization_url())


@router.get("/google/callback")
def google_callback(code: Optional[str] = None, auth: AuthService = Depends(get_auth_service)):
    if not code:
        return _login_error("no_code")

    try:
        result = auth.login(code)
    except LoginRejectedError as e:
        return _login_error(e.reason, e.message if e.reason == "access_denied" else None)
    except AppException as e:
        logger.error(f"Google callback failed: {e.message}")
        return _login_error("auth_failed")

    params = {"session_token": result.session_token}
    if result.is_new_user:
        params["new_user"] = "true"
    return RedirectResponse(f"{settings.frontend_url}?{urlencode(params)}")


@router.get("/me")
def read_current_user(current_user: UserRecord = Depends(get_current_user)):
    return {"success": True, "user": current_user.model_dump(mode="json")}


@router.post("/logout")
def logout(
    current_user: UserRecord = Depends(get_current_user),
    token: Optional[str] = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service)
):
    auth.logout(token)
    logger.info(f"User {current_user.email} logged out")
    return {"success": True, "message": "Logged out successfully"}


@router.post("/sync-erpnext")
def sync_erpnext(
    current_user: UserRecord = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service)
):
    user = auth.sync_with_erpnext(current_user)
    return {"success": True, "user": user.model_dump(mode="json"), "message": "User data synced with ERPNext"}
