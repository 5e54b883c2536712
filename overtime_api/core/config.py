import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class StorageSettings(BaseModel):
    # "postgresql" uses SQLAlchemy against DATABASE_URL, "supabase" uses the hosted REST backend
    db_type: str = Field(default=os.getenv("DB_TYPE", "postgresql"))
    database_url: str = Field(default=os.getenv("DATABASE_URL", "sqlite:///./overtime.db"))
    supabase_url: Optional[str] = Field(default=os.getenv("SUPABASE_URL"))
    supabase_key: Optional[str] = Field(default=os.getenv("SUPABASE_KEY"))


class RelaySettings(BaseModel):
    base_url: Optional[str] = Field(default=os.getenv("N8N_BASE_URL"))
    validate_employee_path: Optional[str] = Field(default=os.getenv("N8N_WEBHOOK_VALIDATE_EMPLOYEE"))
    erpnext_service_path: str = Field(default=os.getenv("N8N_WEBHOOK_ERPNEXT_SERVICE", "/webhook/erpnext-service"))
    send_notification_path: str = Field(default=os.getenv("N8N_WEBHOOK_SEND_NOTIFICATION", "/webhook/send-notification"))
    use_erpnext_service: bool = Field(default=_env_bool("N8N_USE_ERPNEXT_SERVICE", "false"))
    timeout_seconds: int = 30


class ERPNextSettings(BaseModel):
    base_url: str = Field(default=os.getenv("ERPNEXT_BASE_URL", "https://erp.example.com"))
    api_key: Optional[str] = Field(default=os.getenv("ERPNEXT_API_KEY"))
    api_secret: Optional[str] = Field(default=os.getenv("ERPNEXT_API_SECRET"))
    owner_designations: List[str] = ["Owner", "CEO", "Managing Director", "President"]
    timeout_seconds: int = 15


class OAuthSettings(BaseModel):
    client_id: Optional[str] = Field(default=os.getenv("GOOGLE_CLIENT_ID"))
    client_secret: Optional[str] = Field(default=os.getenv("GOOGLE_CLIENT_SECRET"))
    redirect_uri: str = Field(default=os.getenv("GOOGLE_REDIRECT_URI", "http://localhost:3000/api/auth/google/callback"))
    allowed_domains: List[str] = Field(default_factory=lambda: _env_list("ALLOWED_EMAIL_DOMAINS", "rooche.digital,rooche.net"))
    session_expiration_days: int = Field(default=int(os.getenv("SESSION_EXPIRATION_DAYS", "5")))


class AccessControlSettings(BaseModel):
    """Centralized Employee Tracker (CET) gate checked at login."""
    enabled: bool = Field(default=_env_bool("CET_ENABLED", "true"))
    base_url: Optional[str] = Field(default=os.getenv("CET_BASE_URL"))
    api_key: Optional[str] = Field(default=os.getenv("CET_API_KEY"))
    tool_name: str = "OTS"
    timeout_seconds: int = 5


class SchedulerSettings(BaseModel):
    enabled: bool = Field(default=_env_bool("SCHEDULER_ENABLED", "true"))
    daily_reminder_cron: str = Field(default=os.getenv("DAILY_REMINDER_CRON", "0 8 * * 1-5"))
    timezone: str = Field(default=os.getenv("SCHEDULER_TIMEZONE", "Asia/Manila"))


class OrgSettings(BaseModel):
    # ERPNext id of the company owner; HR acts as delegate for the owner's direct reports
    owner_employee_id: str = Field(default=os.getenv("OWNER_EMPLOYEE_ID", "HR-EMP-00001"))
    owner_escalation_email: Optional[str] = Field(default=os.getenv("OWNER_ESCALATION_EMAIL"))
    sender_signature: str = "Rooche Digital Automations"


class Config(BaseModel):
    app_name: str = "RD Overtime System API"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:5173")
    cors_origins: List[str] = Field(default_factory=lambda: _env_list("CORS_ORIGINS", "http://localhost:5173"))

    # Shared secret the workflow relay sends on status callbacks; unchecked when unset
    webhook_secret: Optional[str] = os.getenv("WEBHOOK_SECRET")

    # Rate limiting
    rate_limit: str = os.getenv("RATE_LIMIT", "100 per 15 minutes")
    rate_limit_enabled: bool = _env_bool("RATE_LIMIT_ENABLED", "true")

    storage: StorageSettings = StorageSettings()
    relay: RelaySettings = RelaySettings()
    erpnext: ERPNextSettings = ERPNextSettings()
    oauth: OAuthSettings = OAuthSettings()
    access_control: AccessControlSettings = AccessControlSettings()
    scheduler: SchedulerSettings = SchedulerSettings()
    org: OrgSettings = OrgSettings()


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment == "production":
    _critical_missing = []
    if not settings.webhook_secret:
        _critical_missing.append("WEBHOOK_SECRET")
    if not settings.oauth.client_id or not settings.oauth.client_secret:
        _critical_missing.append("GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET")
    if _critical_missing:
        raise RuntimeError(
            f"FATAL: The following settings must be provided in production: "
            f"{', '.join(_critical_missing)}. Set them as environment variables."
        )
elif not settings.webhook_secret:
    _logger.warning("WEBHOOK_SECRET is not set; status callbacks are accepted without verification.")
