import re
import html
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from overtime_api.core.config import settings


def generate_session_token() -> str:
    """Opaque 256-bit session token, hex encoded."""
    return secrets.token_hex(32)


def session_expiration(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(days=settings.oauth.session_expiration_days)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes coming back from SQLite are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def sanitize_input(text: str) -> str:
    """Escape user-supplied text before it is interpolated into HTML e-mails."""
    if not isinstance(text, str):
        return text
    # Script blocks are dropped whole, everything else is escaped
    stripped = re.sub(r'<script.*?>.*?</script>', '', text, flags=re.DOTALL | re.IGNORECASE)
    return html.escape(stripped)
