import logging
from typing import Optional
from urllib.parse import quote

import requests

from overtime_api.core.config import settings, AccessControlSettings

logger = logging.getLogger(__name__)


class AccessChecker:
    """Asks the Centralized Employee Tracker whether an account may use this tool. Denies on any doubt."""

    def __init__(self, config: Optional[AccessControlSettings] = None, session: Optional[requests.Session] = None):
        self.config = config or settings.access_control
        self.session = session or requests.Session()

    def check_user_access(self, email: str) -> bool:
        if not self.config.enabled:
            return True
        if not self.config.base_url or not self.config.api_key:
            logger.warning("CET configuration missing, denying access by default")
            return False

        url = f"{self.config.base_url.rstrip('/')}/api/v1/auth/check-access-simple/{quote(email)}"
        try:
            response = self.session.get(
                url,
                params={"tool": self.config.tool_name, "api_key": self.config.api_key},
                timeout=self.config.timeout_seconds,
            )
            if response.status_code == 404:
                logger.warning(f"User {email} not found in CET")
                return False
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.Timeout:
            logger.error(f"CET request timed out for {email}")
            return False
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"CET API error for {email}: {e}")
            return False

        if body.get("has_access"):
            logger.info(f"CET access granted for {email}")
            return True
        logger.warning(f"CET access denied for {email}: {body.get('message')}")
        return False
