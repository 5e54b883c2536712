import logging
from typing import Optional
from urllib.parse import urlencode

import requests

from overtime_api.core.config import settings, OAuthSettings
from overtime_api.core.exceptions import AuthenticationError
from overtime_api.schemas.auth import GoogleProfile

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
]


class GoogleOAuthClient:
    """Authorization-code exchange against Google's OAuth 2.0 endpoints."""

    def __init__(self, config: Optional[OAuthSettings] = None, session: Optional[requests.Session] = None):
        self.config = config or settings.oauth
        self.session = session or requests.Session()

    def get_authorization_url(self) -> str:
        params = {
            "client_id": self.config.client_id or "",
            "redirect_uri": self.config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> GoogleProfile:
        try:
            token_response = self.session.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "redirect_uri": self.config.redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=10,
            )
            token_response.raise_for_status()
            access_token = token_response.json()["access_token"]

            profile_response = self.session.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=10,
            )
            profile_response.raise_for_status()
            profile = profile_response.json()
        except (requests.exceptions.RequestException, KeyError, ValueError) as e:
            logger.error(f"Google OAuth code exchange failed: {e}")
            raise AuthenticationError(f"OAuth verification failed: {e}")

        return GoogleProfile(
            email=profile["email"],
            full_name=profile.get("name"),
            google_id=profile.get("sub"),
            profile_picture=profile.get("picture"),
            email_verified=bool(profile.get("email_verified")),
        )

    def check_domain_access(self, email: str) -> bool:
        domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
        return domain in [d.lower() for d in self.config.allowed_domains]
