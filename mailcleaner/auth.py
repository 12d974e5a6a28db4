"""
Google OAuth2 helpers - consent URL and code exchange
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build

from mailcleaner.config import Settings


logger = logging.getLogger(__name__)

# Full mailbox scope is required for permanent deletion
SCOPE_GMAIL_FULL = 'https://mail.google.com/'
SCOPES = [SCOPE_GMAIL_FULL, 'openid', 'https://www.googleapis.com/auth/userinfo.email',
          'https://www.googleapis.com/auth/userinfo.profile']

GOOGLE_AUTH_URI = 'https://accounts.google.com/o/oauth2/auth'
GOOGLE_TOKEN_URI = 'https://oauth2.googleapis.com/token'

# Google may return the granted scopes in a different form than requested
os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")


@dataclass
class AuthResult:
    """Tokens and profile returned after a successful code exchange"""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    user_email: str = ''
    user_name: str = ''
    user_picture: str = ''

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "user_email": self.user_email,
            "user_name": self.user_name,
            "user_picture": self.user_picture,
            "expires_in": self.expires_in
        }


def build_oauth_flow(settings: Settings, state: Optional[str] = None) -> Flow:
    """Create an OAuth2 web flow from the GOOGLE_* settings"""
    settings.require_oauth()

    client_config = {
        "web": {
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "auth_uri": GOOGLE_AUTH_URI,
            "token_uri": GOOGLE_TOKEN_URI,
            "redirect_uris": [settings.google_redirect_url]
        }
    }

    return Flow.from_client_config(
        client_config,
        scopes=SCOPES,
        redirect_uri=settings.google_redirect_url,
        state=state,
        # login and callback build separate flows, so no PKCE verifier can be carried over
        autogenerate_code_verifier=False
    )


def authorization_url(settings: Settings, state: str = "state") -> str:
    """Google consent URL requesting offline access"""
    flow = build_oauth_flow(settings, state=state)
    auth_url, _ = flow.authorization_url(
        access_type='offline',
        include_granted_scopes='true',
        prompt='consent'
    )
    return auth_url


def fetch_user_info(creds: Credentials) -> dict:
    """Profile of the authenticated user from the oauth2 v2 API"""
    service = build('oauth2', 'v2', credentials=creds, cache_discovery=False)
    return service.userinfo().get().execute()


def exchange_code(settings: Settings, code: str) -> AuthResult:
    """Exchange an authorization code for tokens and the user's profile"""
    flow = build_oauth_flow(settings)
    flow.fetch_token(code=code)
    creds = flow.credentials

    user_info = fetch_user_info(creds)
    logger.info(f"Authenticated user {user_info.get('email', '(unknown)')}")

    expires_in = int(creds.expiry.timestamp()) if creds.expiry else None

    return AuthResult(
        access_token=creds.token,
        refresh_token=creds.refresh_token,
        expires_in=expires_in,
        user_email=user_info.get('email', ''),
        user_name=user_info.get('name', ''),
        user_picture=user_info.get('picture', '')
    )
