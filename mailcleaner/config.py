"""
Environment-driven settings for Mail Cleaner
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

from mailcleaner.errors import ConfigError
from mailcleaner.models import RATE_LIMIT_DELAY


# Load environment variables
load_dotenv()


class Settings:
    """Application settings read from the environment (and .env)"""

    def __init__(self):
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "8080"))
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        self.google_client_id = os.getenv("GOOGLE_CLIENT_ID", "")
        self.google_client_secret = os.getenv("GOOGLE_CLIENT_SECRET", "")
        self.google_redirect_url = os.getenv("GOOGLE_REDIRECT_URL", "")

        self.rate_limit_delay = float(os.getenv("RATE_LIMIT_DELAY", str(RATE_LIMIT_DELAY)))
        self.clean_timeout_seconds = self._optional_float("CLEAN_TIMEOUT_SECONDS")

    @staticmethod
    def _optional_float(name: str) -> Optional[float]:
        value = os.getenv(name)
        if not value:
            return None
        return float(value)

    @property
    def oauth_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret and self.google_redirect_url)

    def require_oauth(self) -> None:
        """Raise ConfigError unless all Google OAuth2 settings are present"""
        if not self.oauth_configured:
            raise ConfigError("missing Google OAuth2 env vars (GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URL)")

    @property
    def addr(self) -> str:
        return f"{self.host}:{self.port}"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
