# cuub_backend/services/login_provider.py
import logging
from typing import Optional

import requests
from pydantic import BaseModel

from cuub_backend.config import settings

logger = logging.getLogger(__name__)


class LoginResult(BaseModel):
    success: bool
    token: Optional[str] = None


class LoginProvider:
    """
    Strategy that mints a fresh Relink token. Slow (tens of seconds) and rate limited,
    so callers should go through SingleFlightRefresher rather than calling it directly.
    """

    def perform_login(self) -> LoginResult:
        raise NotImplementedError


class TokenEndpointLoginProvider(LoginProvider):
    """
    Calls the token-minting endpoint, which holds the Energo credentials, runs the
    browser login + captcha solver and answers with {"success": bool, "token": str}.
    """

    def __init__(self, url: str = None, timeout: float = None):
        self.url = url or settings.TOKEN_ENDPOINT_URL
        self.timeout = timeout if timeout is not None else settings.LOGIN_TIMEOUT_SECONDS

    def perform_login(self) -> LoginResult:
        logger.info("Refreshing token via token endpoint...")

        try:
            r = requests.get(self.url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error refreshing token: {e}")
            return LoginResult(success=False)

        if not r.ok:
            logger.error(f"Token refresh failed: {r.status_code} {r.reason}")
            return LoginResult(success=False)

        try:
            data = r.json()
        except ValueError:
            logger.error("Token refresh response is not JSON")
            return LoginResult(success=False)

        if not isinstance(data, dict) or not data.get("success") or not data.get("token"):
            logger.error(f"Token refresh response missing token: {data}")
            return LoginResult(success=False)

        logger.info("Successfully obtained new token")
        return LoginResult(success=True, token=data["token"])
