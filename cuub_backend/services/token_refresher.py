# cuub_backend/services/token_refresher.py
"""
Single-flight token refresh.

Overlapping requests that all discover a bad token share one login:
the first caller (leader) runs LoginProvider, everybody else waits on the
same Future. The Future stays attached for a short grace window after it
completes so requests arriving right behind the refresh reuse its result.
"""
import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Optional

from cuub_backend.config import settings
from cuub_backend.services.login_provider import LoginProvider, TokenEndpointLoginProvider
from cuub_backend.services.token_store import TokenStore, get_token_store

logger = logging.getLogger(__name__)

# extra time a waiter gives the leader on top of the login timeout
WAIT_MARGIN_SECONDS = 5.0


class SingleFlightRefresher:
    def __init__(
        self,
        login_provider: LoginProvider,
        token_store: TokenStore,
        grace_seconds: float = None,
        wait_timeout: float = None,
    ):
        self.login_provider = login_provider
        self.token_store = token_store
        self.grace_seconds = settings.REFRESH_GRACE_SECONDS if grace_seconds is None else grace_seconds
        if wait_timeout is None:
            wait_timeout = settings.LOGIN_TIMEOUT_SECONDS + WAIT_MARGIN_SECONDS
        self.wait_timeout = wait_timeout

        self._lock = threading.Lock()
        self._in_flight: Optional[Future] = None

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight is not None

    def refresh(self) -> Optional[str]:
        """
        Return a freshly minted token, or None if the login failed.
        All callers attached to the same cycle get the same answer.
        """
        with self._lock:
            future = self._in_flight
            is_leader = future is None
            if is_leader:
                future = Future()
                self._in_flight = future

        if is_leader:
            self._run_login(future)
        else:
            logger.info("Token refresh already in progress, waiting for existing refresh...")

        try:
            return future.result(timeout=self.wait_timeout)
        except FutureTimeoutError:
            logger.error(f"Timed out after {self.wait_timeout}s waiting for token refresh")
            return None

    def _run_login(self, future: Future):
        token = None
        try:
            result = self.login_provider.perform_login()
            if result.success and result.token:
                token = result.token
                # write-through before any waiter sees the token
                if not self.token_store.replace(token):
                    logger.error("New token could not be saved, continuing with in-memory token")
            else:
                logger.error("Failed to get token from login provider")
        except Exception as e:
            logger.exception(f"Error refreshing token: {e}")
            token = None
        finally:
            future.set_result(token)
            self._schedule_reset(future)

    def _schedule_reset(self, future: Future):
        if self.grace_seconds <= 0:
            self._reset(future)
            return
        timer = threading.Timer(self.grace_seconds, self._reset, args=(future,))
        timer.daemon = True
        timer.start()

    def _reset(self, future: Future):
        with self._lock:
            if self._in_flight is future:
                self._in_flight = None


_refresher = None
_refresher_lock = threading.Lock()


def get_token_refresher() -> SingleFlightRefresher:
    """Process-wide refresher; every request handler must share this one instance."""
    global _refresher
    with _refresher_lock:
        if _refresher is None:
            _refresher = SingleFlightRefresher(
                login_provider=TokenEndpointLoginProvider(),
                token_store=get_token_store(),
            )
    return _refresher
