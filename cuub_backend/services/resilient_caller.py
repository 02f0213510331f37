# cuub_backend/services/resilient_caller.py
import logging
import threading
from typing import Callable, Optional

import requests

from cuub_backend.models.relink_models import TOKEN_UNAVAILABLE, CallOutcome
from cuub_backend.services.token_refresher import SingleFlightRefresher, get_token_refresher
from cuub_backend.services.token_store import TokenStore, get_token_store

logger = logging.getLogger(__name__)

# op(token) -> CallOutcome, e.g. functools.partial(fetch_cabinet, station_id)
RelinkOperation = Callable[[str], CallOutcome]


class ResilientCaller:
    """
    Call the Relink API with the stored token; on 401/403 refresh once and retry once.
    Non-auth failures are returned as-is.
    """

    def __init__(self, token_store: TokenStore, refresher: SingleFlightRefresher):
        self.token_store = token_store
        self.refresher = refresher

    def call_once(self, op: RelinkOperation, token: Optional[str]) -> CallOutcome:
        if not token:
            return CallOutcome.other_failure(TOKEN_UNAVAILABLE)
        try:
            return op(token)
        except requests.RequestException as e:
            logger.error(f"Relink call raised: {e}")
            return CallOutcome.other_failure(f"network error: {e}")

    def call_with_policy(self, op: RelinkOperation) -> CallOutcome:
        refreshed = False
        token = self.token_store.read()

        if not token:
            logger.warning("No token found in database, attempting to get new token...")
            token = self.refresher.refresh()
            refreshed = True
            if not token:
                logger.error("Failed to get token")
                return CallOutcome.other_failure(TOKEN_UNAVAILABLE)

        outcome = self.call_once(op, token)
        if not outcome.is_auth_failure:
            return outcome

        # 剛剛才 refresh 過還是 401 → 不再 login 第二次
        if refreshed:
            return outcome

        logger.warning("Relink API returned unauthorized, refreshing token and retrying...")
        new_token = self.refresher.refresh()
        if not new_token:
            logger.error("Token refresh failed, returning original unauthorized outcome")
            return outcome

        return self.call_once(op, new_token)


_caller = None
_caller_lock = threading.Lock()


def get_resilient_caller() -> ResilientCaller:
    global _caller
    with _caller_lock:
        if _caller is None:
            _caller = ResilientCaller(get_token_store(), get_token_refresher())
    return _caller
