# cuub_backend/services/token_store.py
import logging
import threading
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from cuub_backend.services.db_client import get_engine

logger = logging.getLogger(__name__)


class TokenStore:
    """
    Single-row holder for the current Relink bearer token (table `token`, column `value`).
    """

    def __init__(self, engine: Optional[Engine] = None):
        self._engine = engine
        self._write_lock = threading.Lock()

    def _get_engine(self) -> Engine:
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    def read(self) -> Optional[str]:
        # store 掛掉時當成沒有 token，讓呼叫端去 refresh
        try:
            with self._get_engine().connect() as conn:
                row = conn.execute(text("SELECT value FROM token LIMIT 1")).first()
        except SQLAlchemyError as e:
            logger.error(f"Error getting token from database: {e}")
            return None

        if row is None or not row[0]:
            return None
        return row[0].strip() or None

    def replace(self, new_token: str) -> bool:
        if not new_token or not new_token.strip():
            raise ValueError("token must be a non-empty string")

        try:
            with self._write_lock, self._get_engine().begin() as conn:
                if conn.dialect.name == "postgresql":
                    # serialise concurrent replaces so the table never holds two rows
                    conn.execute(text("LOCK TABLE token IN EXCLUSIVE MODE"))
                conn.execute(text("DELETE FROM token"))
                conn.execute(text("INSERT INTO token (value) VALUES (:value)"), {"value": new_token})
        except SQLAlchemyError as e:
            logger.error(f"Error updating token in database: {e}")
            return False

        logger.info("Token updated in database")
        return True


_token_store = None
_token_store_lock = threading.Lock()


def get_token_store() -> TokenStore:
    global _token_store
    with _token_store_lock:
        if _token_store is None:
            _token_store = TokenStore()
    return _token_store
