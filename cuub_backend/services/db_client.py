# cuub_backend/services/db_client.py
import logging
import threading
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from cuub_backend.config import settings

logger = logging.getLogger(__name__)

_cached_engine = None
_engine_lock = threading.Lock()


def build_database_url():
    """
    DATABASE_URL 有設定就直接用；
    否則用 DB_* 組出 PostgreSQL URL。
    有 CLOUD_SQL_CONNECTION_NAME 時走 Cloud Run 的 unix socket (/cloudsql/<name>)。
    """
    if settings.DATABASE_URL:
        return settings.DATABASE_URL

    if settings.CLOUD_SQL_CONNECTION_NAME:
        logger.info("Using Cloud SQL unix socket connection")
        return URL.create(
            "postgresql+psycopg2",
            username=settings.DB_USER,
            password=settings.DB_PASS,
            database=settings.DB_NAME,
            query={"host": f"/cloudsql/{settings.CLOUD_SQL_CONNECTION_NAME}"},
        )

    logger.info("Using TCP connection")
    return URL.create(
        "postgresql+psycopg2",
        username=settings.DB_USER,
        password=settings.DB_PASS,
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
    )


def get_engine() -> Engine:
    """
    Lazy-load the SQLAlchemy engine, so importing the app never opens a connection.
    """
    global _cached_engine

    with _engine_lock:
        if _cached_engine is not None:
            return _cached_engine

        url = build_database_url()
        options = {"pool_pre_ping": True}
        if str(url).startswith("postgresql"):
            options["pool_timeout"] = settings.DB_TIMEOUT_SECONDS
            options["connect_args"] = {"connect_timeout": settings.DB_TIMEOUT_SECONDS}

        _cached_engine = create_engine(url, **options)
        return _cached_engine


def init_schema(engine: Engine):
    """Create token / users / user_stations if they do not exist yet."""
    if engine.dialect.name == "postgresql":
        user_pk = "id SERIAL PRIMARY KEY"
    else:
        user_pk = "id INTEGER PRIMARY KEY AUTOINCREMENT"

    statements = [
        "CREATE TABLE IF NOT EXISTS token (value TEXT NOT NULL)",
        f"""CREATE TABLE IF NOT EXISTS users (
            {user_pk},
            username TEXT NOT NULL UNIQUE,
            type TEXT NOT NULL DEFAULT 'HOST',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )""",
        """CREATE TABLE IF NOT EXISTS user_stations (
            user_id INTEGER NOT NULL REFERENCES users(id),
            station_id TEXT NOT NULL,
            role TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (user_id, station_id)
        )""",
    ]

    with engine.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))
    logger.info("Database schema ready")
