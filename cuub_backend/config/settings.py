import os
from dotenv import load_dotenv

def load_env():
    if os.getenv("ENVIRONMENT") == "production":
        return

    base_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    for name in (".env", ".env.local"):
        env_path = os.path.join(base_dir, name)
        if os.path.exists(env_path):
            load_dotenv(env_path)

# Load env now
load_env()

# Database
DATABASE_URL = os.getenv("DATABASE_URL")
CLOUD_SQL_CONNECTION_NAME = os.getenv("CLOUD_SQL_CONNECTION_NAME")
DB_USER = os.getenv("DB_USER", "postgres")
DB_PASS = os.getenv("DB_PASS")
DB_NAME = os.getenv("DB_NAME", "postgres")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = int(os.getenv("DB_PORT", "5432"))
DB_TIMEOUT_SECONDS = int(os.getenv("DB_TIMEOUT_SECONDS", "10"))
DB_INIT_SCHEMA = os.getenv("DB_INIT_SCHEMA", "false").lower() in ("1", "true", "yes")

# Relink / Energo vendor API
RELINK_API_BASE = os.getenv("RELINK_API_BASE", "https://backend.energo.vip/api")
RELINK_REFERER = os.getenv("RELINK_REFERER", "https://backend.energo.vip/device/list")
RELINK_OID = os.getenv("RELINK_OID", "3526")
VENDOR_TIMEOUT_SECONDS = float(os.getenv("VENDOR_TIMEOUT_SECONDS", "15"))

# Token minting (browser login, captcha solver and Energo credentials live behind this endpoint)
TOKEN_ENDPOINT_URL = os.getenv("TOKEN_ENDPOINT_URL", "https://api.cuub.tech/token")
LOGIN_TIMEOUT_SECONDS = float(os.getenv("LOGIN_TIMEOUT_SECONDS", "60"))

# How long a finished refresh is shared with late callers
REFRESH_GRACE_SECONDS = float(os.getenv("REFRESH_GRACE_SECONDS", "2.0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
