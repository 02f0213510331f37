# cuub_backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from cuub_backend.config.settings import DB_INIT_SCHEMA, LOG_LEVEL
from cuub_backend.services.db_client import get_engine, init_schema
from cuub_backend.services.exceptions import StationError

# === Import Routers ===
from cuub_backend.api.station_api import router as station_router    # Relink slots / pop
from cuub_backend.api.token_api import router as token_router        # Token refresh
from cuub_backend.api.user_api import router as user_router          # User CRUD

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if DB_INIT_SCHEMA:
        init_schema(get_engine())
    yield


app = FastAPI(
    title="CUUB Station Backend",
    description=(
        "Backend for: "
        "• Relink token lifecycle (single-flight refresh) "
        "• Station slot query / battery pop "
        "• User administration"
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Error envelope: {success: false, error} ===
@app.exception_handler(StationError)
async def station_error_handler(request: Request, exc: StationError):
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc.detail)})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    # 連不上 DB → 503，其他 SQL 錯誤 → 500
    status_code = 503 if isinstance(exc, OperationalError) else 500
    return JSONResponse(status_code=status_code, content={"success": False, "error": "Database error"})


app.include_router(station_router, tags=["Stations"])
app.include_router(token_router, tags=["Token"])
app.include_router(user_router, tags=["Users"])


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "cuub-station-backend",
    }
