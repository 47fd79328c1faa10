import logging
import secrets
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from admin import router as admin_router
from auth import router as auth_router
from categories import router as categories_router
from core import config, db, responses, storage
from core.errors import CatalogError
from projects import router as projects_router
from uploads import router as uploads_router
from videos import router as videos_router

logging.basicConfig(
    level=config.log_level(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("directory-api")

_STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Initialize the DB pool once per process.
    await db.init_pool()
    logger.info("api_started environment=%s prefix=%s", config.environment(), config.api_prefix())
    try:
        yield
    finally:
        await db.close_pool()


app = FastAPI(title="Ecosystem Directory API", version=config.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    if exc.status_code >= 500:
        logger.warning("request_failed path=%s kind=%s message=%s", request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=responses.failure(exc.message))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=responses.failure("Validation error", details=details),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=responses.failure(str(exc.detail) or "Request failed"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    error_id = secrets.token_hex(4)
    logger.exception("unexpected_error id=%s path=%s", error_id, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=responses.failure("Internal server error", errorId=error_id),
    )


health_router = APIRouter(prefix="/health")


@health_router.get("")
async def health() -> dict:
    return {
        "success": True,
        "message": "Ecosystem Directory API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": config.APP_VERSION,
        "environment": config.environment(),
    }


@health_router.get("/status")
async def health_status() -> dict:
    database_ok = await db.check_connection()
    return responses.ok(
        {
            "status": "healthy" if database_ok else "degraded",
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": config.APP_VERSION,
            "environment": config.environment(),
            "database": "connected" if database_ok else "disconnected",
        }
    )


api_prefix = config.api_prefix()
app.include_router(health_router, prefix=api_prefix, tags=["health"])
app.include_router(auth_router.router, prefix=api_prefix, tags=["auth"])
app.include_router(categories_router.router, prefix=api_prefix, tags=["categories"])
app.include_router(projects_router.router, prefix=api_prefix, tags=["projects"])
app.include_router(videos_router.router, prefix=api_prefix, tags=["videos"])
app.include_router(uploads_router.router, prefix=api_prefix, tags=["uploads"])
app.include_router(admin_router.router, prefix=api_prefix, tags=["admin"])

# Public blob URLs (UPLOAD_BASE_URL) resolve here when served by this process.
app.mount("/uploads", storage.PublicFiles(directory=config.upload_dir(), check_dir=False), name="uploads")


@app.get("/")
def root() -> dict:
    return {"message": "ecosystem directory api", "docs": "/docs", "apiPrefix": api_prefix}
