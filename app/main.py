import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import auth, calendar, clients, vapi
from app.core.config import _ENV_FILE, settings
from app.core.logging import configure_logging, mask

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info("Environment: %s, default timezone: %s", settings.env, settings.default_timezone)
    if settings.google_oauth_enabled:
        logger.info("Google OAuth: configured (client %s)", mask(settings.google_client_id, keep=10))
    else:
        logger.warning(
            "Google OAuth: NOT configured. Set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REDIRECT_URI in %s",
            _ENV_FILE,
        )
    logger.info("Twilio SMS: %s", "enabled" if settings.sms_enabled else "disabled (messages are logged)")
    logger.info("SMTP email: %s", "enabled" if settings.email_enabled else "disabled (messages are logged)")
    yield


app = FastAPI(
    title=f"{settings.site_name} Calendar API",
    description="Multi-tenant calendar availability and booking backend for voice assistants",
    version=settings.version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Refresh-Token"],
)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(clients.router, prefix="/api/v1")
app.include_router(calendar.router, prefix="/api/v1")
app.include_router(vapi.router)


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type, X-Refresh-Token",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """JSON errors with CORS headers; internals are only exposed outside production."""
    origin = request.headers.get("origin")
    headers = _cors_headers(origin)
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception on %s %s: %s", request.method, request.url.path, exc)
    detail = "Internal server error" if settings.env == "production" else f"{type(exc).__name__}: {exc}"
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
        headers=headers,
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/healthz")
async def healthz() -> JSONResponse:
    """Deployment probe; reports degraded while Google OAuth is unconfigured."""
    checks = {
        "googleOAuth": settings.google_oauth_enabled,
        "sms": settings.sms_enabled,
        "email": settings.email_enabled,
    }
    healthy = checks["googleOAuth"]
    return JSONResponse(
        status_code=200 if healthy else 206,
        content={
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": settings.version,
            "environment": settings.env,
            "checks": checks,
        },
    )


@app.get("/")
async def root() -> dict:
    return {
        "service": f"{settings.site_name} Calendar API",
        "version": settings.version,
        "endpoints": {
            "health": "GET /health",
            "availability": "GET /api/v1/get-availability",
            "booking": "POST /api/v1/book-appointment",
            "clients": "POST /api/v1/clients",
            "voiceWebhook": "POST /vapi-webhook",
        },
    }
