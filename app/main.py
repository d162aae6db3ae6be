from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from app.api.v1.routes import router as api_router
from app.core.config import get_settings, parse_cors_origins
import logging
import time
from app.core.database import Base, engine, SessionLocal
from app.core.logging import configure_logging
from app.middlewares.rate_limit import limiter
from app.services.scheduler import shutdown_scheduler, start_scheduler


settings = get_settings()

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
_started_at = time.time()


@app.exception_handler(SQLAlchemyTimeoutError)
async def sqlalchemy_timeout_handler(request, exc):
    logger.warning("Database pool timeout on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Service is busy. Please retry in a moment."},
    )


allow_origins = parse_cors_origins(settings.cors_origins or "")
logger.info("CORS allow_origins=%s", allow_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.on_event("startup")
def on_startup():
    if settings.auto_create_tables:
        # Optional local fallback for fresh environments.
        try:
            Base.metadata.create_all(bind=engine)
        except Exception as exc:
            logger.warning("DB unavailable on startup, skipping table creation: %s", exc)
    if settings.scheduler_enabled:
        start_scheduler()


@app.on_event("shutdown")
def on_shutdown():
    shutdown_scheduler()


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/healthz")
def healthz():
    # Liveness: process is up.
    return {
        "status": "ok",
        "uptime_seconds": int(max(0, time.time() - _started_at)),
        "service": settings.app_name,
    }


@app.get("/readyz")
def readyz():
    # Readiness: database is reachable.
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "ready",
            "uptime_seconds": int(max(0, time.time() - _started_at)),
        }
    except Exception as exc:
        logger.warning("Readiness DB check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "detail": "database_unavailable"},
        )
    finally:
        db.close()
