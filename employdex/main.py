"""FastAPI main application entry point."""

import logging
import traceback
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from employdex.core.config import settings
from employdex.core.exceptions import EmployDexError
from employdex.core.middleware import setup_middleware
from employdex.core.rate_limiter import limiter
from employdex.db.base import Base
from employdex.db.seeds.seed_admin import seed_admin
from employdex.db.seeds.seed_rbac import seed_rbac
from employdex.db.session import SessionLocal, engine
from employdex.services.audit_service import AuditEntry, DatabaseAuditSink

from employdex.api.activity_logs import router as activity_logs_router
from employdex.api.auth import router as auth_router
from employdex.api.feature_toggles import router as feature_toggles_router
from employdex.api.health import router as health_router
from employdex.api.payment import router as payment_router
from employdex.api.permissions import router as permissions_router
from employdex.api.roles import router as roles_router
from employdex.api.users import router as users_router

import employdex.models  # noqa: F401  (registers tables on Base.metadata)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("employdex")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API", settings.APP_NAME)
    # Refuse to start without a usable signing secret.
    settings.validate_jwt_secret()

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_rbac(db, verbose=False)
        seed_admin(db, verbose=False)
    finally:
        db.close()
    logger.info("Database ready")

    yield

    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="EmployDEX API",
    description="Administrative backend: users, roles, permissions, feature toggles",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)

# Rate limiting
app.state.limiter = limiter

# Activity log sink; tests swap in a recording sink
app.state.audit_sink = DatabaseAuditSink(SessionLocal)


@app.exception_handler(EmployDexError)
async def employdex_exception_handler(request: Request, exc: EmployDexError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Validation failed", "errors": errors})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"error": f"Too many requests: {exc.detail}"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    incident_id = str(uuid.uuid4())
    logger.error(
        "Unhandled error %s on %s %s", incident_id, request.method, request.url.path,
        exc_info=exc,
    )
    sink = getattr(request.app.state, "audit_sink", None)
    if sink is not None:
        sink.record(
            AuditEntry(
                action="ERROR",
                entity="system",
                details={
                    "incident_id": incident_id,
                    "path": request.url.path,
                    "method": request.method,
                    "error": repr(exc),
                    "trace": traceback.format_exception(type(exc), exc, exc.__traceback__)[-3:],
                },
                ip_address=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent", "")[:500],
            )
        )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "incident_id": incident_id},
    )


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(permissions_router, prefix="/api")
app.include_router(feature_toggles_router, prefix="/api")
app.include_router(activity_logs_router, prefix="/api")
app.include_router(payment_router, prefix="/api")
app.include_router(health_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }
