"""
CBSE Board Examinations API: examiners, answer-sheet evaluation and invigilation duties.
"""
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database.connection import Database
from auth.security import TokenIssuer
from core.exceptions import BoardExamError
from core.logger import logger
from middleware.security import (
    RateLimitMiddleware, SecurityHeadersMiddleware,
    setup_cors, setup_trusted_hosts
)
from middleware.auth_middleware import AuthRequiredMiddleware
from routers.auth import router as auth_router
from routers.users import router as users_router
from routers.schools import router as schools_router
from routers.examiners import router as examiners_router
from routers.answer_sheets import router as answer_sheets_router
from routers.invigilation import router as invigilation_router
from routers.dashboards import router as dashboards_router


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for FastAPI app.
    Bootstrap the schema and views, then wire shared services onto app.state.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {config.APP_NAME}...")
    logger.info("=" * 60)

    config.check_production_secrets()

    try:
        db = Database(
            database_url=config.DATABASE_URL,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW
        )
        db.bootstrap(
            attempts=config.DB_BOOTSTRAP_RETRIES,
            delay_seconds=config.DB_BOOTSTRAP_RETRY_DELAY
        )
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}", exc_info=True)
        raise

    app.state.db = db
    app.state.token_issuer = TokenIssuer(
        config.SECRET_KEY,
        algorithm=config.ALGORITHM,
        ttl_seconds=config.ACCESS_TOKEN_EXPIRE_SECONDS
    )
    app.state.session_secret = config.SESSION_SECRET
    app.state.session_expire_hours = config.SESSION_EXPIRE_HOURS

    logger.info("=" * 60)
    logger.info("Server ready!")
    logger.info(f"Environment: {config.ENVIRONMENT}")
    logger.info(f"API Docs: http://localhost:{config.PORT}/docs")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down...")
    db.engine.dispose()
    app.state.db = None
    logger.info("Database connections closed")


app = FastAPI(
    title=config.APP_NAME,
    description="Board examination management: schools, examiners, answer-sheet evaluation and invigilation",
    version=config.APP_VERSION,
    lifespan=lifespan
)


def error_response(status_code: int, message: str, code: str, fields=None) -> JSONResponse:
    content = {"error": message, "code": code}
    if fields:
        content["fields"] = list(fields)
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(BoardExamError)
async def board_exam_error_handler(request: Request, exc: BoardExamError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.code, exc.fields)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        if loc and loc[0] not in fields:
            fields.append(loc[0])
    message = "Missing or invalid fields: " + ", ".join(fields) if fields else "Validation failed"
    return error_response(400, message, "ValidationError", fields)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity violation on {request.method} {request.url.path}: {exc.orig}")
    return error_response(400, "Record already exists", "DuplicateKey")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    codes = {401: "Unauthorized", 403: "AccessDenied", 404: "NotFound", 405: "MethodNotAllowed"}
    code = codes.get(exc.status_code, "ValidationError" if exc.status_code < 500 else "UnexpectedFailure")
    return error_response(exc.status_code, str(exc.detail), code)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    message = "Internal server error" if config.ENVIRONMENT == "production" else str(exc) or "Internal server error"
    return error_response(500, message, "UnexpectedFailure")


# Setup security middleware
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    RateLimitMiddleware,
    requests_per_minute=config.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=config.RATE_LIMIT_PER_HOUR
)
app.add_middleware(AuthRequiredMiddleware)
setup_cors(app, config.CORS_ORIGINS, allow_credentials=config.CORS_ALLOW_CREDENTIALS)
if config.ENVIRONMENT == "production":
    setup_trusted_hosts(app, config.TRUSTED_HOSTS)

# Include routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(schools_router)
app.include_router(examiners_router)
app.include_router(answer_sheets_router)
app.include_router(invigilation_router)
app.include_router(dashboards_router)


@app.get("/")
async def root():
    """Root endpoint with API information. Public endpoint."""
    return {
        "message": config.APP_NAME,
        "version": config.APP_VERSION,
        "environment": config.ENVIRONMENT,
        "endpoints": {
            "auth": "/api/auth",
            "schools": "/api/schools",
            "subjects": "/api/subjects",
            "examiners": "/api/examiners",
            "students": "/api/students",
            "answer_sheets": "/api/answer-sheets",
            "invigilation": "/api/invigilation",
            "statistics": "/api/statistics",
            "dashboard": "/api/dashboard"
        },
        "docs": "/docs"
    }


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint for monitoring. Public endpoint."""
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "checks": {}
    }

    db = getattr(request.app.state, "db", None)
    if db is None:
        health_status["checks"]["database"] = {"status": "error", "error": "not initialized"}
        health_status["status"] = "degraded"
    else:
        try:
            with db.get_session() as session:
                session.execute(text("SELECT 1"))
            health_status["checks"]["database"] = {"status": "ok"}
        except Exception as e:
            logger.error(f"Health check database query failed: {e}")
            health_status["checks"]["database"] = {"status": "error", "error": str(e)}
            health_status["status"] = "degraded"

    return health_status


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
