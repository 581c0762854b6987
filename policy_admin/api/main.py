"""
FastAPI application - Main entry point

Run with: uvicorn policy_admin.api.main:app
"""

import logging
import os
from urllib.parse import urlparse

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from policy_admin import __version__
from policy_admin.api.applications_router import api as applications_api
from policy_admin.api.dependencies import postgres_db, require_api_key
from policy_admin.api.policies_router import api as policies_api
from policy_admin.schema import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    ValidationFailure,
    violations_to_dict,
)

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Policy Administration API",
    description="Policies and applications with admin-defined dynamic fields",
    version=__version__,
    dependencies=[Depends(require_api_key)],  # protect everything by default
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(policies_api, prefix="/api/v1")
app.include_router(applications_api, prefix="/api/v1")


# ============================================================================
# ERROR MAPPING
# ============================================================================
@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "error": "validation_error",
                "message": exc.message,
                "violations": [v.to_dict() for v in exc.violations],
                "field_errors": violations_to_dict(exc.violations),
            }
        },
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"error": "schema_error", "message": exc.message, "errors": list(exc.errors)}},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": exc.message})


# ============================================================================
# HEALTH
# ============================================================================
@app.get("/")
async def root():
    return {"name": "Policy Administration API", "version": __version__}


@app.get("/health")
async def health():
    try:
        ok = postgres_db.ping()
    except Exception as e:
        logger.warning("Health check failed: %s", e)
        ok = False
    return {
        "status": "healthy" if ok else "degraded",
        "database": postgres_db.backend_name,
    }


# ============================================================================
# STARTUP
# ============================================================================
@app.on_event("startup")
async def startup_event():
    logger.info("Starting Policy Administration API...")

    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        try:
            parsed = urlparse(db_url)
            logger.info(
                "DATABASE_URL target: scheme=%s host=%s port=%s db=%s use_postgres=%s",
                parsed.scheme,
                parsed.hostname,
                parsed.port or 5432,
                (parsed.path or "").lstrip("/"),
                os.getenv("USE_POSTGRES", ""),
            )
        except ValueError as e:
            logger.warning("Could not parse DATABASE_URL for startup logging: %s", e)
    else:
        logger.info("DATABASE_URL not set; using in-memory PostgresDB")

    try:
        postgres_db.create_tables()
        logger.info("Database tables initialized")
    except Exception as e:
        logger.error("Error initializing database: %s", e)
