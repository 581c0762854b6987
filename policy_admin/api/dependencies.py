"""
Shared FastAPI dependencies: record store, app config and the API key guard.
"""

import hmac
import logging
import os
from typing import Optional, Sequence

from dotenv import load_dotenv
from fastapi import Depends, Header, HTTPException, Request, status

from policy_admin.utils.config_loader import AppConfig, load_app_config

load_dotenv()

logger = logging.getLogger(__name__)


def use_postgres() -> bool:
    return bool(os.getenv("DATABASE_URL")) and os.getenv("USE_POSTGRES", "").lower() in ("1", "true", "yes")


# Real Postgres when env is set, else the in-memory store
if use_postgres():
    from policy_admin.database.postgres_real import PostgresDB

    postgres_db = PostgresDB(connection_string=os.environ["DATABASE_URL"])
else:
    from policy_admin.database.postgres import PostgresDB

    postgres_db = PostgresDB()

app_config: AppConfig = load_app_config()


def get_db():
    """Dependency for the record store"""
    return postgres_db


def get_config() -> AppConfig:
    """Dependency for application config"""
    return app_config


def key_is_accepted(candidate: Optional[str], accepted: Sequence[str]) -> bool:
    candidate = (candidate or "").strip()
    matches = [hmac.compare_digest(candidate.encode(), key.encode()) for key in accepted]
    return bool(candidate) and any(matches)


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
    config: AppConfig = Depends(get_config),
) -> None:
    """Reject requests outside `security.public_paths` that lack an accepted X-API-KEY."""
    security = config.security
    path = request.url.path
    if path in security.public_paths:
        return

    accepted = security.api_keys()
    if not accepted:
        logger.warning("No API keys configured in $%s; rejecting %s", security.api_keys_env, path)
    if not key_is_accepted(x_api_key, accepted):
        logger.info("Unauthorized request to %s (key %s)", path, "present" if x_api_key else "missing")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key",
        )
