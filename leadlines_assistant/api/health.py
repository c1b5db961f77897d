"""Readiness of the metadata store and the assistant provider configuration."""

from __future__ import annotations

from fastapi import APIRouter, Request
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from ..db.models import Base
from ..logging_utils import get_logger

router = APIRouter()
logger = get_logger(__name__)


async def _missing_tables(engine) -> list[str]:
    async with engine.connect() as conn:
        present = set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))
    return sorted(set(Base.metadata.tables) - present)


@router.get("/health")
async def health(request: Request):
    """``ok`` only when every metadata table exists and provider credentials are set.

    The provider itself is not called; a health check must not spend quota.
    """
    settings = request.app.state.settings
    missing: list[str] | None = None
    try:
        missing = await _missing_tables(request.app.state.engine)
    except SQLAlchemyError as exc:
        logger.warning("Metadata store unreachable", data={"error": type(exc).__name__})

    provider_configured = bool(settings.provider_api_key.get_secret_value() and settings.provider_base_url)
    db_ok = missing is not None
    tables_ok = db_ok and not missing
    status = "ok" if tables_ok and provider_configured else "degraded"
    return {
        "status": status,
        "db_ok": db_ok,
        "missing_tables": missing or [],
        "provider_configured": provider_configured,
    }
