"""Exception handlers mapping core errors to the API error envelope."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..exceptions import LeadlinesError
from ..logging_utils import get_logger

logger = get_logger(__name__)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the FastAPI app."""

    @app.exception_handler(LeadlinesError)
    async def leadlines_exception_handler(request: Request, exc: LeadlinesError) -> JSONResponse:
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            f"Request failed: {exc.message}",
            data={"code": exc.code, "status": exc.http_status, "details": exc.details},
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict(_request_id(request)))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled exception: {type(exc).__name__}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "E5000",
                    "message": "Internal server error",
                    "request_id": _request_id(request),
                }
            },
        )
