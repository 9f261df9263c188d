"""
Error-to-status mapping.

Every service exception is translated here and nowhere else. Bodies are
always ``{"error": message}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from familybudget.services.errors import (
    BudgetApiError,
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
)
from familybudget.services.storage import StorageError


logger = structlog.get_logger(__name__)


STATUS_CODES: dict[type, int] = {
    NotFoundError: 404,
    UnauthorizedError: 401,
    InvalidRequestError: 400,
    UpstreamError: 502,
}


def status_for(error: BudgetApiError) -> int:
    for error_type, status in STATUS_CODES.items():
        if isinstance(error, error_type):
            return status
    return 500


async def handle_budget_api_error(request: Request, exc: BudgetApiError) -> JSONResponse:
    status = status_for(exc)
    logger.info(
        "request_failed",
        method=request.method,
        path=request.url.path,
        status=status,
        error=str(exc),
    )
    return JSONResponse(status_code=status, content={"error": str(exc)})


async def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(
        "storage_failed",
        method=request.method,
        path=request.url.path,
        error=str(exc),
    )
    return JSONResponse(status_code=502, content={"error": "Document store unavailable"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BudgetApiError, handle_budget_api_error)
    app.add_exception_handler(StorageError, handle_storage_error)
