"""
HTTP Application

Builds the FastAPI app around a set of components. All error-to-JSON
conversion happens here; routes and services only raise.

Error body shape:
    {"message": "...", "code": "...", "details": {...}}
Internal errors also carry "error" with the underlying message.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from expense_ledger import __version__
from expense_ledger.api.dependencies import get_correlation_id
from expense_ledger.api.routes import transaction_router, user_router
from expense_ledger.config import Settings, get_settings
from expense_ledger.errors import InternalError, LedgerError
from expense_ledger.orchestrator import AppComponents, create_app_components
from expense_ledger.services.storage import StorageError


logger = structlog.get_logger(__name__)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation id and echo it back."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = get_correlation_id(request)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = str(correlation_id)
        return response


async def handle_ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            code=exc.code,
            error=exc.message,
        )
    else:
        logger.info(
            "request_rejected",
            path=request.url.path,
            code=exc.code,
            status_code=exc.status_code,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_request_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed JSON or wrong JSON types in the body or query string."""
    errors = [
        {
            "location": [str(part) for part in error.get("loc", ())],
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Invalid request"
    logger.info("request_rejected", path=request.url.path, code="validation_error")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "message": message,
            "code": "validation_error",
            "details": {"errors": errors},
        },
    )


async def _internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))

    components: AppComponents = request.app.state.components
    await components.audit_logger.log_error(
        error_type=type(exc).__name__,
        error_message=str(exc),
        details={"path": request.url.path, "method": request.method},
        correlation_id=get_correlation_id(request),
    )
    error = InternalError(error=str(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
    return await _internal_error_response(request, exc)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    return await _internal_error_response(request, exc)


def create_app(
    components: Optional[AppComponents] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        components: Pre-built components (tests inject in-memory ones).
            Built from settings when None.
        settings: Used only when components is None; defaults to
            get_settings()

    Returns:
        Configured app. Storage connects in the lifespan startup.
    """
    if components is None:
        components = create_app_components(settings or get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.components.startup()
        try:
            yield
        finally:
            await app.state.components.shutdown()

    app = FastAPI(
        title="Expense Ledger",
        version=__version__,
        debug=components.settings.app.debug_mode,
        lifespan=lifespan,
    )
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=components.settings.app.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(LedgerError, handle_ledger_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StorageError, handle_storage_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(user_router)
    app.include_router(transaction_router)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "storage_backend": "mongo" if components.mongo else "memory",
        }

    return app
