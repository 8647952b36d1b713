"""
FastAPI app wiring for the tile wall.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

import core.config as config
from core.db import DB, init_db
from core.errors import (
    ConfigurationError,
    PaymentProviderError,
    TileAlreadyClaimed,
    ValidationIssue,
)
from core.services import moderation, payments
from app.middleware import configure_middleware
from app.routes.health import router as health_router
from app.routes.memories import router as memories_router
from app.routes.payments import router as payments_router
from app.routes.root import router as root_router
from app.routes.tiles import router as tiles_router
from app.routes.walls import router as walls_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize on startup, cleanup on shutdown."""
    init_db()
    moderation.init_moderation_client()
    payments.init_payment_gateway()
    try:
        yield
    finally:
        moderation.cleanup_moderation_client()
        if DB.engine:
            DB.engine.dispose()


async def _validation_issue_handler(request: Request, exc: ValidationIssue):
    return JSONResponse({"error": str(exc)}, status_code=400)


async def _request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = "Invalid request."
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = f"Invalid request: {location} {first.get('msg', '')}".strip()
    return JSONResponse({"error": detail}, status_code=400)


async def _tile_claimed_handler(request: Request, exc: TileAlreadyClaimed):
    return JSONResponse({"error": str(exc)}, status_code=409)


async def _configuration_error_handler(request: Request, exc: ConfigurationError):
    config.logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse({"error": str(exc)}, status_code=500)


async def _payment_provider_error_handler(request: Request, exc: PaymentProviderError):
    config.logger.error(f"Stripe checkout error: {exc}")
    return JSONResponse(
        {"error": "Unable to create checkout session.", "details": str(exc)},
        status_code=500,
    )


async def _unhandled_error_handler(request: Request, exc: Exception):
    config.logger.exception(f"Error in {request.method} {request.url.path}")
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def configure_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationIssue, _validation_issue_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(TileAlreadyClaimed, _tile_claimed_handler)
    app.add_exception_handler(ConfigurationError, _configuration_error_handler)
    app.add_exception_handler(PaymentProviderError, _payment_provider_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


def create_app(lifespan_handler=lifespan) -> FastAPI:
    app = FastAPI(title="TileWall", redirect_slashes=False, lifespan=lifespan_handler)
    configure_middleware(app)
    configure_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(root_router)
    app.include_router(memories_router)
    app.include_router(walls_router)
    app.include_router(payments_router)
    # Catch-all tile paths go last
    app.include_router(tiles_router)
    return app


app = create_app()
