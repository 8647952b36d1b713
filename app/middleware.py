"""
Middleware configuration for the FastAPI app.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse

import core.config as config


@dataclass(frozen=True)
class RequestSizeLimitConfig:
    enabled: bool
    max_body_bytes: int


def load_request_size_limit_config_from_env() -> RequestSizeLimitConfig:
    return RequestSizeLimitConfig(
        enabled=config._get_bool("REQUEST_SIZE_LIMIT_ENABLED", True),
        max_body_bytes=config.MAX_REQUEST_BODY_BYTES,
    )


class RequestSizeLimitMiddleware:
    """Reject requests whose declared Content-Length exceeds the limit (413)."""

    def __init__(self, app, config: RequestSizeLimitConfig):
        self.app = app
        self.config = config

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not self.config.enabled:
            await self.app(scope, receive, send)
            return
        content_length = None
        for name, value in scope.get("headers") or []:
            if name == b"content-length":
                content_length = value
                break
        if content_length is not None:
            try:
                too_large = int(content_length) > self.config.max_body_bytes
            except ValueError:
                too_large = False
            if too_large:
                response = JSONResponse(
                    {"error": "request_too_large", "max_body_bytes": self.config.max_body_bytes},
                    status_code=413,
                )
                await response(scope, receive, send)
                return
        await self.app(scope, receive, send)


def configure_middleware(app) -> None:
    """Configure request size limits, host allowlist and CORS for the FastAPI app."""
    # Request size limits (keep CORS outermost to add headers on 413 responses)
    app.add_middleware(
        RequestSizeLimitMiddleware,
        config=load_request_size_limit_config_from_env(),
    )

    # Optional host allowlist for production deployments
    trusted_hosts_env = os.environ.get("TRUSTED_HOSTS", "")
    trusted_hosts = [host.strip() for host in trusted_hosts_env.split(",") if host.strip()]
    if trusted_hosts:
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=trusted_hosts,
        )

    cors_allowed_env = os.environ.get("CORS_ALLOWED_ORIGINS", "")
    if cors_allowed_env.strip():
        allow_origins = [origin.strip() for origin in cors_allowed_env.split(",") if origin.strip()]
    else:
        allow_origins = [
            config.SITE_URL or config.DEFAULT_BASE_URL,
            "http://localhost:3000",
        ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
