"""
Health and dependency endpoints.
"""

from __future__ import annotations

import os

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

import core.config as config
from core.db import DB, _get_schema_revisions
from core.services.moderation import moderation_circuit_breaker


router = APIRouter()


def _check_db_health() -> dict:
    if DB.engine is None:
        return {"ok": False, "error": "db_not_initialized"}

    try:
        with DB.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:
        return {"ok": False, "error": str(exc)}

    current_rev, head_rev = _get_schema_revisions(DB.engine)
    schema_ok = head_rev is None or current_rev == head_rev
    return {
        "ok": schema_ok,
        "schema_revision": current_rev,
        "schema_expected": head_rev,
        "schema_up_to_date": schema_ok,
    }


def _check_moderation_health() -> dict:
    breaker_status = moderation_circuit_breaker.status()
    if config.MODERATION_PROVIDER == "none":
        status = "disabled"
    elif breaker_status.get("open"):
        status = "cooldown"
    elif not config.OPENAI_API_KEY:
        status = "unconfigured"
    else:
        status = "ready"
    return {
        "status": status,
        "provider": config.MODERATION_PROVIDER,
        "image_policy": config.IMAGE_MODERATION_POLICY,
        "circuit_breaker": breaker_status,
    }


def _check_payments_config() -> dict:
    return {
        "secret_key_configured": bool(config.STRIPE_SECRET_KEY),
        "webhook_secret_configured": bool(config.STRIPE_WEBHOOK_SECRET),
        "price_configured": bool(config.STRIPE_PRICE_TILE),
    }


@router.get("/health")
async def health():
    """Health check endpoint."""
    db_health = _check_db_health()
    moderation_status = _check_moderation_health()
    if not db_health.get("ok"):
        raise HTTPException(
            status_code=503,
            detail={"database": db_health, "moderation": moderation_status},
        )

    return {
        "status": "healthy",
        "service": "TileWall",
        "version": "0.1.0",
        "instance_id": os.environ.get("TILEWALL_INSTANCE_ID", "tilewall-1"),
        "database": db_health,
        "moderation": moderation_status,
        "payments": _check_payments_config(),
    }
