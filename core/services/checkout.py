"""
Checkout session initiation for a single tile.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session as DBSession

import core.config as config
from core.errors import ConfigurationError, TileAlreadyClaimed, ValidationIssue
from core.services.memory_shared import (
    find_memory,
    log_validation_issue,
    logger,
    resolve_base_url,
)
from core.services.payments import get_payment_gateway
from core.validators import validate_tile_index
from core.walls import normalize_wall_slug, tile_number


def build_session_metadata(wall_slug: str, tile_index: int) -> dict[str, str]:
    """Opaque metadata the webhook uses to find the tile again."""
    return {"tileIndex": str(tile_index), "wallSlug": wall_slug}


def create_checkout_session(db: DBSession, payload: dict, origin: Optional[str] = None) -> dict:
    """
    Open a payment session scoped to one (wall, tile index) pair.

    Does not touch memory records; it only refuses tiles that are already
    published, so nobody pays for a tile that can never show their memory.
    """
    wall_slug = normalize_wall_slug(payload.get("wallSlug"))
    try:
        tile_index = validate_tile_index(
            payload.get("tileIndex"),
            wall_slug,
            missing_message="A valid tileIndex is required to start checkout.",
        )
    except ValidationIssue as exc:
        log_validation_issue("create_checkout_session", exc)
        raise

    existing = find_memory(db, wall_slug, tile_index)
    if existing is not None and existing.published:
        raise TileAlreadyClaimed(wall_slug, tile_index)

    price_id = (config.STRIPE_PRICE_TILE or "").strip()
    if not price_id:
        logger.error("Checkout error: STRIPE_PRICE_TILE env var is missing or empty.")
        raise ConfigurationError("Stripe price ID is not configured (STRIPE_PRICE_TILE).")

    base_url = resolve_base_url(origin)
    session = get_payment_gateway().create_checkout_session(
        price_id=price_id,
        metadata=build_session_metadata(wall_slug, tile_index),
        success_url=f"{base_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base_url}/checkout/cancel",
    )
    logger.info(
        f"Checkout session {session.id} created for wall \"{wall_slug}\" tile #{tile_number(tile_index)}"
    )
    return {"url": session.url, "sessionId": session.id}


__all__ = [
    "build_session_metadata",
    "create_checkout_session",
]
