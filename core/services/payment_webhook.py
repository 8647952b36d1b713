"""
Payment webhook reconciliation.

The webhook endpoint is reachable by anyone, so nothing is read from the
event until its signature has been verified over the raw request bytes.
After that the handler always acknowledges (200) unless storage itself
fails: unparsable metadata or a payment with no draft cannot be fixed by
provider retries. Promotion is an unconditional multi-row update, which
makes redelivery and races with draft saves harmless.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session as DBSession

import core.config as config
from core.audit import record_paid_tile
from core.errors import ConfigurationError, WebhookSignatureError
from core.models import Memory
from core.services.payments import CHECKOUT_COMPLETED_EVENT, get_payment_gateway
from core.walls import is_valid_index, normalize_wall_slug, tile_number

logger = config.logger


@dataclass(frozen=True)
class WebhookOutcome:
    status_code: int
    message: str
    event_type: Optional[str] = None
    promoted: int = 0


def parse_metadata_tile_index(raw) -> Optional[int]:
    """
    Decode the string-encoded tile index; None unless it is a finite integer.

    Stricter than JavaScript Number() on purpose: "" and hex such as "0x10"
    are rejected rather than read as 0 and 16. Checkout only writes str(int).
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value) or not value.is_integer():
        return None
    return int(value)


def verify_event(payload: bytes, signature: Optional[str]) -> dict:
    secret = config.STRIPE_WEBHOOK_SECRET
    if not secret:
        raise ConfigurationError("Missing STRIPE_WEBHOOK_SECRET")
    if not signature:
        raise WebhookSignatureError("Missing stripe-signature header")
    return get_payment_gateway().construct_event(payload, signature, secret)


def promote_tile(db: DBSession, wall_slug: str, tile_index: int) -> int:
    """Mark every record on the tile paid+published; returns the row count."""
    count = (
        db.query(Memory)
        .filter(Memory.wall_slug == wall_slug, Memory.tile_index == tile_index)
        .update({Memory.paid: True, Memory.published: True}, synchronize_session=False)
    )
    db.commit()
    return count


def reconcile_checkout_completed(db: DBSession, session: dict) -> int:
    metadata = session.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    wall_slug = normalize_wall_slug(metadata.get("wallSlug"))
    tile_index = parse_metadata_tile_index(metadata.get("tileIndex"))

    if tile_index is None:
        logger.warning("checkout.session.completed without valid tileIndex in metadata")
        return 0
    if not is_valid_index(wall_slug, tile_index):
        logger.warning(
            f"checkout.session.completed with out-of-range tileIndex {tile_index} for wall \"{wall_slug}\""
        )
        return 0

    number = tile_number(tile_index)
    logger.info(f"Payment completed for wall \"{wall_slug}\" tile #{number}")

    record_paid_tile(
        db,
        wall_slug=wall_slug,
        tile_index=tile_index,
        stripe_session_id=session.get("id") or "unknown",
    )

    promoted = promote_tile(db, wall_slug, tile_index)
    if promoted == 0:
        logger.warning(
            f"No draft memory found for wall \"{wall_slug}\" tile #{number} "
            "when processing checkout.session.completed"
        )
    else:
        logger.info(
            f"Upgraded {promoted} memory record(s) to paid+published for wall \"{wall_slug}\" tile #{number}"
        )
    return promoted


def handle_webhook(db: DBSession, payload: bytes, signature: Optional[str]) -> WebhookOutcome:
    """Verify and apply one webhook delivery; the outcome maps directly to the HTTP reply."""
    try:
        event = verify_event(payload, signature)
    except ConfigurationError as exc:
        logger.error(str(exc))
        return WebhookOutcome(status_code=500, message=str(exc))
    except WebhookSignatureError as exc:
        logger.warning(f"Stripe webhook signature verification failed: {exc}")
        if not signature:
            return WebhookOutcome(status_code=400, message=str(exc))
        return WebhookOutcome(status_code=400, message=f"Webhook Error: {exc}")

    event_type = event.get("type")
    try:
        promoted = 0
        if event_type == CHECKOUT_COMPLETED_EVENT:
            session = (event.get("data") or {}).get("object") or {}
            promoted = reconcile_checkout_completed(db, session)
    except Exception:
        db.rollback()
        logger.exception("Error in Stripe webhook handler")
        return WebhookOutcome(status_code=500, message="Webhook handler failed", event_type=event_type)

    return WebhookOutcome(status_code=200, message="OK", event_type=event_type, promoted=promoted)


__all__ = [
    "WebhookOutcome",
    "parse_metadata_tile_index",
    "verify_event",
    "promote_tile",
    "reconcile_checkout_completed",
    "handle_webhook",
]
