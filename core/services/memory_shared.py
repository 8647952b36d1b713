"""
Shared helpers for memory services.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session as DBSession

import core.config as config
from core.errors import ValidationIssue
from core.models import Memory
from core.walls import tile_number

logger = config.logger


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_memory(memory: Memory) -> dict:
    """Public JSON shape of a memory record (camelCase, 1-based tileNumber added)."""
    return {
        "id": memory.id,
        "wallSlug": memory.wall_slug,
        "tileIndex": memory.tile_index,
        "tileNumber": tile_number(memory.tile_index),
        "title": memory.title,
        "body": memory.body,
        "authorName": memory.author_name,
        "accentColor": memory.accent_color,
        "imageUrl": memory.image_url,
        "imageData": memory.image_data,
        "paid": memory.paid,
        "published": memory.published,
        "createdAt": _isoformat(memory.created_at),
        "updatedAt": _isoformat(memory.updated_at),
    }


def find_memory(db: DBSession, wall_slug: str, tile_index: int) -> Optional[Memory]:
    return (
        db.query(Memory)
        .filter(Memory.wall_slug == wall_slug, Memory.tile_index == tile_index)
        .first()
    )


def log_validation_issue(operation: str, exc: ValidationIssue, warn: bool = False) -> None:
    payload = {
        "operation": operation,
        "field": exc.field,
        "error_type": exc.error_type,
        "detail": str(exc),
    }
    if warn:
        logger.warning("validation_error", extra=payload)
    else:
        logger.info("validation_error", extra=payload)


def resolve_base_url(origin: Optional[str] = None) -> str:
    """Request origin, else the configured site URL, else loopback."""
    for candidate in (origin, config.SITE_URL):
        if candidate and candidate.strip():
            return candidate.strip().rstrip("/")
    return config.DEFAULT_BASE_URL
