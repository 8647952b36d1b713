"""
Draft reconciliation: accept a memory submission for one tile.

A tile holds at most one record. Unpublished drafts are overwritten
wholesale by later submissions; a published record is immutable from this
path. Nothing here ever sets paid/published to true; that is the payment
webhook's job.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

import core.config as config
from core.errors import TileAlreadyClaimed, ValidationIssue
from core.models import Memory
from core.services.memory_shared import (
    find_memory,
    log_validation_issue,
    logger,
    serialize_memory,
)
from core.services.moderation import build_moderation_text, moderate_image, moderate_text
from core.validators import (
    validate_accent_color,
    validate_image_fields,
    validate_optional_text,
    validate_required_text,
    validate_tile_index,
)
from core.walls import normalize_wall_slug, tile_number

CONTENT_FIELDS = ("title", "body", "author_name", "accent_color", "image_url", "image_data")


def _validated_content(payload: dict) -> dict:
    image_url, image_data = validate_image_fields(payload.get("imageUrl"), payload.get("imageData"))
    return {
        "title": validate_optional_text(payload.get("title"), "title", config.MAX_TITLE_LENGTH),
        "author_name": validate_optional_text(
            payload.get("authorName"), "authorName", config.MAX_AUTHOR_LENGTH
        ),
        "accent_color": validate_accent_color(payload.get("accentColor")),
        "image_url": image_url,
        "image_data": image_data,
    }


def _apply_content(memory: Memory, content: dict) -> None:
    # Full overwrite: absent optional fields clear what an earlier draft had.
    for field in CONTENT_FIELDS:
        setattr(memory, field, content[field])


def save_draft(db: DBSession, wall_slug: str, tile_index: int, content: dict) -> dict:
    """
    Create or overwrite the draft for (wall_slug, tile_index).

    paid/published are never written on overwrite, so whatever the row
    already carries is kept. Two first-time claims racing on the same tile
    collide on the unique constraint; the loser re-reads and overwrites
    (last write wins while the tile is still a draft).
    """
    existing = find_memory(db, wall_slug, tile_index)
    if existing is not None and existing.published:
        raise TileAlreadyClaimed(wall_slug, tile_index)

    if existing is not None:
        memory = existing
        _apply_content(memory, content)
        status = "updated"
    else:
        memory = Memory(wall_slug=wall_slug, tile_index=tile_index, paid=False, published=False)
        _apply_content(memory, content)
        db.add(memory)
        status = "created"

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        memory = find_memory(db, wall_slug, tile_index)
        if memory is None:
            raise
        if memory.published:
            raise TileAlreadyClaimed(wall_slug, tile_index)
        _apply_content(memory, content)
        db.commit()
        status = "updated"

    db.refresh(memory)
    logger.info(
        f"Draft {status} for wall \"{wall_slug}\" tile #{tile_number(tile_index)}"
    )
    return {"status": status, "memory": serialize_memory(memory)}


def submit_memory(db: DBSession, payload: dict) -> dict:
    """
    Validate, moderate and persist a memory submission.

    Returns {"status": "created"|"updated", "memory": {...}}. Raises
    ValidationIssue (bad input or moderation rejection) or
    TileAlreadyClaimed (tile already published).
    """
    wall_slug = normalize_wall_slug(payload.get("wallSlug"))
    try:
        body = validate_required_text(
            payload.get("body"),
            "body",
            config.MAX_BODY_LENGTH,
            message="Memory text (body) is required.",
        )
        tile_index = validate_tile_index(payload.get("tileIndex"), wall_slug)
        content = _validated_content(payload)
    except ValidationIssue as exc:
        log_validation_issue("submit_memory", exc)
        raise
    content["body"] = body

    rejection = moderate_text(
        build_moderation_text(content["title"], body, content["author_name"])
    )
    if rejection:
        raise ValidationIssue(rejection, field="body", error_type="moderation")

    if content["image_data"]:
        image_rejection = moderate_image(content["image_data"])
        if image_rejection:
            raise ValidationIssue(image_rejection, field="imageData", error_type="moderation")

    return save_draft(db, wall_slug, tile_index, content)


__all__ = [
    "submit_memory",
    "save_draft",
]
