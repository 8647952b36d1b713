"""
Read-only projections over a wall: fill status, published listing, page map.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session as DBSession

import core.config as config
from core.models import Memory
from core.services.memory_shared import serialize_memory
from core.walls import (
    capacity,
    clamp_tiles_per_page,
    normalize_wall_slug,
    page_fill_counts,
    page_window,
    total_pages,
)


def wall_status(db: DBSession, wall_slug: Optional[str]) -> dict:
    """
    Fill count against capacity.

    With FILL_COUNT_INCLUDES_DRAFTS (default) every record counts, drafts
    included; otherwise only published records do.
    """
    slug = normalize_wall_slug(wall_slug)
    total_tiles = capacity(slug)
    query = db.query(Memory).filter(Memory.wall_slug == slug)
    if not config.FILL_COUNT_INCLUDES_DRAFTS:
        query = query.filter(Memory.published.is_(True))
    filled = query.count()
    return {
        "wallSlug": slug,
        "totalTiles": total_tiles,
        "filled": filled,
        "isFull": filled >= total_tiles,
    }


def list_published_memories(
    db: DBSession,
    wall_slug: Optional[str],
    page: Optional[int] = None,
    tiles_per_page: Optional[int] = None,
) -> dict:
    """Published memories in creation order, optionally limited to one page window."""
    slug = normalize_wall_slug(wall_slug)
    query = db.query(Memory).filter(Memory.wall_slug == slug, Memory.published.is_(True))
    result = {}
    if page is not None:
        window = page_window(slug, page, tiles_per_page)
        query = query.filter(Memory.tile_index >= window.offset, Memory.tile_index < window.end)
        result["page"] = window.as_dict()
    rows = query.order_by(Memory.created_at.asc(), Memory.id.asc()).all()
    result["memories"] = [serialize_memory(row) for row in rows]
    return result


def wall_pages(db: DBSession, wall_slug: Optional[str], tiles_per_page: Optional[int] = None) -> dict:
    """Sparse page -> published count map for the grid mini-map."""
    slug = normalize_wall_slug(wall_slug)
    per_page = clamp_tiles_per_page(tiles_per_page)
    total_tiles = capacity(slug)
    indices = (
        row[0]
        for row in db.query(Memory.tile_index)
        .filter(Memory.wall_slug == slug, Memory.published.is_(True))
        .all()
    )
    counts = page_fill_counts(indices, per_page, total_tiles)
    return {
        "wallSlug": slug,
        "totalTiles": total_tiles,
        "tilesPerPage": per_page,
        "totalPages": total_pages(total_tiles, per_page),
        "pages": {str(page): count for page, count in counts.items()},
    }


__all__ = [
    "wall_status",
    "list_published_memories",
    "wall_pages",
]
