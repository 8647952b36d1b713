"""
Tile wall database models.
One memory per (wall, tile index); paid-tile rows are the webhook's audit trail.
"""

from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, Integer, BigInteger, String, Text, Boolean,
    DateTime, CheckConstraint, Index, UniqueConstraint, event
)
from sqlalchemy.orm import declarative_base

import core.config as config
from core.errors import ValidationIssue
from core.walls import is_valid_index

Base = declarative_base()

# =============================================================================
# Enums
# =============================================================================

class AccentColor(str, PyEnum):
    blue = "blue"
    orange = "orange"
    green = "green"
    lavender = "lavender"
    gold = "gold"
    none = "none"


# =============================================================================
# Memories (one per claimed tile)
# =============================================================================

class Memory(Base):
    __tablename__ = "memories"

    id = Column(Integer, primary_key=True)
    wall_slug = Column(String(16), nullable=False, default=config.DEFAULT_WALL_SLUG)
    tile_index = Column(BigInteger, nullable=False)  # 0-based; tile number is index + 1
    title = Column(String(500))
    body = Column(Text, nullable=False)
    author_name = Column(String(255))
    accent_color = Column(String(20), nullable=False, default=AccentColor.none.value)
    image_url = Column(Text)
    image_data = Column(Text)

    # Lifecycle: only the payment webhook flips these to true
    paid = Column(Boolean, default=False, nullable=False)
    published = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("wall_slug", "tile_index", name="uq_memories_wall_tile"),
        CheckConstraint("tile_index >= 0", name="ck_memories_tile_index_non_negative"),
        Index("ix_memories_wall_published_created", "wall_slug", "published", "created_at"),
    )


# =============================================================================
# Paid tiles (audit only, never read by the submission path)
# =============================================================================

class PaidTile(Base):
    __tablename__ = "paid_tiles"

    id = Column(Integer, primary_key=True)
    wall_slug = Column(String(16), nullable=False)
    tile_index = Column(BigInteger, nullable=False)
    stripe_session_id = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("wall_slug", "tile_index", name="uq_paid_tiles_wall_tile"),
    )


@event.listens_for(Base, "before_insert", propagate=True)
def _validate_tile_address_before_insert(mapper, connection, target) -> None:
    wall_slug = getattr(target, "wall_slug", None)
    tile_index = getattr(target, "tile_index", None)
    if wall_slug not in config.WALL_CAPACITIES:
        raise ValidationIssue(
            f"unknown wall '{wall_slug}'",
            field="wallSlug",
            error_type="invalid",
        )
    if not is_valid_index(wall_slug, tile_index):
        raise ValidationIssue(
            "Invalid tile index for this wall.",
            field="tileIndex",
            error_type="out_of_range",
        )


__all__ = [
    "Base",
    "AccentColor",
    "Memory",
    "PaidTile",
]
