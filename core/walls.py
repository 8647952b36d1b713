"""
Tile addressing: wall slugs, capacities, tile numbering and page windows.

Every entry point that accepts a wall slug or tile index from the outside
goes through this module, so all components agree on which partition a
tile belongs to and how large each wall is.
"""

from __future__ import annotations

import math
import unicodedata
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

import core.config as config


def normalize_wall_slug(raw: Optional[str], capacities: Optional[Mapping[str, int]] = None) -> str:
    """
    Canonicalize a wall slug.

    Case-insensitive, whitespace-trimmed, and NFKC-folded so typographic
    variants ("m²", "M³") map to their ASCII form ("m2", "m3"). Anything
    unrecognized resolves to the base wall.
    """
    table = capacities if capacities is not None else config.WALL_CAPACITIES
    if not isinstance(raw, str):
        return config.DEFAULT_WALL_SLUG
    slug = unicodedata.normalize("NFKC", raw).strip().lower()
    if slug in table:
        return slug
    return config.DEFAULT_WALL_SLUG


def capacity(wall_slug: str, capacities: Optional[Mapping[str, int]] = None) -> int:
    table = capacities if capacities is not None else config.WALL_CAPACITIES
    if wall_slug in table:
        return table[wall_slug]
    return table[config.DEFAULT_WALL_SLUG]


def is_valid_index(
    wall_slug: str,
    tile_index: int,
    capacities: Optional[Mapping[str, int]] = None,
) -> bool:
    if isinstance(tile_index, bool) or not isinstance(tile_index, int):
        return False
    return 0 <= tile_index < capacity(wall_slug, capacities)


def wall_label(wall_slug: str) -> str:
    return config.WALL_LABELS.get(wall_slug, config.WALL_LABELS[config.DEFAULT_WALL_SLUG])


# =============================================================================
# 0-based index <-> 1-based tile number
# =============================================================================

def tile_number(tile_index: int) -> int:
    return tile_index + 1


def tile_index_from_number(number: int) -> int:
    return number - 1


def parse_tile_number(raw) -> Optional[int]:
    """Parse a public tile number (path segment); None when not a positive integer."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    else:
        text = str(raw).strip()
        # isdigit() also accepts superscripts ("²") that int() rejects
        if not (text.isascii() and text.isdecimal()):
            return None
        value = int(text)
    if value < 1:
        return None
    return value


# =============================================================================
# Pagination over the tile space
# =============================================================================

@dataclass(frozen=True)
class PageWindow:
    wall_slug: str
    page: int
    tiles_per_page: int
    offset: int
    tile_count: int
    total_pages: int
    total_tiles: int

    @property
    def end(self) -> int:
        """Exclusive upper bound of the tile indices on this page."""
        return self.offset + self.tile_count

    def contains(self, tile_index: int) -> bool:
        return self.offset <= tile_index < self.end

    def as_dict(self) -> dict:
        return {
            "wallSlug": self.wall_slug,
            "page": self.page,
            "tilesPerPage": self.tiles_per_page,
            "offset": self.offset,
            "tileCount": self.tile_count,
            "totalPages": self.total_pages,
            "totalTiles": self.total_tiles,
        }


def clamp_tiles_per_page(tiles_per_page: Optional[int]) -> int:
    if not tiles_per_page or tiles_per_page <= 0:
        return config.MAX_TILES_PER_PAGE
    return min(tiles_per_page, config.MAX_TILES_PER_PAGE)


def total_pages(total_tiles: int, tiles_per_page: int) -> int:
    return max(1, math.ceil(total_tiles / tiles_per_page))


def page_for_index(tile_index: int, tiles_per_page: int) -> int:
    """1-based page holding a tile."""
    return tile_index // tiles_per_page + 1


def page_window(
    wall_slug: str,
    page: Optional[int] = None,
    tiles_per_page: Optional[int] = None,
    capacities: Optional[Mapping[str, int]] = None,
) -> PageWindow:
    """Resolve a 1-based page into its tile range; pages past the end are clamped."""
    per_page = clamp_tiles_per_page(tiles_per_page)
    total = capacity(wall_slug, capacities)
    pages = total_pages(total, per_page)
    current = page if page and page > 0 else 1
    current = min(current, pages)
    offset = (current - 1) * per_page
    count = min(per_page, max(total - offset, 0))
    return PageWindow(
        wall_slug=wall_slug,
        page=current,
        tiles_per_page=per_page,
        offset=offset,
        tile_count=count,
        total_pages=pages,
        total_tiles=total,
    )


def page_fill_counts(
    tile_indices: Iterable[int],
    tiles_per_page: int,
    total_tiles: int,
) -> dict[int, int]:
    """Sparse map of 1-based page -> number of claimed tiles on it."""
    counts: dict[int, int] = {}
    for tile_index in tile_indices:
        if tile_index < 0 or tile_index >= total_tiles:
            continue
        page = page_for_index(tile_index, tiles_per_page)
        counts[page] = counts.get(page, 0) + 1
    return dict(sorted(counts.items()))


__all__ = [
    "PageWindow",
    "normalize_wall_slug",
    "capacity",
    "is_valid_index",
    "wall_label",
    "tile_number",
    "tile_index_from_number",
    "parse_tile_number",
    "clamp_tiles_per_page",
    "total_pages",
    "page_for_index",
    "page_window",
    "page_fill_counts",
]
