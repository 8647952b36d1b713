"""
Per-tile share view and preview image.

Registered last: /{wall_slug}/{tile_number} would otherwise shadow
two-segment API paths.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.deps import get_db_session
from core.services.tile_pages import tile_page, tile_preview


router = APIRouter()


@router.get("/og/{wall_slug}/{tile_number}")
def get_tile_preview(wall_slug: str, tile_number: str, db=Depends(get_db_session)):
    image = tile_preview(db, wall_slug, tile_number)
    return Response(
        content=image,
        media_type="image/png",
        headers={"Cache-Control": "public, max-age=300"},
    )


@router.get("/{wall_slug}/{tile_number}")
def get_tile_page(wall_slug: str, tile_number: str, db=Depends(get_db_session)):
    return tile_page(db, wall_slug, tile_number)
