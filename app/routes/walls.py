"""
Wall status and page-map endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.deps import get_db_session
from core.services.wall_status import wall_pages, wall_status


router = APIRouter()


@router.get("/api/wall-status")
def get_wall_status(
    wallSlug: Optional[str] = Query(default=None),
    db=Depends(get_db_session),
):
    return wall_status(db, wallSlug)


@router.get("/api/wall-pages")
def get_wall_pages(
    wallSlug: Optional[str] = Query(default=None),
    tilesPerPage: Optional[int] = Query(default=None, ge=1),
    db=Depends(get_db_session),
):
    """Published count per grid page (sparse)."""
    return wall_pages(db, wallSlug, tiles_per_page=tilesPerPage)
