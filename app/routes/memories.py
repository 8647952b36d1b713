"""
Memory submission and published listing endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from app.deps import get_db_session
from core.services.memory_drafts import submit_memory
from core.services.wall_status import list_published_memories


router = APIRouter()


@router.post("/api/memories", status_code=201)
def create_memory(
    payload: Optional[dict] = Body(default=None),
    db=Depends(get_db_session),
):
    """Create or overwrite the draft for a tile (201 for both)."""
    result = submit_memory(db, payload or {})
    return {"memory": result["memory"]}


@router.get("/api/memories")
def list_memories(
    wallSlug: Optional[str] = Query(default=None),
    page: Optional[int] = Query(default=None, ge=1),
    tilesPerPage: Optional[int] = Query(default=None, ge=1),
    db=Depends(get_db_session),
):
    """Published memories for a wall, oldest first."""
    return list_published_memories(db, wallSlug, page=page, tiles_per_page=tilesPerPage)
