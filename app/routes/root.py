"""
Root endpoint with service metadata.
"""

from __future__ import annotations

from fastapi import APIRouter

import core.config as config


router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "TileWall",
        "version": "0.1.0",
        "description": "Internet Memory Wall: one paid memory per tile",
        "walls": dict(config.WALL_CAPACITIES),
        "endpoints": {
            "health": "/health",
            "memories": "/api/memories",
            "wall_status": "/api/wall-status",
            "wall_pages": "/api/wall-pages",
            "checkout": "/api/checkout",
            "stripe_webhook": "/api/stripe/webhook",
            "tile_page": "/{wallSlug}/{tileNumber}",
            "tile_preview": "/og/{wallSlug}/{tileNumber}",
        },
    }
