"""
Paid-tile audit helpers (DB-only).

Rows here record which payment session paid for a tile. They are
informational: claim state lives on the memory record, and the submission
path never reads this table.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from core.models import PaidTile

MAX_SESSION_ID_LENGTH = 255


def _validate_session_id(session_id) -> str:
    if not isinstance(session_id, str) or not session_id.strip():
        raise ValueError("stripe_session_id must be a non-empty string")
    if len(session_id) > MAX_SESSION_ID_LENGTH:
        raise ValueError("stripe_session_id value too long")
    return session_id.strip()


def _find_paid_tile(db, wall_slug: str, tile_index: int):
    return (
        db.query(PaidTile)
        .filter(PaidTile.wall_slug == wall_slug, PaidTile.tile_index == tile_index)
        .first()
    )


def record_paid_tile(db, *, wall_slug: str, tile_index: int, stripe_session_id: str) -> PaidTile:
    """
    Upsert the audit row for a tile and commit.

    Redelivery of the same event (or a later session for the same tile)
    overwrites the session id instead of adding a row.
    """
    session_id = _validate_session_id(stripe_session_id)
    entry = _find_paid_tile(db, wall_slug, tile_index)
    if entry is None:
        entry = PaidTile(wall_slug=wall_slug, tile_index=tile_index, stripe_session_id=session_id)
        db.add(entry)
    else:
        entry.stripe_session_id = session_id
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        entry = _find_paid_tile(db, wall_slug, tile_index)
        if entry is None:
            raise
        entry.stripe_session_id = session_id
        db.commit()
    return entry


__all__ = [
    "PaidTile",
    "record_paid_tile",
]
