import pytest
from sqlalchemy import text

import core.config as config
from core.audit import record_paid_tile
from core.db import check_tile_addresses, wall_occupancy
from core.services.memory_drafts import submit_memory


def test_occupancy_covers_memories_and_audit_rows(db_engine, db_session, moderation_client):
    submit_memory(db_session, {"tileIndex": 10, "body": "a"})
    submit_memory(db_session, {"tileIndex": 3, "body": "b"})
    record_paid_tile(db_session, wall_slug="m2", tile_index=4_000_000, stripe_session_id="cs_1")

    occupancy = wall_occupancy(db_engine)

    assert occupancy["m"] == {"records": 2, "max_tile_index": 10}
    assert occupancy["m2"] == {"records": 0, "max_tile_index": 4_000_000}


def test_consistent_tiles_pass_the_startup_check(db_engine, db_session, moderation_client):
    submit_memory(db_session, {"tileIndex": 999_999, "body": "last tile"})

    check_tile_addresses(db_engine)


def test_shrunk_wall_refuses_to_start(db_engine, db_session, moderation_client, monkeypatch):
    submit_memory(db_session, {"tileIndex": 500, "body": "claimed"})
    monkeypatch.setattr(config, "WALL_CAPACITIES", {"m": 100, "m2": 10_000_000, "m3": 100_000_000})

    with pytest.raises(RuntimeError) as excinfo:
        check_tile_addresses(db_engine)

    assert "tile index 500 beyond capacity 100" in str(excinfo.value)


def test_removed_wall_refuses_to_start(db_engine):
    with db_engine.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO memories (wall_slug, tile_index, body, accent_color, paid, published, created_at) "
                "VALUES ('m9', 1, 'orphan', 'none', 0, 0, CURRENT_TIMESTAMP)"
            )
        )

    with pytest.raises(RuntimeError) as excinfo:
        check_tile_addresses(db_engine)

    assert "wall 'm9'" in str(excinfo.value)
