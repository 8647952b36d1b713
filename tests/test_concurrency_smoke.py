from concurrent.futures import ThreadPoolExecutor

from core.db import DB
from core.models import Memory
from core.services.memory_drafts import submit_memory
from core.services.payment_webhook import promote_tile


def _submit(body: str) -> dict:
    db = DB.SessionLocal()
    try:
        return submit_memory(db, {"tileIndex": 77, "wallSlug": "m", "body": body})
    finally:
        db.close()


def test_concurrent_drafts_on_one_tile_leave_one_record(db_session, moderation_client):
    bodies = [f"Concurrent draft {n}" for n in range(8)]
    with ThreadPoolExecutor(max_workers=4) as executor:
        results = list(executor.map(_submit, bodies))

    assert {result["status"] for result in results} <= {"created", "updated"}
    rows = db_session.query(Memory).filter(Memory.tile_index == 77).all()
    assert len(rows) == 1
    assert rows[0].body in bodies
    assert rows[0].published is False


def test_promotion_racing_with_draft_saves_stays_published(db_session, moderation_client):
    _submit("before payment")

    def promote(_):
        db = DB.SessionLocal()
        try:
            return promote_tile(db, "m", 77)
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=2) as executor:
        list(executor.map(promote, range(3)))

    db_session.expire_all()
    row = db_session.query(Memory).filter(Memory.tile_index == 77).one()
    assert row.paid is True
    assert row.published is True
