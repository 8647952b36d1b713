import core.config as config
from core.models import Memory
from core.services.checkout import create_checkout_session
from core.services.memory_drafts import submit_memory
from core.services.payment_webhook import promote_tile
from core.services.tile_pages import tile_page
from core.services.wall_status import list_published_memories, wall_pages, wall_status
from core.walls import capacity, page_window


def _seed(db_session, published, drafts, wall_slug="m"):
    for tile_index in published:
        submit_memory(db_session, {"tileIndex": tile_index, "body": f"p{tile_index}", "wallSlug": wall_slug})
        promote_tile(db_session, wall_slug, tile_index)
    for tile_index in drafts:
        submit_memory(db_session, {"tileIndex": tile_index, "body": f"d{tile_index}", "wallSlug": wall_slug})


def test_status_counts_drafts_by_default(db_session, moderation_client):
    _seed(db_session, published=[1, 2], drafts=[3])

    status = wall_status(db_session, "m")

    assert status == {"wallSlug": "m", "totalTiles": 1_000_000, "filled": 3, "isFull": False}


def test_status_can_count_published_only(db_session, moderation_client, monkeypatch):
    _seed(db_session, published=[1, 2], drafts=[3])
    monkeypatch.setattr(config, "FILL_COUNT_INCLUDES_DRAFTS", False)

    assert wall_status(db_session, "m")["filled"] == 2


def test_status_is_per_wall(db_session, moderation_client):
    _seed(db_session, published=[1], drafts=[])
    _seed(db_session, published=[], drafts=[1, 2], wall_slug="m2")

    assert wall_status(db_session, "m")["filled"] == 1
    assert wall_status(db_session, "M²") == {
        "wallSlug": "m2",
        "totalTiles": 10_000_000,
        "filled": 2,
        "isFull": False,
    }
    assert wall_status(db_session, "unknown")["wallSlug"] == "m"


def test_listing_never_returns_drafts(db_session, moderation_client):
    _seed(db_session, published=[10, 4], drafts=[5, 6])
    # Overwriting a draft after others were published must not leak it
    submit_memory(db_session, {"tileIndex": 5, "body": "again"})

    memories = list_published_memories(db_session, "m")["memories"]

    assert [m["tileIndex"] for m in memories] == [10, 4]
    assert all(m["published"] for m in memories)
    assert "page" not in list_published_memories(db_session, "m")


def test_listing_page_window(db_session, moderation_client):
    _seed(db_session, published=[0, 1999, 2000, 4500], drafts=[2001])

    first = list_published_memories(db_session, "m", page=1, tiles_per_page=2000)
    second = list_published_memories(db_session, "m", page=2, tiles_per_page=2000)

    assert [m["tileIndex"] for m in first["memories"]] == [0, 1999]
    assert [m["tileIndex"] for m in second["memories"]] == [2000]
    assert second["page"]["offset"] == 2000
    assert second["page"]["totalPages"] == 500


def test_wall_pages_counts_published_only(db_session, moderation_client):
    _seed(db_session, published=[0, 1, 2500], drafts=[3, 2600, 9000])

    result = wall_pages(db_session, "m", tiles_per_page=2000)

    assert result["pages"] == {"1": 2, "2": 1}
    assert result["totalPages"] == 500
    assert result["tilesPerPage"] == 2000


def test_every_component_agrees_on_capacity(db_session, moderation_client, payment_gateway):
    for wall_slug, total in config.WALL_CAPACITIES.items():
        last = total - 1
        assert capacity(wall_slug) == total
        assert wall_status(db_session, wall_slug)["totalTiles"] == total
        assert page_window(wall_slug, 10**9).end == total
        assert wall_pages(db_session, wall_slug)["totalTiles"] == total

        submit_memory(db_session, {"tileIndex": last, "body": "edge", "wallSlug": wall_slug})
        create_checkout_session(db_session, {"tileIndex": last, "wallSlug": wall_slug})
        promote_tile(db_session, wall_slug, last)
        assert tile_page(db_session, wall_slug, str(total))["found"] is True

    assert db_session.query(Memory).filter(Memory.published.is_(True)).count() == len(config.WALL_CAPACITIES)
