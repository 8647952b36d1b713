import pytest

import core.config as config
from core.walls import (
    capacity,
    is_valid_index,
    normalize_wall_slug,
    page_fill_counts,
    page_for_index,
    page_window,
    parse_tile_number,
    tile_index_from_number,
    tile_number,
)


def test_index_bounds_on_base_wall():
    cap = capacity("m")
    assert cap == 1_000_000
    assert is_valid_index("m", 0)
    assert is_valid_index("m", cap - 1)
    assert not is_valid_index("m", -1)
    assert not is_valid_index("m", cap)


def test_index_rejects_non_integers():
    assert not is_valid_index("m", True)
    assert not is_valid_index("m", 1.5)
    assert not is_valid_index("m", "5")
    assert not is_valid_index("m", None)


def test_larger_walls_accept_indices_beyond_base_capacity():
    assert is_valid_index("m2", 5_000_000)
    assert not is_valid_index("m", 5_000_000)
    assert is_valid_index("m3", 99_999_999)
    assert not is_valid_index("m3", 100_000_000)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("m", "m"),
        (" M ", "m"),
        ("m2", "m2"),
        ("M2", "m2"),
        ("m²", "m2"),
        ("M³", "m3"),
        (" m³\n", "m3"),
        ("m4", "m"),
        ("", "m"),
        (None, "m"),
        (42, "m"),
    ],
)
def test_wall_slug_normalization(raw, expected):
    assert normalize_wall_slug(raw) == expected


def test_unknown_slug_uses_base_capacity():
    assert capacity("nope") == capacity(config.DEFAULT_WALL_SLUG)


def test_tile_number_translation_is_off_by_one():
    assert tile_number(0) == 1
    assert tile_index_from_number(1) == 0
    assert tile_index_from_number(tile_number(41)) == 41


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("42", 42),
        (" 7 ", 7),
        (3, 3),
        ("0", None),
        ("-1", None),
        ("1.5", None),
        ("abc", None),
        (True, None),
        ("²", None),
        ("4²", None),
        ("١٢", None),
        ("", None),
    ],
)
def test_parse_tile_number(raw, expected):
    assert parse_tile_number(raw) == expected


def test_page_window_first_and_last_pages():
    first = page_window("m", 1, 2000)
    assert first.offset == 0
    assert first.tile_count == 2000
    assert first.total_pages == 500
    assert first.contains(1999)
    assert not first.contains(2000)

    last = page_window("m", 500, 2000)
    assert last.offset == 998_000
    assert last.end == 1_000_000


def test_page_window_clamps_page_and_page_size():
    window = page_window("m", 10_000, 5000)
    assert window.tiles_per_page == config.MAX_TILES_PER_PAGE
    assert window.page == window.total_pages

    default = page_window("m", None, None)
    assert default.page == 1
    assert default.tiles_per_page == config.MAX_TILES_PER_PAGE


def test_partial_last_page():
    window = page_window("m", 3, 400_000)
    assert window.tiles_per_page == 2000

    small = {"tiny": 2500, "m": 1_000_000}
    tiny = page_window("tiny", 2, 2000, capacities=small)
    assert tiny.offset == 2000
    assert tiny.tile_count == 500
    assert tiny.total_pages == 2


def test_page_fill_counts_is_sparse_and_sorted():
    counts = page_fill_counts([0, 1, 4000, 2500, -3, 1_000_000], 2000, 1_000_000)
    assert counts == {1: 2, 2: 1, 3: 1}
    assert list(counts) == [1, 2, 3]
    assert page_for_index(1999, 2000) == 1
    assert page_for_index(2000, 2000) == 2
