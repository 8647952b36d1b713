import base64
from io import BytesIO

import httpx
from PIL import Image

import core.config as config
from core.services.memory_drafts import submit_memory
from core.services.payment_webhook import promote_tile
from core.services.tile_pages import (
    OG_HEIGHT,
    OG_WIDTH,
    clamp_title,
    load_image_bytes,
    render_preview,
    resolve_image_source,
    tile_page,
    tile_preview,
)


def _png_base64() -> str:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), (255, 0, 0)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode()


def test_image_source_prefers_url():
    assert resolve_image_source("https://cdn.example/a.png", "AAAA", "https://wall.example") == "https://cdn.example/a.png"
    assert resolve_image_source("/uploads/a.png", None, "https://wall.example") == "https://wall.example/uploads/a.png"


def test_image_source_sniffs_image_data():
    base = "https://wall.example"
    assert resolve_image_source(None, "https://cdn.example/b.png", base) == "https://cdn.example/b.png"
    assert resolve_image_source(None, "data:image/jpeg;base64,AAAA", base) == "data:image/jpeg;base64,AAAA"
    assert resolve_image_source(None, "iVBORw0KGgo=", base) == "data:image/png;base64,iVBORw0KGgo="
    assert resolve_image_source(None, "not base64!", base) is None
    assert resolve_image_source("  ", "", base) is None


def test_clamp_title():
    assert clamp_title(None, 7) == "Memory #7"
    assert clamp_title("  ", 7) == "Memory #7"
    assert clamp_title("Short", 7) == "Short"
    clamped = clamp_title("x" * 200, 7)
    assert len(clamped) == 90
    assert clamped.endswith("…")


def test_load_image_bytes_from_data_url():
    encoded = _png_base64()
    assert load_image_bytes(f"data:image/png;base64,{encoded}") == base64.b64decode(encoded)
    assert load_image_bytes(None) is None


def _chunked_body(served, chunk_count=1000, chunk_size=256):
    for _ in range(chunk_count):
        served.append(chunk_size)
        yield b"x" * chunk_size


def test_remote_image_download_stops_at_the_size_cap(monkeypatch):
    monkeypatch.setattr(config, "MAX_IMAGE_DATA_LENGTH", 1024)
    served = []
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=_chunked_body(served)))

    with httpx.Client(transport=transport) as http_client:
        assert load_image_bytes("https://cdn.example/huge.png", http_client) is None

    assert sum(served) <= 1024 + 256


def test_remote_image_with_oversized_content_length_is_not_read(monkeypatch):
    monkeypatch.setattr(config, "MAX_IMAGE_DATA_LENGTH", 1024)
    served = []

    def handler(request):
        return httpx.Response(200, headers={"content-length": "3000000000"}, content=_chunked_body(served))

    with httpx.Client(transport=httpx.MockTransport(handler)) as http_client:
        assert load_image_bytes("https://cdn.example/huge.png", http_client) is None

    assert served == []


def test_remote_image_within_cap_is_returned():
    png = base64.b64decode(_png_base64())

    def handler(request):
        if request.url.path == "/missing.png":
            return httpx.Response(404)
        return httpx.Response(200, content=png)

    with httpx.Client(transport=httpx.MockTransport(handler)) as http_client:
        assert load_image_bytes("https://cdn.example/ok.png", http_client) == png
        assert load_image_bytes("https://cdn.example/missing.png", http_client) is None


def test_render_preview_dimensions():
    image_bytes = base64.b64decode(_png_base64())

    for payload in (image_bytes, None, b"garbage"):
        png = render_preview("A memory", 42, "m", payload)
        with Image.open(BytesIO(png)) as rendered:
            assert rendered.size == (OG_WIDTH, OG_HEIGHT)
            assert rendered.format == "PNG"


def test_tile_page_shows_only_published(db_session, moderation_client):
    submit_memory(db_session, {"tileIndex": 0, "body": "first tile", "imageData": _png_base64()})

    assert tile_page(db_session, "m", "1")["found"] is False

    promote_tile(db_session, "m", 0)
    view = tile_page(db_session, "m", "1", origin="https://share.example")

    assert view["found"] is True
    assert view["tileNumber"] == 1
    assert view["tileIndex"] == 0
    assert view["title"] == "Memory #1 · Internet Memory Wall"
    assert view["shareUrl"] == "https://share.example/m/1"
    assert tile_page(db_session, "m2", "1")["found"] is False


def test_tile_page_handles_bad_numbers(db_session):
    for raw in ("0", "-3", "abc", "1000001"):
        view = tile_page(db_session, "m", raw)
        assert view["found"] is False
        assert view["memory"] is None


def test_tile_preview_for_published_and_missing_tiles(db_session, moderation_client):
    submit_memory(db_session, {"tileIndex": 0, "body": "first", "title": "Hi", "imageData": _png_base64()})
    promote_tile(db_session, "m", 0)

    for raw in ("1", "99"):
        png = tile_preview(db_session, "m", raw)
        assert png.startswith(b"\x89PNG")
