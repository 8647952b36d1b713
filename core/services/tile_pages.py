"""
Per-tile share view and preview (Open Graph) image.

Public URLs use the 1-based tile number; lookups translate it to the
stored 0-based index. Only published memories are ever shown.
"""

from __future__ import annotations

import base64
import binascii
import re
import textwrap
from io import BytesIO
from typing import Optional
from urllib.parse import urljoin

import httpx
from PIL import Image, ImageDraw, ImageFont
from sqlalchemy.orm import Session as DBSession

import core.config as config
from core.services.memory_shared import find_memory, logger, resolve_base_url, serialize_memory
from core.walls import (
    is_valid_index,
    normalize_wall_slug,
    parse_tile_number,
    tile_index_from_number,
    wall_label,
)

OG_WIDTH = 1200
OG_HEIGHT = 630
MAX_PREVIEW_TITLE_LENGTH = 90

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/=]+$")

BACKGROUND = (2, 6, 23)
CARD = (15, 23, 42)
CARD_BORDER = (148, 163, 184)
TEXT = (249, 250, 251)
MUTED = (156, 163, 175)
ACCENT = (56, 189, 248)


def _find_published(db: DBSession, wall_slug: str, number: Optional[int]):
    if number is None:
        return None
    tile_index = tile_index_from_number(number)
    if not is_valid_index(wall_slug, tile_index):
        return None
    memory = find_memory(db, wall_slug, tile_index)
    if memory is None or not memory.published:
        return None
    return memory


def tile_page(db: DBSession, wall_slug: Optional[str], raw_number, origin: Optional[str] = None) -> dict:
    """Share view for /<wall>/<tile number>; a missing memory is found=False, not an error."""
    slug = normalize_wall_slug(wall_slug)
    number = parse_tile_number(raw_number)
    memory = _find_published(db, slug, number)
    base_url = resolve_base_url(origin)
    shown = number if number is not None else 0
    title = f"Memory #{shown} · Internet Memory Wall"
    return {
        "wallSlug": slug,
        "tileNumber": number,
        "tileIndex": tile_index_from_number(number) if number is not None else None,
        "found": memory is not None,
        "memory": serialize_memory(memory) if memory is not None else None,
        "title": title,
        "description": f"Tile #{shown} on the Internet Memory Wall.",
        "shareUrl": f"{base_url}/{slug}/{shown}",
        "ogImageUrl": f"{base_url}/og/{slug}/{shown}",
    }


# =============================================================================
# Preview image
# =============================================================================

def resolve_image_source(
    image_url: Optional[str],
    image_data: Optional[str],
    base_url: str,
) -> Optional[str]:
    """
    Pick the image to show.

    imageUrl wins (relative paths are joined to the site URL). imageData may
    itself be a URL, a data: URL, or bare base64, which is sniffed by its
    alphabet and assumed to be PNG.
    """
    if image_url and image_url.strip():
        raw = image_url.strip()
        if raw.startswith("http"):
            return raw
        return urljoin(f"{base_url}/", raw)
    if image_data and image_data.strip():
        raw = image_data.strip()
        if raw.startswith("http"):
            return raw
        if raw.startswith("data:image"):
            return raw
        if _BASE64_RE.match(raw):
            return f"data:image/png;base64,{raw}"
    return None


def clamp_title(title: Optional[str], number: int) -> str:
    text = title.strip() if title and title.strip() else f"Memory #{number}"
    if len(text) > MAX_PREVIEW_TITLE_LENGTH:
        return text[: MAX_PREVIEW_TITLE_LENGTH - 1] + "…"
    return text


def _read_capped(response: httpx.Response, limit: int) -> Optional[bytes]:
    declared = response.headers.get("content-length")
    if declared and declared.isdecimal() and int(declared) > limit:
        return None
    chunks = []
    received = 0
    for chunk in response.iter_bytes():
        received += len(chunk)
        if received > limit:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


def load_image_bytes(source: Optional[str], http_client: Optional[httpx.Client] = None) -> Optional[bytes]:
    """
    Bytes for a resolved image source, or None when it cannot be used.

    Remote images are streamed and abandoned as soon as they pass
    MAX_IMAGE_DATA_LENGTH, whether or not Content-Length was declared.
    """
    if not source:
        return None
    if source.startswith("data:"):
        _, _, encoded = source.partition(",")
        try:
            return base64.b64decode(encoded, validate=False)
        except (binascii.Error, ValueError):
            logger.warning("Preview image data is not valid base64")
            return None

    client = http_client or httpx.Client(
        timeout=config.PREVIEW_FETCH_TIMEOUT_SECONDS,
        follow_redirects=True,
    )
    try:
        with client.stream("GET", source) as response:
            if response.status_code >= 400:
                logger.warning(f"Preview image fetch rejected (status {response.status_code})")
                return None
            content = _read_capped(response, config.MAX_IMAGE_DATA_LENGTH)
    except httpx.HTTPError as exc:
        logger.warning(f"Preview image fetch failed: {exc}")
        return None
    finally:
        if http_client is None:
            client.close()
    if content is None:
        logger.warning(f"Preview image exceeds {config.MAX_IMAGE_DATA_LENGTH} bytes; skipped")
    return content


def _font(size: int):
    return ImageFont.load_default(size=size)


def _paste_image(canvas: Image.Image, image_bytes: Optional[bytes], box: tuple[int, int, int, int]) -> bool:
    if not image_bytes:
        return False
    try:
        with Image.open(BytesIO(image_bytes)) as source:
            picture = source.convert("RGB")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.warning(f"Preview image could not be decoded: {exc}")
        return False
    left, top, right, bottom = box
    picture.thumbnail((right - left, bottom - top))
    x = left + (right - left - picture.width) // 2
    y = top + (bottom - top - picture.height) // 2
    canvas.paste(picture, (x, y))
    return True


def render_preview(title: str, number: int, wall_slug: str, image_bytes: Optional[bytes]) -> bytes:
    """Draw the 1200x630 share card and return it as PNG bytes."""
    canvas = Image.new("RGB", (OG_WIDTH, OG_HEIGHT), BACKGROUND)
    draw = ImageDraw.Draw(canvas)

    card = (60, 100, OG_WIDTH - 60, OG_HEIGHT - 100)
    draw.rounded_rectangle(card, radius=28, fill=CARD, outline=CARD_BORDER, width=1)

    panel = (card[0] + 28, card[1] + 28, card[0] + 560, card[3] - 28)
    draw.rounded_rectangle(panel, radius=24, fill=BACKGROUND)
    inner = (panel[0] + 8, panel[1] + 8, panel[2] - 8, panel[3] - 8)
    if not _paste_image(canvas, image_bytes, inner):
        draw.text(
            ((panel[0] + panel[2]) // 2, (panel[1] + panel[3]) // 2),
            "Your memory image will appear here.",
            fill=MUTED,
            font=_font(22),
            anchor="mm",
        )

    text_left = panel[2] + 32
    draw.text((text_left, card[1] + 32), "INTERNET MEMORY WALL", fill=MUTED, font=_font(20))
    draw.text((card[2] - 28, card[1] + 32), wall_label(wall_slug), fill=MUTED, font=_font(16), anchor="ra")

    y = card[1] + 90
    for line in textwrap.wrap(title, width=22)[:3]:
        draw.text((text_left, y), line, fill=TEXT, font=_font(46))
        y += 54

    draw.text((text_left, card[3] - 90), "Tile", fill=MUTED, font=_font(16))
    draw.text((text_left, card[3] - 68), f"#{number}", fill=ACCENT, font=_font(34))
    draw.text(
        (card[2] - 28, card[3] - 48),
        f"internetmemorywall.com/{wall_slug}/{number}",
        fill=MUTED,
        font=_font(18),
        anchor="ra",
    )

    output = BytesIO()
    canvas.save(output, format="PNG")
    return output.getvalue()


def tile_preview(db: DBSession, wall_slug: Optional[str], raw_number, origin: Optional[str] = None) -> bytes:
    slug = normalize_wall_slug(wall_slug)
    number = parse_tile_number(raw_number)
    memory = _find_published(db, slug, number)
    shown = number if number is not None else 0
    image_bytes = None
    title = None
    if memory is not None:
        title = memory.title
        source = resolve_image_source(memory.image_url, memory.image_data, resolve_base_url(origin))
        image_bytes = load_image_bytes(source)
    return render_preview(clamp_title(title, shown), shown, slug, image_bytes)


__all__ = [
    "OG_WIDTH",
    "OG_HEIGHT",
    "tile_page",
    "resolve_image_source",
    "clamp_title",
    "load_image_bytes",
    "render_preview",
    "tile_preview",
]
