"""
Shared validation helpers for tile wall services.
"""

from __future__ import annotations

import math
from typing import Optional

import core.config as config
from core.errors import ValidationIssue
from core.models import AccentColor
from core.walls import is_valid_index

ACCENT_COLORS = tuple(color.value for color in AccentColor)


def validate_required_text(value, field: str, max_len: int, message: Optional[str] = None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationIssue(
            message or f"{field} must be a non-empty string",
            field=field,
            error_type="required",
        )
    text = value.strip()
    if len(text) > max_len:
        raise ValidationIssue(f"{field} exceeds max length {max_len}", field=field, error_type="max_length")
    return text


def validate_optional_text(value, field: str, max_len: int) -> Optional[str]:
    """Trimmed text, or None when absent or blank."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationIssue(f"{field} must be a string", field=field, error_type="invalid_type")
    text = value.strip()
    if len(text) > max_len:
        raise ValidationIssue(f"{field} exceeds max length {max_len}", field=field, error_type="max_length")
    return text or None


def validate_accent_color(value) -> str:
    if value is None or value == "":
        return AccentColor.none.value
    if not isinstance(value, str) or value.strip().lower() not in ACCENT_COLORS:
        raise ValidationIssue(
            f"accentColor must be one of: {', '.join(ACCENT_COLORS)}",
            field="accentColor",
            error_type="invalid",
        )
    return value.strip().lower()


def coerce_tile_index(value) -> Optional[int]:
    """
    Interpret a JSON number as a tile index.

    Integral floats (5.0) are accepted; booleans, strings, NaN/inf and
    fractional values are not.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return None


def validate_tile_index(
    value,
    wall_slug: str,
    missing_message: str = "A specific tile must be selected to publish.",
) -> int:
    if value is None:
        raise ValidationIssue(missing_message, field="tileIndex", error_type="required")
    tile_index = coerce_tile_index(value)
    if tile_index is None:
        raise ValidationIssue(missing_message, field="tileIndex", error_type="invalid_type")
    if not is_valid_index(wall_slug, tile_index):
        raise ValidationIssue(
            "Invalid tile index for this wall.",
            field="tileIndex",
            error_type="out_of_range",
            data={"wallSlug": wall_slug, "tileIndex": tile_index},
        )
    return tile_index


def validate_image_fields(image_url, image_data) -> tuple[Optional[str], Optional[str]]:
    """An image is either an external URL or an inline payload, never both."""
    url = validate_optional_text(image_url, "imageUrl", config.MAX_IMAGE_URL_LENGTH)
    data = validate_optional_text(image_data, "imageData", config.MAX_IMAGE_DATA_LENGTH)
    if url and data:
        raise ValidationIssue(
            "Provide either imageUrl or imageData, not both.",
            field="imageUrl",
            error_type="conflict",
        )
    return url, data
