"""
Shared error types for core services.
"""


class ValidationIssue(ValueError):
    def __init__(
        self,
        message: str,
        field: str = "unknown",
        error_type: str = "invalid",
        error_code: str | None = None,
        data: dict | None = None,
    ):
        super().__init__(message)
        self.field = field
        self.error_type = error_type
        self.error_code = error_code
        self.data = data


class TileAlreadyClaimed(RuntimeError):
    """Raised when a tile already carries a published memory."""

    def __init__(self, wall_slug: str, tile_index: int, message: str | None = None):
        super().__init__(message or "This tile has already been claimed and published.")
        self.wall_slug = wall_slug
        self.tile_index = tile_index


class ConfigurationError(RuntimeError):
    """Raised when a required credential or identifier is not configured."""


class ModerationProviderError(RuntimeError):
    """Raised when the moderation provider is unavailable."""


class PaymentProviderError(RuntimeError):
    """Raised when the payment provider rejects or fails a request."""


class WebhookSignatureError(ValueError):
    """Raised when a webhook payload cannot be authenticated."""
