"""
Moderation gate for memory submissions.

Text moderation fails closed: a provider failure yields a generic
"try again" rejection instead of admitting the content. Image moderation
runs under IMAGE_MODERATION_POLICY; the default "advisory" policy is a
logged placeholder whose result can never reject a submission.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Optional

import httpx

import core.config as config
from core.errors import ModerationProviderError

logger = config.logger

TEXT_REJECTION_MESSAGE = """Your memory contains disallowed content. Please rewrite it without:
- Hate or abusive language
- Sexual content
- Graphic violence
- Illegal activity
- Extremist content
- Harassment

Please try again with a revised version."""

IMAGE_REJECTION_MESSAGE = "Your image contains disallowed content. Please choose a different image."

PROVIDER_FAILURE_MESSAGE = "Content moderation failed. Try again."


@dataclass(frozen=True)
class ModerationResult:
    flagged: bool
    categories: tuple[str, ...] = ()


class ModerationCircuitBreaker:
    def __init__(self, failure_threshold: int, cooldown_seconds: int):
        self._failure_threshold = max(1, failure_threshold)
        self._cooldown_seconds = max(1, cooldown_seconds)
        self._lock = threading.Lock()
        self._consecutive_failures = 0
        self._cooldown_until = 0.0
        self._last_error: Optional[str] = None
        self._last_failure_ts: Optional[float] = None
        self._last_success_ts: Optional[float] = None

    def is_open(self) -> bool:
        with self._lock:
            return time.time() < self._cooldown_until

    def record_success(self) -> None:
        with self._lock:
            self._consecutive_failures = 0
            self._cooldown_until = 0.0
            self._last_success_ts = time.time()

    def record_failure(self, error: str) -> None:
        with self._lock:
            self._consecutive_failures += 1
            self._last_error = error
            self._last_failure_ts = time.time()
            if self._consecutive_failures >= self._failure_threshold:
                self._cooldown_until = time.time() + self._cooldown_seconds

    def status(self) -> dict:
        with self._lock:
            return {
                "open": time.time() < self._cooldown_until,
                "consecutive_failures": self._consecutive_failures,
                "cooldown_until_epoch": int(self._cooldown_until) if self._cooldown_until else None,
                "last_error": self._last_error,
                "last_failure_epoch": int(self._last_failure_ts) if self._last_failure_ts else None,
                "last_success_epoch": int(self._last_success_ts) if self._last_success_ts else None,
            }


moderation_circuit_breaker = ModerationCircuitBreaker(
    failure_threshold=config.MODERATION_FAILURE_THRESHOLD,
    cooldown_seconds=config.MODERATION_COOLDOWN_SECONDS,
)


# =============================================================================
# Provider clients
# =============================================================================

class ModerationClient:
    """Classifier interface the gate depends on."""

    def classify_text(self, text: str) -> ModerationResult:
        raise NotImplementedError

    def classify_image(self, image_url: str) -> ModerationResult:
        raise NotImplementedError

    def close(self) -> None:
        pass


class OpenAIModerationClient(ModerationClient):
    def __init__(
        self,
        api_key: Optional[str],
        model: str = config.MODERATION_MODEL,
        base_url: str = config.OPENAI_BASE_URL,
        timeout_seconds: float = config.MODERATION_TIMEOUT_SECONDS,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._api_key = api_key
        self._model = model
        self._http = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=100),
            headers=headers,
        )

    def _classify(self, moderation_input) -> ModerationResult:
        if not self._api_key:
            raise ModerationProviderError("OPENAI_API_KEY is not configured")
        try:
            response = self._http.post(
                "/moderations",
                json={"model": self._model, "input": moderation_input},
            )
        except httpx.RequestError as exc:
            raise ModerationProviderError(f"request error: {exc}") from exc
        if response.status_code >= 400:
            raise ModerationProviderError(f"status {response.status_code}")
        try:
            first = response.json()["results"][0]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ModerationProviderError("malformed moderation response") from exc
        categories = tuple(
            sorted(name for name, hit in (first.get("categories") or {}).items() if hit)
        )
        return ModerationResult(flagged=bool(first.get("flagged")), categories=categories)

    def classify_text(self, text: str) -> ModerationResult:
        return self._classify(text)

    def classify_image(self, image_url: str) -> ModerationResult:
        return self._classify([{"type": "image_url", "image_url": {"url": image_url}}])

    def close(self) -> None:
        self._http.close()


class DisabledModerationClient(ModerationClient):
    """Admits everything; selected explicitly with MODERATION_PROVIDER=none."""

    def classify_text(self, text: str) -> ModerationResult:
        return ModerationResult(flagged=False)

    def classify_image(self, image_url: str) -> ModerationResult:
        return ModerationResult(flagged=False)


moderation_client: Optional[ModerationClient] = None


def init_moderation_client() -> None:
    """Initialize the moderation client for the configured provider."""
    global moderation_client
    if config.MODERATION_PROVIDER == "none":
        moderation_client = DisabledModerationClient()
    else:
        moderation_client = OpenAIModerationClient(config.OPENAI_API_KEY)
    logger.info(f"Moderation client initialized (provider={config.MODERATION_PROVIDER})")


def cleanup_moderation_client() -> None:
    """Release the moderation client on shutdown."""
    global moderation_client
    if moderation_client:
        moderation_client.close()
        moderation_client = None
        logger.info("Moderation client closed")


def set_moderation_client(client: Optional[ModerationClient]) -> None:
    global moderation_client
    moderation_client = client


def get_moderation_client() -> ModerationClient:
    if moderation_client is None:
        init_moderation_client()
    return moderation_client


# =============================================================================
# Gate
# =============================================================================

def build_moderation_text(title: Optional[str], body: str, author_name: Optional[str]) -> str:
    return f"{title or ''}\n{body}\n{author_name or ''}"


def moderate_text(text: str) -> Optional[str]:
    """Return a user-facing rejection message, or None when the text is clean."""
    if moderation_circuit_breaker.is_open():
        logger.warning("Moderation circuit open; rejecting submission")
        return PROVIDER_FAILURE_MESSAGE
    try:
        result = get_moderation_client().classify_text(text)
    except ModerationProviderError as exc:
        moderation_circuit_breaker.record_failure(str(exc))
        logger.warning(f"Moderation provider error: {exc}")
        return PROVIDER_FAILURE_MESSAGE
    moderation_circuit_breaker.record_success()
    if not result.flagged:
        return None
    logger.info("moderation_rejected", extra={"categories": list(result.categories)})
    return TEXT_REJECTION_MESSAGE


def _as_image_url(image_data: str) -> str:
    if image_data.startswith("data:") or image_data.startswith("http"):
        return image_data
    return f"data:image/png;base64,{image_data}"


def moderate_image(image_data: str) -> Optional[str]:
    """
    Image gate.

    Under the "advisory" policy this is a placeholder: the upload is logged
    and None is always returned. Only the "enforce" policy can reject, and
    it fails closed like text moderation.
    """
    if config.IMAGE_MODERATION_POLICY != "enforce":
        logger.info("Image uploaded (moderation placeholder, not blocking).")
        return None
    try:
        result = get_moderation_client().classify_image(_as_image_url(image_data))
    except ModerationProviderError as exc:
        logger.warning(f"Image moderation provider error: {exc}")
        return PROVIDER_FAILURE_MESSAGE
    if result.flagged:
        logger.info("image_moderation_rejected", extra={"categories": list(result.categories)})
        return IMAGE_REJECTION_MESSAGE
    return None


__all__ = [
    "ModerationResult",
    "ModerationClient",
    "OpenAIModerationClient",
    "DisabledModerationClient",
    "moderation_circuit_breaker",
    "init_moderation_client",
    "cleanup_moderation_client",
    "set_moderation_client",
    "get_moderation_client",
    "build_moderation_text",
    "moderate_text",
    "moderate_image",
    "TEXT_REJECTION_MESSAGE",
    "IMAGE_REJECTION_MESSAGE",
    "PROVIDER_FAILURE_MESSAGE",
]
