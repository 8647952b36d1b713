import hashlib
import hmac
import json
import os
import time

os.environ.setdefault("DB_BACKEND", "sqlite")
os.environ.setdefault("MODERATION_PROVIDER", "none")
os.environ.setdefault("REQUEST_SIZE_LIMIT_ENABLED", "true")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from starlette.testclient import TestClient

import core.config as config
from core.db import DB
from core.errors import ModerationProviderError, PaymentProviderError
from core.models import Base
from core.services import moderation, payments
from core.services.moderation import ModerationClient, ModerationResult
from core.services.payments import CheckoutSession, StripeGateway


WEBHOOK_SECRET = "whsec_test_secret"


class FakeModerationClient(ModerationClient):
    """Flags text containing a blocked word; can be told to fail like a down provider."""

    def __init__(self):
        self.blocked_words = {"hateful"}
        self.blocked_images = {"forbidden"}
        self.fail = False
        self.text_calls = []
        self.image_calls = []

    def classify_text(self, text):
        self.text_calls.append(text)
        if self.fail:
            raise ModerationProviderError("provider unavailable")
        hit = any(word in text.lower() for word in self.blocked_words)
        return ModerationResult(flagged=hit, categories=("harassment",) if hit else ())

    def classify_image(self, image_url):
        self.image_calls.append(image_url)
        if self.fail:
            raise ModerationProviderError("provider unavailable")
        hit = any(word in image_url for word in self.blocked_images)
        return ModerationResult(flagged=hit, categories=("sexual",) if hit else ())


class FakePaymentGateway(StripeGateway):
    """Records checkout sessions instead of calling Stripe; webhook verification stays real."""

    def __init__(self):
        super().__init__("sk_test_fake")
        self.sessions = []
        self.error = None

    def create_checkout_session(self, *, price_id, metadata, success_url, cancel_url):
        if self.error:
            raise PaymentProviderError(self.error)
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions.append(
            {
                "id": session_id,
                "price_id": price_id,
                "metadata": dict(metadata),
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.test/{session_id}")


def sign_webhook(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Build a Stripe-Signature header for payload (HMAC-SHA256 over "t.payload")."""
    timestamp = int(timestamp if timestamp is not None else time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def checkout_completed_event(tile_index="5", wall_slug="m", session_id="cs_test_1", metadata=None) -> bytes:
    if metadata is None:
        metadata = {"tileIndex": tile_index, "wallSlug": wall_slug}
    event = {
        "id": "evt_test_1",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": {"id": session_id, "object": "checkout.session", "metadata": metadata}},
    }
    return json.dumps(event).encode()


@pytest.fixture(autouse=True)
def app_config(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(config, "STRIPE_PRICE_TILE", "price_test_tile")
    monkeypatch.setattr(config, "SITE_URL", "https://wall.example")
    monkeypatch.setattr(config, "FILL_COUNT_INCLUDES_DRAFTS", True)
    monkeypatch.setattr(config, "IMAGE_MODERATION_POLICY", "advisory")
    return config


@pytest.fixture
def db_engine(tmp_path):
    db_path = tmp_path / "tilewall.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    previous_engine = DB.engine
    previous_session = DB.SessionLocal
    DB.engine = engine
    DB.SessionLocal = sessionmaker(bind=engine)
    try:
        yield engine
    finally:
        DB.engine = previous_engine
        DB.SessionLocal = previous_session
        engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = DB.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def moderation_client():
    client = FakeModerationClient()
    moderation.set_moderation_client(client)
    moderation.moderation_circuit_breaker.record_success()
    try:
        yield client
    finally:
        moderation.set_moderation_client(None)
        moderation.moderation_circuit_breaker.record_success()


@pytest.fixture
def payment_gateway():
    gateway = FakePaymentGateway()
    payments.set_payment_gateway(gateway)
    try:
        yield gateway
    finally:
        payments.set_payment_gateway(None)


@pytest.fixture
def client(db_engine, moderation_client, payment_gateway):
    from app.main import app

    # No context manager: the lifespan (real init_db/clients) is not run.
    return TestClient(app, raise_server_exceptions=False)
