from dataclasses import dataclass
from typing import Any, Callable

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.api import deps
from storefront.api.routes import payments
from storefront.config import Settings, get_settings
from storefront.db import models
from storefront.db.session import Base, get_db
from storefront.services.payments import CredentialCache, GatewayClient

TEST_CLIENT_ID = "TESTCLIENT1234567890"
TEST_CLIENT_SECRET = "cfsk_test_secret"


def order_body(order_id: str, status: str = "ACTIVE", **extra: Any) -> dict[str, Any]:
    body = {
        "cf_order_id": "2149460581",
        "order_id": order_id,
        "order_status": status,
        "order_amount": 499.0,
        "order_currency": "INR",
        "payment_session_id": f"session_{order_id}",
        "order_expiry_time": "2026-10-17T10:00:00+05:30",
    }
    body.update(extra)
    return body


class FakeGateway:
    """Request handler for ``httpx.MockTransport`` that records every call.

    Queued items are served in order: an ``httpx.Response``, an exception to
    raise, or a callable taking the request. Once the queue is empty every
    request gets ``default``.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.queued: list[Any] = []
        self.default: Any = None

    def queue(self, *items: Any) -> None:
        self.queued.extend(items)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.queued.pop(0) if self.queued else self.default
        if item is None:
            return httpx.Response(200, json=order_body("order_default"))
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return item

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def client(self, api_version: str = "2025-01-01") -> GatewayClient:
        return GatewayClient(api_version=api_version, transport=self.transport)


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def settings_factory() -> Callable[..., Settings]:
    def build(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "cashfree_enabled": True,
            "cashfree_client_id": TEST_CLIENT_ID,
            "cashfree_client_secret": TEST_CLIENT_SECRET,
            "cashfree_environment": "sandbox",
            "gateway_retry_backoff": 0.0,
        }
        values.update(overrides)
        return Settings(**values)

    return build


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@dataclass
class PaymentsApi:
    client: TestClient
    app: FastAPI
    session_factory: sessionmaker
    gateway: FakeGateway
    settings: Settings

    def configure(self, **overrides: Any) -> Settings:
        self.settings = self.settings.model_copy(update=overrides)
        self.app.state.credential_cache.invalidate()
        return self.settings

    def events(self) -> list[models.WebhookEvent]:
        with self.session_factory() as db:
            return db.query(models.WebhookEvent).order_by(models.WebhookEvent.id).all()


@pytest.fixture()
def payments_api(settings_factory, gateway):
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    test_app = FastAPI()
    test_app.include_router(payments.router, prefix="/api/v1")
    test_app.state.credential_cache = CredentialCache(ttl=None)

    api = PaymentsApi(
        client=None,  # type: ignore[arg-type]
        app=test_app,
        session_factory=TestingSessionLocal,
        gateway=gateway,
        settings=settings_factory(),
    )

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_settings] = lambda: api.settings
    test_app.dependency_overrides[deps.get_gateway_client] = lambda: gateway.client(api.settings.cashfree_api_version)

    with TestClient(test_app) as client:
        api.client = client
        yield api

    test_app.dependency_overrides.clear()
