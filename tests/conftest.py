"""Shared fixtures: in-memory database, API client, record factories"""
import hashlib
import hmac
import json
import time
import uuid
from datetime import datetime
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.core.config import settings
from app.core.security import create_access_token
from app.db.session import Base, get_db
from app.main import app
from app.models import Event, Plan, Subscription, Transaction, User, UserRole

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def foreign_keys(db):
    """Enforce foreign keys on the shared SQLite connection, as PostgreSQL does"""
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
    yield
    db.rollback()
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")


@pytest.fixture(autouse=True)
def webhook_settings(monkeypatch):
    monkeypatch.setattr(settings, "PAYMONGO_WEBHOOK_SECRET", None)
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "whsec_test")
    monkeypatch.setattr(settings, "WEBHOOK_ERROR_POLICY", "fail")
    monkeypatch.setattr(settings, "AMOUNT_MATCH_STRATEGY", "first")
    monkeypatch.setattr(settings, "PLATFORM_FEE_PERCENT", 5.0)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'id': user.id})}"}


@pytest.fixture
def make_user(db):
    def _make(role=UserRole.ORGANIZER.value, **kwargs):
        suffix = uuid.uuid4().hex[:8]
        user = User(
            email=kwargs.pop("email", f"user-{suffix}@example.com"),
            name=kwargs.pop("name", f"User {suffix}"),
            role=role,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_plan(db):
    def _make(name=None, price=150000, **kwargs):
        plan = Plan(name=name or f"Plan {uuid.uuid4().hex[:6]}", price=price, features={}, limits={}, **kwargs)
        db.add(plan)
        db.commit()
        db.refresh(plan)
        return plan
    return _make


@pytest.fixture
def make_subscription(db):
    def _make(user, plan=None, status="incomplete", created_at=None, **kwargs):
        subscription = Subscription(
            user_id=user.id,
            plan_id=plan.id if plan else None,
            status=status,
            created_at=created_at or datetime.utcnow(),
            **kwargs,
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription
    return _make


@pytest.fixture
def make_event(db, make_user):
    def _make(price=100000, **kwargs):
        organizer = kwargs.pop("organizer", None) or make_user()
        suffix = uuid.uuid4().hex[:6]
        event = Event(
            slug=kwargs.pop("slug", f"event-{suffix}"),
            title=kwargs.pop("title", f"Event {suffix}"),
            organizer_id=organizer.id,
            price=price,
            currency=kwargs.pop("currency", "php"),
            **kwargs,
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event
    return _make


@pytest.fixture
def make_transaction(db, make_user, make_event):
    def _make(amount=100000, status="pending", **kwargs):
        user = kwargs.pop("user", None) or make_user(role=UserRole.USER.value)
        event = kwargs.pop("event", None) or make_event()
        transaction = Transaction(user_id=user.id, event_id=event.id, amount=amount, status=status, **kwargs)
        db.add(transaction)
        db.commit()
        db.refresh(transaction)
        return transaction
    return _make


def paymongo_signature(payload: bytes, secret: str, timestamp: int = None, live: bool = False) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    if live:
        return f"t={timestamp},te=,li={digest}"
    return f"t={timestamp},te={digest},li="


def stripe_signature(payload: bytes, secret: str = "whsec_test", timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}"
    digest = hmac.new(secret.encode(), signed.encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def post_stripe_event(client, event: dict, secret: str = "whsec_test"):
    payload = json.dumps(event).encode()
    return client.post(
        "/webhooks/stripe",
        content=payload,
        headers={"stripe-signature": stripe_signature(payload, secret), "content-type": "application/json"},
    )
