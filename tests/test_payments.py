"""Booking payment intents and pricing"""
from datetime import datetime, timedelta
import pytest
from app.models import Booking, PromoCode, Transaction
from app.services import paymongo_client
from app.services.pricing import apply_discount, round_half_up, split_platform_fee
from conftest import auth_headers


@pytest.fixture
def intents(monkeypatch):
    calls = []

    def create(amount, currency, metadata=None, description=None):
        calls.append({"amount": amount, "currency": currency, "metadata": metadata})
        return {"id": f"pi_{len(calls)}", "attributes": {"client_key": "secret_key"}}

    monkeypatch.setattr(paymongo_client, "create_payment_intent", create)
    return calls


def make_promo(db, **kwargs):
    now = datetime.utcnow()
    values = dict(
        code="SAVE10",
        discount_type="percentage",
        discount_value=10,
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=1),
    )
    values.update(kwargs)
    promo = PromoCode(**values)
    db.add(promo)
    db.commit()
    return promo


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(1.4) == 1


def test_split_platform_fee():
    assert split_platform_fee(100000, 5.0) == (5000, 95000)
    assert split_platform_fee(999, 5.0) == (50, 949)


def test_apply_discount_never_negative():
    promo = PromoCode(discount_type="fixed", discount_value=5000)
    assert apply_discount(3000, promo) == (0, 5000)
    assert apply_discount(3000, None) == (3000, 0)


def test_percentage_discount_capped():
    promo = PromoCode(discount_type="percentage", discount_value=50, max_discount_amount=20000)
    assert apply_discount(100000, promo) == (80000, 20000)


def test_create_intent_stores_pending_transaction(client, db, intents, make_user, make_event):
    user = make_user()
    event = make_event(price=100000)

    response = client.post("/payments/create-intent", json={"event_slug": event.slug}, headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["amount"] == 100000
    assert body["discount_amount"] == 0
    assert body["client_secret"] == "secret_key"
    assert intents[0]["metadata"] == {
        "userId": user.id, "eventId": event.id, "eventSlug": event.slug, "promoCode": "",
    }
    transaction = db.query(Transaction).one()
    assert transaction.status == "pending"
    assert transaction.platform_fee == 5000
    assert transaction.organizer_revenue == 95000
    assert transaction.paymongo_payment_intent_id == "pi_1"


def test_promo_code_applied(client, db, intents, make_user, make_event):
    event = make_event(price=100000)
    make_promo(db, code="SAVE10")

    response = client.post(
        "/payments/create-intent",
        json={"event_slug": event.slug, "promo_code": "save10"},
        headers=auth_headers(make_user()),
    )

    body = response.json()
    assert body["amount"] == 90000
    assert body["discount_amount"] == 10000
    assert db.query(Transaction).one().promo_code == "SAVE10"


@pytest.mark.parametrize("overrides", [
    {"is_active": False},
    {"valid_until": datetime.utcnow() - timedelta(hours=1)},
    {"usage_limit": 5, "used_count": 5},
])
def test_unusable_promo_ignored(client, db, intents, make_user, make_event, overrides):
    event = make_event(price=100000)
    make_promo(db, **overrides)

    response = client.post(
        "/payments/create-intent",
        json={"event_slug": event.slug, "promo_code": "SAVE10"},
        headers=auth_headers(make_user()),
    )

    assert response.json()["amount"] == 100000


def test_promo_for_other_event_ignored(client, db, intents, make_user, make_event):
    event = make_event(price=100000)
    other = make_event(price=100000)
    make_promo(db, event_id=other.id)

    response = client.post(
        "/payments/create-intent",
        json={"event_slug": event.slug, "promo_code": "SAVE10"},
        headers=auth_headers(make_user()),
    )

    assert response.json()["amount"] == 100000


def test_unknown_event(client, intents, make_user):
    response = client.post("/payments/create-intent", json={"event_slug": "nope"}, headers=auth_headers(make_user()))
    assert response.status_code == 404


def test_free_event_rejected(client, intents, make_user, make_event):
    event = make_event(price=None, is_free=True)
    response = client.post("/payments/create-intent", json={"event_slug": event.slug}, headers=auth_headers(make_user()))
    assert response.status_code == 400


def test_sold_out_event_rejected(client, db, intents, make_user, make_event):
    event = make_event(price=100000, capacity=1)
    db.add(Booking(event_id=event.id, user_id=make_user().id, payment_status="confirmed"))
    db.commit()

    response = client.post("/payments/create-intent", json={"event_slug": event.slug}, headers=auth_headers(make_user()))

    assert response.status_code == 400
    assert response.json()["detail"] == "Event is sold out"
    assert intents == []


def test_pending_bookings_do_not_count_toward_capacity(client, db, intents, make_user, make_event):
    event = make_event(price=100000, capacity=1)
    db.add(Booking(event_id=event.id, user_id=make_user().id, payment_status="pending"))
    db.commit()

    response = client.post("/payments/create-intent", json={"event_slug": event.slug}, headers=auth_headers(make_user()))

    assert response.status_code == 200
