"""Stripe webhook: signature checks and event handlers"""
import json
from app.core.config import settings
from app.models import Payment, Subscription
from conftest import post_stripe_event


def stripe_event(event_type, obj, event_id="evt_1"):
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}


def test_missing_signature_header_is_rejected(client):
    response = client.post("/webhooks/stripe", content=json.dumps(stripe_event("invoice.paid", {})).encode())
    assert response.status_code == 400


def test_bad_signature_is_rejected(client, db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), status="active", stripe_subscription_id="sub_1")

    response = post_stripe_event(
        client,
        stripe_event("customer.subscription.deleted", {"id": "sub_1"}),
        secret="whsec_other",
    )

    assert response.status_code == 400
    db.refresh(subscription)
    assert subscription.status == "active"


def test_missing_webhook_secret_fails_closed(client, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", None)
    response = post_stripe_event(client, stripe_event("customer.subscription.deleted", {"id": "sub_1"}))
    assert response.status_code == 400


def test_subscription_deleted_cancels(client, db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), status="active", stripe_subscription_id="sub_1")

    response = post_stripe_event(client, stripe_event("customer.subscription.deleted", {"id": "sub_1", "status": "canceled"}))

    assert response.status_code == 200
    assert response.json() == {"received": True}
    db.refresh(subscription)
    assert subscription.status == "canceled"
    assert subscription.canceled_at is not None


def test_subscription_updated_syncs_status_and_period(client, db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), status="active", stripe_subscription_id="sub_1")

    post_stripe_event(client, stripe_event("customer.subscription.updated", {
        "id": "sub_1",
        "status": "past_due",
        "current_period_start": 1700000000,
        "current_period_end": 1702592000,
        "cancel_at_period_end": True,
    }))

    db.refresh(subscription)
    assert subscription.status == "past_due"
    assert subscription.current_period_end is not None
    assert subscription.cancel_at_period_end is True


def test_subscription_updated_cannot_revive_canceled(client, db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), status="canceled", stripe_subscription_id="sub_1")

    post_stripe_event(client, stripe_event("customer.subscription.updated", {"id": "sub_1", "status": "active"}))

    db.refresh(subscription)
    assert subscription.status == "canceled"


def test_subscription_created_for_metadata_user(client, db, make_user, make_plan):
    user = make_user()
    plan = make_plan()

    post_stripe_event(client, stripe_event("customer.subscription.created", {
        "id": "sub_new",
        "customer": "cus_1",
        "status": "active",
        "metadata": {"userId": user.id, "planId": plan.id},
    }))

    subscription = db.query(Subscription).filter(Subscription.stripe_subscription_id == "sub_new").one()
    assert subscription.user_id == user.id
    assert subscription.plan_id == plan.id
    assert subscription.status == "active"


def test_subscription_created_finds_user_by_customer_id(client, db, make_user):
    user = make_user(stripe_customer_id="cus_known")

    post_stripe_event(client, stripe_event("customer.subscription.created", {
        "id": "sub_cus", "customer": "cus_known", "status": "trialing",
    }))

    subscription = db.query(Subscription).filter(Subscription.stripe_subscription_id == "sub_cus").one()
    assert subscription.user_id == user.id
    assert subscription.status == "trialing"


def test_subscription_created_for_unknown_user_is_dropped(client, db):
    response = post_stripe_event(client, stripe_event("customer.subscription.created", {
        "id": "sub_orphan", "customer": "cus_nobody", "status": "active",
    }))

    assert response.status_code == 200
    assert db.query(Subscription).count() == 0


def _invoice(invoice_id="in_1"):
    return {
        "id": invoice_id,
        "subscription": "sub_1",
        "amount_paid": 150000,
        "currency": "php",
        "charge": "ch_1",
        "status_transitions": {"paid_at": 1700000000},
    }


def test_invoice_payment_succeeded_records_payment_once(client, db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), status="active", stripe_subscription_id="sub_1")

    post_stripe_event(client, stripe_event("invoice.payment_succeeded", _invoice(), event_id="evt_a"))
    # Same invoice under a different event id
    post_stripe_event(client, stripe_event("invoice.payment_succeeded", _invoice(), event_id="evt_b"))

    payments = db.query(Payment).all()
    assert len(payments) == 1
    payment = payments[0]
    assert payment.subscription_id == subscription.id
    assert payment.amount == 150000
    assert payment.currency == "PHP"
    assert payment.stripe_invoice_id == "in_1"
    assert payment.stripe_charge_id == "ch_1"


def test_invoice_payment_failed_marks_past_due(client, db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), status="active", stripe_subscription_id="sub_1")

    post_stripe_event(client, stripe_event("invoice.payment_failed", _invoice()))

    db.refresh(subscription)
    assert subscription.status == "past_due"


def test_checkout_session_completed_links_and_activates(client, db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan())

    post_stripe_event(client, stripe_event("checkout.session.completed", {
        "id": "cs_1",
        "subscription": "sub_cs",
        "customer": "cus_cs",
        "metadata": {"subscriptionId": subscription.id},
    }))

    db.refresh(subscription)
    assert subscription.status == "active"
    assert subscription.stripe_subscription_id == "sub_cs"
    assert subscription.stripe_customer_id == "cus_cs"


def test_payment_intent_events_update_transaction(client, db, make_transaction):
    succeeded = make_transaction(stripe_payment_intent_id="pi_ok")
    failed = make_transaction(stripe_payment_intent_id="pi_bad")

    post_stripe_event(client, stripe_event("payment_intent.succeeded", {"id": "pi_ok", "latest_charge": "ch_ok"}, "evt_1"))
    post_stripe_event(client, stripe_event("payment_intent.payment_failed", {"id": "pi_bad"}, "evt_2"))

    db.refresh(succeeded)
    db.refresh(failed)
    assert succeeded.status == "completed"
    assert succeeded.stripe_charge_id == "ch_ok"
    assert failed.status == "failed"


def test_partial_refund(client, db, make_transaction):
    transaction = make_transaction(amount=100000, status="completed", stripe_charge_id="ch_1")

    post_stripe_event(client, stripe_event("charge.refunded", {"id": "ch_1", "amount_refunded": 40000}))

    db.refresh(transaction)
    assert transaction.refund_amount == 40000
    assert transaction.status == "partially_refunded"


def test_full_refund_found_by_payment_intent(client, db, make_transaction):
    transaction = make_transaction(amount=100000, status="completed", stripe_payment_intent_id="pi_r")

    post_stripe_event(client, stripe_event("charge.refunded", {
        "id": "ch_unknown", "payment_intent": "pi_r", "amount_refunded": 100000,
    }))

    db.refresh(transaction)
    assert transaction.status == "refunded"


def test_handler_exception_fails_by_default(client, monkeypatch):
    def explode(db, event):
        raise RuntimeError("boom")

    monkeypatch.setattr("app.api.webhooks.process_stripe_event", explode)

    response = post_stripe_event(client, stripe_event("invoice.payment_failed", _invoice(), event_id="evt_err"))

    assert response.status_code == 500
