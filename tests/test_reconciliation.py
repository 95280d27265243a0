"""Subscription resolution and compare-and-set status writes"""
from datetime import datetime, timedelta
import pytest
from sqlalchemy import update
from app.models import Subscription, SubscriptionStatus
from app.services.reconciliation import (
    apply_status,
    can_transition,
    first_incomplete_amount_match,
    get_amount_match_strategy,
    map_stripe_status,
    period_fields,
    resolve_subscription,
    unique_incomplete_amount_match,
)


@pytest.mark.parametrize("current,target,allowed", [
    ("incomplete", "active", True),
    ("active", "active", True),
    ("past_due", "active", True),
    ("canceled", "active", False),
    ("incomplete_expired", "active", False),
    ("active", "past_due", True),
    ("incomplete", "past_due", False),
    ("active", "incomplete", False),
    ("active", "canceled", True),
    ("canceled", "canceled", True),
    ("active", "trialing", False),
    ("bogus", "active", False),
])
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_apply_status_activates_and_bumps_version(db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan())

    assert apply_status(db, subscription, SubscriptionStatus.ACTIVE) is True
    assert subscription.status == "active"
    assert subscription.version == 1


def test_apply_status_reassigns_plan(db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(name="Basic"))
    pro = make_plan(name="Pro", price=500000)

    apply_status(db, subscription, SubscriptionStatus.ACTIVE, plan_id=pro.id)
    assert subscription.plan_id == pro.id


def test_apply_status_refuses_backward_move(db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), status="canceled")

    assert apply_status(db, subscription, SubscriptionStatus.ACTIVE) is False
    assert subscription.status == "canceled"
    assert subscription.version == 0


def test_apply_status_self_transition_is_harmless(db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), status="active")

    assert apply_status(db, subscription, SubscriptionStatus.ACTIVE) is True
    assert subscription.status == "active"


def test_apply_status_does_not_clobber_newer_write(db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), status="active")
    # Another request cancels the row after this one read it
    db.execute(update(Subscription).where(Subscription.id == subscription.id).values(status="canceled"))
    db.commit()

    assert apply_status(db, subscription, SubscriptionStatus.PAST_DUE) is False
    assert subscription.status == "canceled"


def test_resolve_by_payment_intent(db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(), paymongo_payment_intent_id="pi_abc")
    assert resolve_subscription(db, "pi_abc").id == subscription.id
    assert resolve_subscription(db, "pi_missing") is None


def test_resolve_without_intent_needs_amount_and_strategy(db, make_user, make_plan, make_subscription):
    make_subscription(make_user(), make_plan(price=150000))
    assert resolve_subscription(db, None) is None
    assert resolve_subscription(db, None, amount=150000) is None
    assert resolve_subscription(db, None, amount=150000, strategy=first_incomplete_amount_match) is not None


def test_first_match_picks_oldest_with_matching_price(db, make_user, make_plan, make_subscription):
    basic = make_plan(name="Basic", price=150000)
    pro = make_plan(name="Pro", price=500000)
    now = datetime.utcnow()
    older = make_subscription(make_user(), basic, created_at=now - timedelta(hours=2))
    make_subscription(make_user(), basic, created_at=now - timedelta(hours=1))
    pro_sub = make_subscription(make_user(), pro)

    assert first_incomplete_amount_match(db, 150000).id == older.id
    assert first_incomplete_amount_match(db, 500000).id == pro_sub.id
    assert first_incomplete_amount_match(db, 999) is None


def test_first_match_ignores_non_incomplete(db, make_user, make_plan, make_subscription):
    plan = make_plan(price=150000)
    make_subscription(make_user(), plan, status="active")
    assert first_incomplete_amount_match(db, 150000) is None


def test_unique_match_skips_ambiguous(db, make_user, make_plan, make_subscription):
    plan = make_plan(price=150000)
    make_subscription(make_user(), plan)
    make_subscription(make_user(), plan)
    assert unique_incomplete_amount_match(db, 150000) is None


def test_unique_match_single_candidate(db, make_user, make_plan, make_subscription):
    subscription = make_subscription(make_user(), make_plan(price=150000))
    assert unique_incomplete_amount_match(db, 150000).id == subscription.id


def test_get_amount_match_strategy():
    assert get_amount_match_strategy("first") is first_incomplete_amount_match
    assert get_amount_match_strategy("unique") is unique_incomplete_amount_match
    with pytest.raises(ValueError):
        get_amount_match_strategy("closest")


def test_map_stripe_status():
    assert map_stripe_status("active") == SubscriptionStatus.ACTIVE
    assert map_stripe_status("past_due") == SubscriptionStatus.PAST_DUE
    assert map_stripe_status("unpaid") == SubscriptionStatus.INCOMPLETE
    assert map_stripe_status(None) == SubscriptionStatus.INCOMPLETE


def test_period_fields_falls_back_to_first_item():
    fields = period_fields({
        "items": {"data": [{"current_period_start": 1700000000, "current_period_end": 1702592000}]},
        "cancel_at_period_end": True,
    })
    assert fields["current_period_start"] == datetime(2023, 11, 14, 22, 13, 20)
    assert fields["current_period_end"] == datetime(2023, 12, 14, 22, 13, 20)
    assert fields["cancel_at_period_end"] is True
    assert "trial_end" not in fields
