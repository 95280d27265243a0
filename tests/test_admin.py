"""Admin subscriptions, payouts and financials"""
import csv
import io
from datetime import datetime
import pytest
from app.models import Notification, Payout, UserRole
from conftest import auth_headers


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN.value)


def make_payout(db, organizer, amount=150000, status="pending"):
    payout = Payout(organizer_id=organizer.id, amount=amount, status=status, transaction_ids=[])
    db.add(payout)
    db.commit()
    db.refresh(payout)
    return payout


def test_list_subscriptions_with_stats(client, admin, make_user, make_plan, make_subscription):
    plan = make_plan()
    organizer = make_user()
    make_subscription(organizer, plan, status="active")
    make_subscription(make_user(), plan, status="past_due")
    make_subscription(make_user(), plan, status="canceled")

    body = client.get("/admin/subscriptions", headers=auth_headers(admin)).json()

    assert body["stats"] == {"total": 3, "active": 1, "trialing": 0, "canceled": 1, "past_due": 1}
    assert body["subscriptions"][0]["user"]["email"]

    filtered = client.get(
        "/admin/subscriptions", params={"organizer_id": organizer.id}, headers=auth_headers(admin)
    ).json()
    assert [s["status"] for s in filtered["subscriptions"]] == ["active"]


def test_list_subscriptions_unknown_organizer(client, admin):
    response = client.get("/admin/subscriptions", params={"organizer_id": "missing"}, headers=auth_headers(admin))
    assert response.status_code == 404


def test_list_payouts(client, db, admin, make_user):
    organizer = make_user()
    make_payout(db, organizer, amount=1000)
    make_payout(db, organizer, amount=2000)
    make_payout(db, organizer, amount=5000, status="completed")

    body = client.get("/admin/payouts", headers=auth_headers(admin)).json()

    assert body["stats"]["pending"] == 2
    assert body["stats"]["completed"] == 1
    assert body["stats"]["total_pending_amount"] == 3000
    assert body["payouts"][0]["organizer"]["id"] == organizer.id

    pending = client.get("/admin/payouts", params={"status": "pending"}, headers=auth_headers(admin)).json()
    assert len(pending["payouts"]) == 2


def test_complete_payout_notifies_organizer(client, db, admin, make_user):
    organizer = make_user()
    payout = make_payout(db, organizer, amount=150000)

    response = client.patch(f"/admin/payouts/{payout.id}", json={"status": "completed"}, headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()["payout"]
    assert body["status"] == "completed"
    assert body["processed_by"] == admin.id
    assert body["processed_at"] is not None
    notification = db.query(Notification).filter(Notification.user_id == organizer.id).one()
    assert notification.message == "Your payout request of 1500.00 PHP has been completed."


def test_failed_payout_records_reason(client, db, admin, make_user):
    payout = make_payout(db, make_user())

    response = client.patch(
        f"/admin/payouts/{payout.id}",
        json={"status": "failed", "failure_reason": "Invalid account"},
        headers=auth_headers(admin),
    )

    body = response.json()["payout"]
    assert body["failure_reason"] == "Invalid account"
    assert body["processed_at"] is None


def test_invalid_payout_status(client, db, admin, make_user):
    payout = make_payout(db, make_user())
    response = client.patch(f"/admin/payouts/{payout.id}", json={"status": "paid"}, headers=auth_headers(admin))
    assert response.status_code == 400


def test_missing_payout(client, admin):
    response = client.patch("/admin/payouts/nope", json={"status": "completed"}, headers=auth_headers(admin))
    assert response.status_code == 404


def test_financials(client, db, admin, make_user, make_plan, make_subscription, make_transaction, make_event):
    event = make_event(title="PyCon")
    make_transaction(event=event, amount=100000, status="completed", platform_fee=5000, organizer_revenue=95000,
                     created_at=datetime(2026, 1, 15))
    make_transaction(event=event, amount=50000, status="completed", platform_fee=2500, organizer_revenue=47500,
                     created_at=datetime(2026, 2, 1))
    make_transaction(event=event, amount=40000, status="refunded", refund_amount=40000)
    make_subscription(make_user(), make_plan(price=150000), status="active")

    body = client.get("/admin/financials", headers=auth_headers(admin)).json()

    summary = body["summary"]
    assert summary["total_platform_revenue"] == 7500
    assert summary["total_organizer_revenue"] == 142500
    assert summary["total_transaction_amount"] == 150000
    assert summary["total_refunded"] == 40000
    assert summary["subscription_revenue"] == 150000
    assert summary["total_revenue"] == 157500
    assert summary["net_revenue"] == 117500
    assert summary["transaction_count"] == 2
    assert [m["month"] for m in body["monthly_breakdown"]] == ["2026-01", "2026-02"]
    assert body["top_events"][0] == {"event_id": event.id, "event_title": "PyCon", "revenue": 142500, "transactions": 2}


@pytest.fixture
def two_months(make_event, make_transaction):
    event = make_event(title="PyCon")
    make_transaction(event=event, amount=100000, status="completed", platform_fee=5000, organizer_revenue=95000,
                     created_at=datetime(2026, 1, 15))
    make_transaction(event=event, amount=50000, status="completed", platform_fee=2500, organizer_revenue=47500,
                     created_at=datetime(2026, 2, 1))
    return event


def test_financials_start_date_alone(client, admin, two_months):
    response = client.get("/admin/financials", params={"start_date": "2026-01-20T00:00:00"},
                          headers=auth_headers(admin))

    summary = response.json()["summary"]
    assert summary["transaction_count"] == 1
    assert summary["total_platform_revenue"] == 2500


def test_financials_end_date_alone(client, admin, two_months):
    response = client.get("/admin/financials", params={"end_date": "2026-01-20T00:00:00"},
                          headers=auth_headers(admin))

    summary = response.json()["summary"]
    assert summary["transaction_count"] == 1
    assert summary["total_platform_revenue"] == 5000


def test_financials_start_date_overrides_preset(client, admin, two_months):
    response = client.get("/admin/financials", params={"time_range": "week", "start_date": "2026-01-01T00:00:00"},
                          headers=auth_headers(admin))

    assert response.json()["summary"]["transaction_count"] == 2


def test_financials_export_csv(client, admin, make_user, make_event, make_transaction):
    event = make_event(title="PyCon")
    customer = make_user(role=UserRole.USER.value, name="Ada Lovelace")
    make_transaction(user=customer, event=event, amount=100000, status="completed", platform_fee=5000,
                     organizer_revenue=95000)

    response = client.get("/admin/financials/export", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"].startswith('attachment; filename="financial-report-all-')
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Financial Report Summary"]
    assert ["Period", "All Time"] in rows
    assert ["Total Platform Revenue", "50.00"] in rows
    detail = rows[rows.index(["Transaction Details"]) + 2]
    assert detail[1:7] == ["PyCon", "Ada Lovelace", "1000.00", "50.00", "950.00", "completed"]
    assert detail[7] == "PHP"


def test_financials_export_requires_admin(client, make_user):
    organizer = make_user()
    assert client.get("/admin/financials/export", headers=auth_headers(organizer)).status_code == 403
