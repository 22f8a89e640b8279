import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("SKIP_MIGRATIONS", "1")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import app.core.db as db_module
from app.core.security import create_access_token
from app.main import app
from tests.factories import (
    auth_headers,
    make_affiliate,
    make_bank,
    make_commission,
    make_link,
    make_order,
    make_product,
    make_user,
)


client = TestClient(app)


def _setup_db(db_url: str):
    engine = create_engine(db_url, connect_args={"check_same_thread": False}, future=True)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db_module.engine = engine
    db_module.SessionLocal = SessionLocal
    db_module.Base.metadata.create_all(bind=engine)
    return SessionLocal


@pytest.fixture
def session_factory(tmp_path):
    return _setup_db(f"sqlite:///{tmp_path / 'api.db'}")


@pytest.fixture
def ledger(session_factory):
    """An affiliate with one pending commission, a bank and an admin."""
    with session_factory() as db:
        admin = make_user(db, role="admin")
        affiliate = make_user(db)
        make_affiliate(db, user=affiliate)
        order = make_order(db, buyer=make_user(db), shipment_status="delivered", age_days=40)
        commission = make_commission(db, owner=affiliate, order=order, amount="2000")
        make_bank(db, user=affiliate, bank_code="058")
        return {
            "admin_headers": auth_headers(admin),
            "affiliate_headers": auth_headers(affiliate),
            "affiliate_id": affiliate.id,
            "order_id": order.id,
            "commission_id": commission.id,
        }


def test_health_and_metrics():
    assert client.get("/health").json() == {"status": "ok"}
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "commission_transitions_total" in resp.text


def test_auth_is_required(ledger):
    assert client.get("/withdrawals").status_code == 401
    bad = client.get("/withdrawals", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401
    ghost = create_access_token({"sub": 9999})
    assert client.get("/withdrawals", headers={"Authorization": f"Bearer {ghost}"}).status_code == 401


def test_admin_routes_reject_regular_users(ledger):
    resp = client.get("/admin/commissions", headers=ledger["affiliate_headers"])
    assert resp.status_code == 403
    resp = client.post(
        f"/admin/commissions/{ledger['commission_id']}/status",
        json={"status": "approved"},
        headers=ledger["affiliate_headers"],
    )
    assert resp.status_code == 403


def test_admin_approves_commission(ledger):
    resp = client.post(
        f"/admin/commissions/{ledger['commission_id']}/status",
        json={"status": "approved"},
        headers=ledger["admin_headers"],
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["commission"]["status"] == "approved"
    assert body["wallet_before"]["awaiting_approval"] == 2000.0
    assert body["wallet_after"]["available_for_withdrawal"] == 2000.0

    listed = client.get("/admin/commissions?status=approved", headers=ledger["admin_headers"]).json()
    assert [row["id"] for row in listed] == [ledger["commission_id"]]

    wallet = client.get("/affiliates/me/wallet", headers=ledger["affiliate_headers"]).json()
    assert wallet["available_for_withdrawal"] == 2000.0


def test_ledger_errors_carry_code_header(ledger):
    url = f"/admin/commissions/{ledger['commission_id']}/status"

    invalid = client.post(url, json={"status": "paid"}, headers=ledger["admin_headers"])
    assert invalid.status_code == 422
    assert invalid.headers["X-Error-Code"] == "validation_error"
    assert invalid.json()["code"] == "validation_error"

    missing = client.post("/admin/commissions/9999/status", json={"status": "approved"}, headers=ledger["admin_headers"])
    assert missing.status_code == 404
    assert missing.headers["X-Error-Code"] == "not_found"

    client.post(url, json={"status": "rejected"}, headers=ledger["admin_headers"])
    conflict = client.post(url, json={"status": "approved"}, headers=ledger["admin_headers"])
    assert conflict.status_code == 409
    assert conflict.headers["X-Error-Code"] == "precondition_failed"

    bad_filter = client.get("/admin/commissions?status=nope", headers=ledger["admin_headers"])
    assert bad_filter.status_code == 422


def test_withdrawal_flow(ledger):
    payload = {"order_id": ledger["order_id"], "bank_code": "058"}

    too_early = client.post("/withdrawals", json=payload, headers=ledger["affiliate_headers"])
    assert too_early.status_code == 409
    assert too_early.headers["X-Error-Code"] == "precondition_failed"
    assert "awaiting_approval" in too_early.json()["message"]

    approved = client.post(
        f"/admin/commissions/{ledger['commission_id']}/status",
        json={"status": "approved"},
        headers=ledger["admin_headers"],
    )
    assert approved.status_code == 200

    created = client.post("/withdrawals", json=payload, headers=ledger["affiliate_headers"])
    assert created.status_code == 201
    withdrawal = created.json()
    assert withdrawal["payout_status"] == "pending"
    assert withdrawal["commission_amount"] == 2000.0

    duplicate = client.post("/withdrawals", json=payload, headers=ledger["affiliate_headers"])
    assert duplicate.status_code == 409
    assert duplicate.headers["X-Error-Code"] == "duplicate_request"

    wrong_bank = client.post(
        "/withdrawals",
        json={"order_id": ledger["order_id"], "bank_code": "999"},
        headers=ledger["affiliate_headers"],
    )
    assert wrong_bank.status_code == 404

    mine = client.get("/withdrawals", headers=ledger["affiliate_headers"]).json()
    assert [row["id"] for row in mine] == [withdrawal["id"]]

    updated = client.patch(
        f"/admin/withdrawals/{withdrawal['id']}",
        json={"status": "cancelled", "notes": "Wrong account"},
        headers=ledger["admin_headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["payout_status"] == "cancelled"
    assert updated.json()["rejection_reason"] == "Wrong account"

    pending = client.get("/admin/withdrawals?status=pending", headers=ledger["admin_headers"]).json()
    assert pending == []


def test_approval_run_endpoint(ledger):
    dry = client.post("/admin/commissions/approval-runs", json={"dry_run": True}, headers=ledger["admin_headers"])
    assert dry.status_code == 200
    assert dry.json()["dry_run"] is True
    assert dry.json()["approved"] == 1

    real = client.post("/admin/commissions/approval-runs", headers=ledger["admin_headers"])
    assert real.json()["approved"] == 1

    rerun = client.post("/admin/commissions/approval-runs", headers=ledger["admin_headers"])
    assert rerun.json()["processed"] == 0


def test_bank_management(ledger):
    headers = ledger["affiliate_headers"]
    created = client.post(
        "/banks",
        json={"bank_name": "Access", "bank_code": "044", "account_number": "0011223344", "account_name": "Ada Obi"},
        headers=headers,
    )
    assert created.status_code == 201

    duplicate = client.post(
        "/banks",
        json={"bank_name": "Access", "bank_code": "044", "account_number": "0011223344", "account_name": "Ada Obi"},
        headers=headers,
    )
    assert duplicate.status_code == 409

    codes = sorted(bank["bank_code"] for bank in client.get("/banks", headers=headers).json())
    assert codes == ["044", "058"]

    assert client.delete(f"/banks/{created.json()['id']}", headers=headers).status_code == 204
    assert client.delete(f"/banks/{created.json()['id']}", headers=headers).status_code == 404


def test_affiliate_links_and_clicks(session_factory, ledger):
    with session_factory() as db:
        product_id = make_product(db).id

    first = client.post("/affiliates/links", json={"product_id": product_id}, headers=ledger["affiliate_headers"])
    again = client.post("/affiliates/links", json={"product_id": product_id}, headers=ledger["affiliate_headers"])
    assert first.status_code == 201
    assert again.status_code == 200
    slug = first.json()["slug"]
    assert first.json()["shareable_link"].endswith(f"/products/{product_id}?ref={slug}")

    click = client.post(f"/links/{slug}/click")
    assert click.status_code == 200
    assert click.json() == {"slug": slug, "product_id": product_id, "clicks": 1}
    assert client.post("/links/unknown/click").status_code == 404

    links = client.get("/affiliates/links", headers=ledger["affiliate_headers"]).json()
    assert links[0]["clicks"] == 1


def test_affiliate_request_and_admin_review(session_factory, ledger):
    with session_factory() as db:
        applicant = make_user(db)
        headers = auth_headers(applicant)

    created = client.post("/affiliates/requests", json={"category": "books", "reason": "Reading club"}, headers=headers)
    assert created.status_code == 201
    affiliate_id = created.json()["id"]

    again = client.post("/affiliates/requests", json={}, headers=headers)
    assert again.status_code == 409

    pending = client.get("/admin/affiliates?status=pending", headers=ledger["admin_headers"]).json()
    assert [row["id"] for row in pending] == [affiliate_id]

    reviewed = client.patch(
        f"/admin/affiliates/{affiliate_id}",
        json={"status": "approved"},
        headers=ledger["admin_headers"],
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["status"] == "approved"

    overview = client.get("/admin/affiliates/overview", headers=ledger["admin_headers"]).json()
    assert overview["affiliates_by_status"]["approved"] == 2
    assert overview["commission_totals"]["awaiting_approval"] == 2000.0


def test_referral_code_endpoint(ledger):
    first = client.get("/affiliates/referral-code", headers=ledger["affiliate_headers"]).json()
    second = client.get("/affiliates/referral-code", headers=ledger["affiliate_headers"]).json()
    assert first == second
    assert first["code"].startswith("ref_")
    assert first["user_id"] == ledger["affiliate_id"]


def test_link_created_by_factory_is_clickable(session_factory):
    with session_factory() as db:
        owner = make_user(db)
        link = make_link(db, user=owner, product=make_product(db), slug="tola-book-abcde")

    assert client.post(f"/links/{link.slug}/click").json()["clicks"] == 1
