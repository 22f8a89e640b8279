import os
import re
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("SKIP_MIGRATIONS", "1")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import app.core.db as db_module
from app.core.errors import (
    DuplicateWithdrawalRequest,
    LedgerNotFound,
    LedgerPreconditionFailed,
    LedgerValidationError,
)
from app.core.withdrawals import display_status, request_withdrawal, update_withdrawal_status
from app.crud.orders import get_order
from app.crud.wallets import get_wallet_for_user
from app.crud.withdrawals import list_withdrawals
from tests.factories import make_affiliate, make_bank, make_commission, make_order, make_user


def _setup_db(db_url: str):
    engine = create_engine(db_url, connect_args={"check_same_thread": False}, future=True)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db_module.engine = engine
    db_module.SessionLocal = SessionLocal
    db_module.Base.metadata.create_all(bind=engine)
    return SessionLocal


@pytest.fixture
def session_factory(tmp_path):
    return _setup_db(f"sqlite:///{tmp_path / 'withdrawals.db'}")


def _earning_affiliate(db, *, commission_status="approved", affiliate_status="approved"):
    affiliate = make_user(db)
    if affiliate_status is not None:
        make_affiliate(db, user=affiliate, status=affiliate_status)
    buyer = make_user(db, first_name="Chidi", last_name="Eze")
    order = make_order(db, buyer=buyer, total_amount="10000", shipment_status="delivered")
    commission = make_commission(db, owner=affiliate, order=order, amount="2000", status=commission_status)
    bank = make_bank(db, user=affiliate, bank_code="058")
    return affiliate, buyer, order, commission, bank


def test_request_snapshots_commission_and_marks_order(session_factory):
    with session_factory() as db:
        affiliate, buyer, order, commission, bank = _earning_affiliate(db)
        wallet_before = get_wallet_for_user(db, affiliate.id)
        awaiting_before = Decimal(str(wallet_before.awaiting_approval))

        withdrawal = request_withdrawal(db, user_id=affiliate.id, order_id=order.id, bank_code="058")

        assert re.fullmatch(r"po-[0-9a-f]{7}", withdrawal.payout_id)
        assert withdrawal.reference.startswith("acc-withdraw-")
        assert withdrawal.payout_status == "pending"
        assert withdrawal.payout_method == "bank_transfer"
        assert withdrawal.commission_id == commission.id
        assert withdrawal.bank_id == bank.id
        assert withdrawal.buyer_name == "Chidi Eze"
        assert withdrawal.buyer_email == buyer.email
        assert Decimal(str(withdrawal.commission_amount)) == Decimal("2000.00")
        assert Decimal(str(withdrawal.total_purchase_amount)) == Decimal("10000.00")
        assert get_order(db, order.id).withdrawal_status == "processing"

        wallet_after = get_wallet_for_user(db, affiliate.id)
        assert Decimal(str(wallet_after.awaiting_approval)) == awaiting_before
        assert Decimal(str(wallet_after.total_withdrawn)) == Decimal("0")


def test_duplicate_request_is_refused(session_factory):
    with session_factory() as db:
        affiliate, _buyer, order, _commission, _bank = _earning_affiliate(db)
        request_withdrawal(db, user_id=affiliate.id, order_id=order.id, bank_code="058")

        with pytest.raises(DuplicateWithdrawalRequest):
            request_withdrawal(db, user_id=affiliate.id, order_id=order.id, bank_code="058")

        assert len(list_withdrawals(db)) == 1


def test_validation_failures_have_no_side_effects(session_factory):
    with session_factory() as db:
        affiliate, _buyer, order, _commission, _bank = _earning_affiliate(db)
        stranger = make_user(db)
        make_bank(db, user=stranger, bank_code="044")
        other_order = make_order(db, buyer=stranger)

        with pytest.raises(LedgerNotFound, match="User not found"):
            request_withdrawal(db, user_id=9999, order_id=order.id, bank_code="058")
        with pytest.raises(LedgerNotFound, match="Order not found"):
            request_withdrawal(db, user_id=affiliate.id, order_id=9999, bank_code="058")
        with pytest.raises(LedgerNotFound, match="Commission not found"):
            request_withdrawal(db, user_id=affiliate.id, order_id=other_order.id, bank_code="058")
        with pytest.raises(LedgerNotFound, match="Bank not found"):
            request_withdrawal(db, user_id=affiliate.id, order_id=order.id, bank_code="044")

        assert list_withdrawals(db) == []
        assert get_order(db, order.id).withdrawal_status == "not_requested"


@pytest.mark.parametrize("commission_status", ["awaiting_approval", "rejected"])
def test_only_approved_commissions_can_be_withdrawn(session_factory, commission_status):
    with session_factory() as db:
        affiliate, _buyer, order, _commission, _bank = _earning_affiliate(db, commission_status=commission_status)

        with pytest.raises(LedgerPreconditionFailed, match=f"current status: {commission_status}"):
            request_withdrawal(db, user_id=affiliate.id, order_id=order.id, bank_code="058")

        assert list_withdrawals(db) == []
        assert get_order(db, order.id).withdrawal_status == "not_requested"


@pytest.mark.parametrize("affiliate_status", [None, "pending", "inactive"])
def test_inactive_affiliates_cannot_withdraw(session_factory, affiliate_status):
    with session_factory() as db:
        affiliate, _buyer, order, _commission, _bank = _earning_affiliate(db, affiliate_status=affiliate_status)

        with pytest.raises(LedgerPreconditionFailed, match="suspended or terminated"):
            request_withdrawal(db, user_id=affiliate.id, order_id=order.id, bank_code="058")

        assert list_withdrawals(db) == []
        assert get_order(db, order.id).withdrawal_status == "not_requested"


def test_status_update_without_notes_keeps_earlier_notes(session_factory):
    with session_factory() as db:
        affiliate, _buyer, order, _commission, _bank = _earning_affiliate(db)
        withdrawal = request_withdrawal(db, user_id=affiliate.id, order_id=order.id, bank_code="058")

        update_withdrawal_status(
            db,
            withdrawal_id=withdrawal.id,
            status="cancelled",
            processed_by="finance@example.com",
            notes="Account name mismatch",
        )
        reopened = update_withdrawal_status(
            db,
            withdrawal_id=withdrawal.id,
            status="pending",
            processed_by="finance@example.com",
        )

        assert reopened.payout_status == "pending"
        assert reopened.notes == "Account name mismatch"
        assert reopened.rejection_reason == "Account name mismatch"


def test_admin_status_updates(session_factory):
    with session_factory() as db:
        affiliate, _buyer, order, _commission, _bank = _earning_affiliate(db)
        withdrawal = request_withdrawal(db, user_id=affiliate.id, order_id=order.id, bank_code="058")

        paid = update_withdrawal_status(
            db,
            withdrawal_id=withdrawal.id,
            status="paid",
            processed_by="finance@example.com",
            notes="Transfer 8812",
        )
        assert paid.payout_status == "paid"
        assert paid.processed_by == "finance@example.com"
        assert paid.processed_at is not None
        assert paid.rejection_reason is None

        cancelled = update_withdrawal_status(
            db,
            withdrawal_id=withdrawal.id,
            status="cancelled",
            processed_by="finance@example.com",
            notes="Account name mismatch",
        )
        assert cancelled.rejection_reason == "Account name mismatch"

        with pytest.raises(LedgerValidationError):
            update_withdrawal_status(db, withdrawal_id=withdrawal.id, status="refunded", processed_by="x")
        with pytest.raises(LedgerNotFound):
            update_withdrawal_status(db, withdrawal_id=9999, status="paid", processed_by="x")


def test_display_status_mapping():
    assert display_status("paid") == "completed"
    assert display_status("cancelled") == "rejected"
    assert display_status("pending") == "pending"
