import os
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("SKIP_MIGRATIONS", "1")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import app.core.db as db_module
from app.core.commissions import change_commission_status, record_order_commission
from app.core.db import transaction
from app.core.errors import LedgerNotFound, LedgerPreconditionFailed, LedgerValidationError
from app.core.ledger import LedgerConfig, apply_commission_transition
from app.crud.commissions import get_commission
from app.crud.email_queue import list_emails_for_template
from app.crud.wallets import get_wallet_for_user
from app.models.wallets import Wallet
from app.notifications.emails import TEMPLATE_COMMISSION_APPROVED
from tests.factories import make_commission, make_order, make_referral_code, make_user


CONFIG = LedgerConfig(flat_commission_percent=Decimal("20"), maturity_days=30)


def _setup_db(db_url: str):
    engine = create_engine(db_url, connect_args={"check_same_thread": False}, future=True)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db_module.engine = engine
    db_module.SessionLocal = SessionLocal
    db_module.Base.metadata.create_all(bind=engine)
    return SessionLocal


@pytest.fixture
def session_factory(tmp_path):
    return _setup_db(f"sqlite:///{tmp_path / 'review.db'}")


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _paid_referral(db, total="10000"):
    referrer = make_user(db)
    buyer = make_user(db)
    code = make_referral_code(db, user=referrer)
    order = make_order(db, buyer=buyer, total_amount=total, referral_code=code.code)
    commission = record_order_commission(db, order, config=CONFIG)
    return referrer, commission


def test_approval_moves_amount_to_available(session_factory):
    with session_factory() as db:
        referrer, commission = _paid_referral(db)

        result = change_commission_status(db, commission.id, "approved", config=CONFIG)

        assert result.commission.status == "approved"
        assert result.wallet_before.awaiting_approval == _money("2000")
        assert result.wallet_after.awaiting_approval == _money("0")
        assert result.wallet_after.available_for_withdrawal == _money("2000")

        wallet = get_wallet_for_user(db, referrer.id)
        assert _money(wallet.total_earned) == _money("2000")
        assert _money(wallet.awaiting_approval) == _money("0")
        assert _money(wallet.available_for_withdrawal) == _money("2000")
        assert _money(wallet.balance_before) == _money("0")
        assert _money(wallet.balance_after) == _money("2000")

        emails = list_emails_for_template(db, TEMPLATE_COMMISSION_APPROVED)
        assert [email.to_email for email in emails] == [referrer.email]
        assert "NGN 2,000.00" in emails[0].body


def test_rejection_forfeits_pending_amount_only(session_factory):
    with session_factory() as db:
        referrer, commission = _paid_referral(db)

        result = change_commission_status(db, commission.id, "rejected", config=CONFIG)

        assert result.commission.status == "rejected"
        wallet = get_wallet_for_user(db, referrer.id)
        assert _money(wallet.total_earned) == _money("2000")
        assert _money(wallet.awaiting_approval) == _money("0")
        assert _money(wallet.available_for_withdrawal) == _money("0")
        assert list_emails_for_template(db, TEMPLATE_COMMISSION_APPROVED) == []


def test_mixed_reviews_keep_wallet_balanced(session_factory):
    with session_factory() as db:
        referrer = make_user(db)
        buyer = make_user(db)
        code = make_referral_code(db, user=referrer)
        commissions = []
        for total in ("10000", "5000", "2500.50"):
            order = make_order(db, buyer=buyer, total_amount=total, referral_code=code.code)
            commissions.append(record_order_commission(db, order, config=CONFIG))

        change_commission_status(db, commissions[0].id, "approved", config=CONFIG)
        change_commission_status(db, commissions[1].id, "rejected", config=CONFIG)

        wallet = get_wallet_for_user(db, referrer.id)
        rejected = _money(commissions[1].amount)
        assert _money(wallet.total_earned) == _money("3500.10")
        assert _money(wallet.awaiting_approval) == _money("500.10")
        assert _money(wallet.total_earned) == (
            _money(wallet.awaiting_approval) + _money(wallet.available_for_withdrawal) + rejected
        )


def test_invalid_status_is_rejected(session_factory):
    with session_factory() as db:
        _referrer, commission = _paid_referral(db)

        with pytest.raises(LedgerValidationError):
            change_commission_status(db, commission.id, "paid", config=CONFIG)
        with pytest.raises(LedgerValidationError):
            change_commission_status(db, commission.id, "awaiting_approval", config=CONFIG)

        assert get_commission(db, commission.id).status == "awaiting_approval"


def test_missing_commission_is_not_found(session_factory):
    with session_factory() as db:
        with pytest.raises(LedgerNotFound):
            change_commission_status(db, 9999, "approved", config=CONFIG)


def test_second_review_is_refused_without_touching_wallet(session_factory):
    with session_factory() as db:
        referrer, commission = _paid_referral(db)
        change_commission_status(db, commission.id, "approved", config=CONFIG)

        with pytest.raises(LedgerPreconditionFailed) as excinfo:
            change_commission_status(db, commission.id, "rejected", config=CONFIG)

        assert "current status: approved" in excinfo.value.message
        wallet = get_wallet_for_user(db, referrer.id)
        assert _money(wallet.available_for_withdrawal) == _money("2000")
        assert _money(wallet.awaiting_approval) == _money("0")
        assert get_commission(db, commission.id).status == "approved"


def test_missing_wallet_is_a_precondition_failure(session_factory):
    with session_factory() as db:
        owner = make_user(db)
        order = make_order(db, buyer=make_user(db))
        commission = make_commission(db, owner=owner, order=order, with_wallet=False)

        with pytest.raises(LedgerPreconditionFailed):
            change_commission_status(db, commission.id, "approved", config=CONFIG)

        assert get_commission(db, commission.id).status == "awaiting_approval"


def test_failed_wallet_write_rolls_back_status(session_factory, monkeypatch):
    with session_factory() as db:
        referrer, commission = _paid_referral(db)
        commission_id, referrer_id = commission.id, referrer.id

        def _boom(*_args, **_kwargs):
            raise RuntimeError("wallet update failed")

        monkeypatch.setattr("app.core.ledger.release_awaiting_approval", _boom)

        with pytest.raises(RuntimeError):
            change_commission_status(db, commission_id, "approved", config=CONFIG)

    with session_factory() as db:
        assert get_commission(db, commission_id).status == "awaiting_approval"
        wallet = db.query(Wallet).filter(Wallet.user_id == referrer_id).one()
        assert _money(wallet.awaiting_approval) == _money("2000")
        assert _money(wallet.available_for_withdrawal) == _money("0")


def test_stale_reviewer_loses_the_race_without_touching_wallet(session_factory):
    with session_factory() as db:
        referrer, commission = _paid_referral(db)
        commission_id, referrer_id = commission.id, referrer.id

    with session_factory() as first, session_factory() as second:
        # Both reviewers read the row while it is still awaiting approval.
        assert get_commission(first, commission_id).status == "awaiting_approval"
        stale = get_commission(second, commission_id)
        assert stale.status == "awaiting_approval"

        change_commission_status(first, commission_id, "approved", config=CONFIG)

        with pytest.raises(LedgerPreconditionFailed) as excinfo:
            with transaction(second):
                apply_commission_transition(second, stale, "rejected", source="admin")

        assert "current status: approved" in excinfo.value.message

    with session_factory() as db:
        assert get_commission(db, commission_id).status == "approved"
        wallet = db.query(Wallet).filter(Wallet.user_id == referrer_id).one()
        assert _money(wallet.awaiting_approval) == _money("0")
        assert _money(wallet.available_for_withdrawal) == _money("2000")
        assert _money(wallet.total_earned) == _money("2000")
