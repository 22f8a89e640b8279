import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("SKIP_MIGRATIONS", "1")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import app.core.db as db_module
from app.crud.email_queue import list_emails_for_template
from app.jobs.email_delivery import run_email_delivery
from app.notifications.emails import TEMPLATE_COMMISSION_APPROVED
from app.notifications.senders import EmailSender, SmtpTransport


CONTEXT = {
    "affiliate_name": "Ada Obi",
    "order_number": "ORD-1",
    "product_name": "Things Fall Apart",
    "commission_amount": "NGN 2,000.00",
}


def _setup_db(db_url: str):
    engine = create_engine(db_url, connect_args={"check_same_thread": False}, future=True)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db_module.engine = engine
    db_module.SessionLocal = SessionLocal
    db_module.Base.metadata.create_all(bind=engine)
    return SessionLocal


@pytest.fixture
def session_factory(tmp_path):
    return _setup_db(f"sqlite:///{tmp_path / 'emails.db'}")


class RecordingTransport:
    def __init__(self):
        self.sent = []

    def deliver(self, *, to_email, subject, body):
        self.sent.append((to_email, subject))


class BrokenTransport:
    def deliver(self, *, to_email, subject, body):
        raise ConnectionRefusedError("smtp unreachable")


def _queue(db, recipients, dedupe_key="commission_approved:1"):
    return EmailSender().send(
        db,
        to_emails=recipients,
        template_key=TEMPLATE_COMMISSION_APPROVED,
        context=CONTEXT,
        dedupe_key=dedupe_key,
    )


def test_sender_dedupes_recipients_and_keys(session_factory):
    with session_factory() as db:
        assert _queue(db, ["Ada@Example.com", "ada@example.com ", "", "ops@example.com"]) == 2
        assert _queue(db, ["ada@example.com"]) == 0

        emails = list_emails_for_template(db, TEMPLATE_COMMISSION_APPROVED)
        assert sorted(email.to_email for email in emails) == ["ada@example.com", "ops@example.com"]
        assert all(email.status == "queued" for email in emails)


def test_delivery_marks_emails_sent(session_factory):
    with session_factory() as db:
        _queue(db, ["ada@example.com", "ops@example.com"])
        transport = RecordingTransport()

        processed = run_email_delivery(db, transport=transport)

        assert processed == 2
        assert sorted(to for to, _subject in transport.sent) == ["ada@example.com", "ops@example.com"]
        emails = list_emails_for_template(db, TEMPLATE_COMMISSION_APPROVED)
        assert all(email.status == "sent" and email.sent_at is not None for email in emails)
        assert run_email_delivery(db, transport=transport) == 0


def test_failures_retry_until_max_attempts(session_factory):
    with session_factory() as db:
        _queue(db, ["ada@example.com"])

        run_email_delivery(db, transport=BrokenTransport(), max_attempts=2)
        record = list_emails_for_template(db, TEMPLATE_COMMISSION_APPROVED)[0]
        assert record.status == "queued"
        assert record.attempt_count == 1
        assert record.last_attempt_at is not None
        assert record.sent_at is None
        assert "smtp unreachable" in record.error_message

        run_email_delivery(db, transport=BrokenTransport(), max_attempts=2)
        record = list_emails_for_template(db, TEMPLATE_COMMISSION_APPROVED)[0]
        assert record.status == "failed"
        assert run_email_delivery(db, transport=RecordingTransport()) == 0


def test_single_attempt_mode_never_retries(session_factory):
    with session_factory() as db:
        _queue(db, ["ada@example.com"])

        assert run_email_delivery(db, transport=BrokenTransport(), max_attempts=1) == 1
        record = list_emails_for_template(db, TEMPLATE_COMMISSION_APPROVED)[0]
        assert record.status == "failed"
        assert record.attempt_count == 1

        transport = RecordingTransport()
        assert run_email_delivery(db, transport=transport) == 0
        assert transport.sent == []


def test_unconfigured_transport_is_a_stub(monkeypatch):
    def _no_smtp(*_args, **_kwargs):
        raise AssertionError("SMTP should not be contacted")

    monkeypatch.setattr("smtplib.SMTP", _no_smtp)
    transport = SmtpTransport(host="")

    assert transport.configured is False
    transport.deliver(to_email="ada@example.com", subject="Hi", body="Body")


def test_configured_transport_uses_starttls(monkeypatch):
    calls = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            calls.append(("connect", host, port))

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            calls.append(("starttls",))

        def login(self, user, password):
            calls.append(("login", user))

        def sendmail(self, from_email, to_emails, message):
            calls.append(("sendmail", from_email, tuple(to_emails)))

    monkeypatch.setattr("smtplib.SMTP", FakeSMTP)
    transport = SmtpTransport(
        host="smtp.example.com",
        port=587,
        user="mailer",
        password="secret",
        from_email="ledger@example.com",
        from_name="Ledger",
    )

    transport.deliver(to_email="ada@example.com", subject="Hi", body="Body")

    assert calls == [
        ("connect", "smtp.example.com", 587),
        ("starttls",),
        ("login", "mailer"),
        ("sendmail", "ledger@example.com", ("ada@example.com",)),
    ]
