# Prometheus counters for the commission ledger. Services call the small
# record_* helpers so metric names and labels stay in one place, and
# /metrics in app.main exposes the default registry.

from prometheus_client import Counter, Histogram


commissions_created_total = Counter(
    "commissions_created_total",
    "Commission referrals created from paid orders",
    ["type"],  # affiliate_link|referral_code
)

commission_transitions_total = Counter(
    "commission_transitions_total",
    "Commission referrals moved out of awaiting_approval",
    ["status", "source"],  # source: manual|batch
)

commission_batch_skipped_total = Counter(
    "commission_batch_skipped_total",
    "Commissions skipped by the nightly approval run",
    ["reason"],
)

commission_batch_duration_seconds = Histogram(
    "commission_batch_duration_seconds",
    "Wall time of one nightly approval run",
    buckets=[0.1, 0.5, 1, 5, 15, 60, 300],
)

withdrawal_requests_total = Counter(
    "withdrawal_requests_total",
    "Withdrawal request attempts grouped by outcome",
    ["outcome"],
)

emails_queued_total = Counter(
    "emails_queued_total",
    "Outbound emails queued by template",
    ["template"],
)


def record_commission_created(commission_type: str) -> None:
    commissions_created_total.labels(type=commission_type).inc()


def record_commission_transition(status: str, source: str) -> None:
    commission_transitions_total.labels(status=status, source=source).inc()


def record_batch_skip(reason: str) -> None:
    commission_batch_skipped_total.labels(reason=reason).inc()


def record_batch_duration(seconds: float) -> None:
    commission_batch_duration_seconds.observe(seconds)


def record_withdrawal_request(outcome: str) -> None:
    withdrawal_requests_total.labels(outcome=outcome).inc()


def record_email_queued(template_key: str) -> None:
    emails_queued_total.labels(template=template_key).inc()


emails_delivered_total = Counter(
    "emails_delivered_total",
    "Queued email delivery attempts",
    ["template", "success"],
)

job_runs_total = Counter(
    "job_runs_total",
    "Background job runs",
    ["job_name", "success"],
)


def record_email_delivery(template_key: str, success: bool) -> None:
    emails_delivered_total.labels(template=template_key, success=str(success).lower()).inc()


def record_job_run(job_name: str, success: bool) -> None:
    job_runs_total.labels(job_name=job_name, success=str(success).lower()).inc()
