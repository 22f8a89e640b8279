"""create affiliate ledger tables

Revision ID: 8d3f5b6c7e21
Revises: 4c1e7a9b2d10
Create Date: 2026-09-28 10:40:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "8d3f5b6c7e21"
down_revision: Union[str, None] = "4c1e7a9b2d10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = postgresql.JSONB().with_variant(sa.JSON(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default="0")


def upgrade() -> None:
    op.create_table(
        "referral_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("code", name="uq_referral_codes_code"),
        sa.UniqueConstraint("user_id", name="uq_referral_codes_user"),
    )
    op.create_index(op.f("ix_referral_codes_id"), "referral_codes", ["id"], unique=False)

    op.create_table(
        "affiliates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("requested_at", sa.DateTime(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("reviewed_by_name", sa.String(), nullable=True),
        sa.Column("reviewed_by_email", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_affiliates_user"),
    )
    op.create_index(op.f("ix_affiliates_id"), "affiliates", ["id"], unique=False)
    op.create_index("ix_affiliates_status", "affiliates", ["status"], unique=False)

    op.create_table(
        "affiliate_links",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("clicks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("orders", sa.Integer(), nullable=False, server_default="0"),
        _money("commission"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "product_id", name="uq_affiliate_links_user_product"),
        sa.UniqueConstraint("slug", name="uq_affiliate_links_slug"),
    )
    op.create_index(op.f("ix_affiliate_links_id"), "affiliate_links", ["id"], unique=False)
    op.create_index(op.f("ix_affiliate_links_user_id"), "affiliate_links", ["user_id"], unique=False)

    op.create_table(
        "commission_referrals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        _money("total_purchase_amount"),
        sa.Column("commission_percentage", sa.String(), nullable=False),
        _money("amount"),
        sa.Column("status", sa.String(), nullable=False, server_default="awaiting_approval"),
        *_timestamps(),
        sa.UniqueConstraint("order_id", name="uq_commission_referrals_order"),
    )
    op.create_index(op.f("ix_commission_referrals_id"), "commission_referrals", ["id"], unique=False)
    op.create_index("ix_commission_referrals_user", "commission_referrals", ["user_id"], unique=False)
    op.create_index("ix_commission_referrals_status", "commission_referrals", ["status"], unique=False)

    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        _money("total_earned"),
        _money("awaiting_approval"),
        _money("available_for_withdrawal"),
        _money("total_withdrawn"),
        _money("balance_before"),
        _money("balance_after"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_wallets_user"),
    )
    op.create_index(op.f("ix_wallets_id"), "wallets", ["id"], unique=False)

    op.create_table(
        "banks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("bank_name", sa.String(), nullable=False),
        sa.Column("bank_code", sa.String(), nullable=False),
        sa.Column("account_number", sa.String(), nullable=False),
        sa.Column("account_name", sa.String(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "bank_code", name="uq_banks_user_code"),
    )
    op.create_index(op.f("ix_banks_id"), "banks", ["id"], unique=False)
    op.create_index(op.f("ix_banks_user_id"), "banks", ["user_id"], unique=False)

    op.create_table(
        "withdrawal_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("payout_id", sa.String(), nullable=False),
        sa.Column("reference", sa.String(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "commission_id",
            sa.Integer(),
            sa.ForeignKey("commission_referrals.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("bank_id", sa.Integer(), sa.ForeignKey("banks.id", ondelete="SET NULL"), nullable=True),
        sa.Column("buyer_name", sa.String(), nullable=True),
        sa.Column("buyer_email", sa.String(), nullable=True),
        _money("total_purchase_amount"),
        _money("commission_amount"),
        sa.Column("commission_percentage", sa.String(), nullable=True),
        sa.Column("payout_method", sa.String(), nullable=False, server_default="bank_transfer"),
        sa.Column("payout_status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("requested_at", sa.DateTime(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("processed_by", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("payout_id", name="uq_withdrawal_requests_payout_id"),
        sa.UniqueConstraint("reference", name="uq_withdrawal_requests_reference"),
    )
    op.create_index(op.f("ix_withdrawal_requests_id"), "withdrawal_requests", ["id"], unique=False)
    op.create_index(
        "ix_withdrawal_requests_user_order",
        "withdrawal_requests",
        ["user_id", "order_id"],
        unique=False,
    )
    op.create_index("ix_withdrawal_requests_status", "withdrawal_requests", ["payout_status"], unique=False)

    op.create_table(
        "email_queue",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("to_email", sa.String(), nullable=False),
        sa.Column("template_key", sa.String(), nullable=False),
        sa.Column("dedupe_key", sa.String(), nullable=False),
        sa.Column("subject", sa.String(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="queued"),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_attempt_at", sa.DateTime(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("metadata_json", JSON_TYPE, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("to_email", "dedupe_key", name="uq_email_queue_dedupe"),
        sa.CheckConstraint("status IN ('queued', 'sent', 'failed')", name="ck_email_queue_status"),
    )
    op.create_index(op.f("ix_email_queue_id"), "email_queue", ["id"], unique=False)
    op.create_index("ix_email_queue_status_created", "email_queue", ["status", "created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_email_queue_status_created", table_name="email_queue")
    op.drop_index(op.f("ix_email_queue_id"), table_name="email_queue")
    op.drop_table("email_queue")
    op.drop_index("ix_withdrawal_requests_status", table_name="withdrawal_requests")
    op.drop_index("ix_withdrawal_requests_user_order", table_name="withdrawal_requests")
    op.drop_index(op.f("ix_withdrawal_requests_id"), table_name="withdrawal_requests")
    op.drop_table("withdrawal_requests")
    op.drop_index(op.f("ix_banks_user_id"), table_name="banks")
    op.drop_index(op.f("ix_banks_id"), table_name="banks")
    op.drop_table("banks")
    op.drop_index(op.f("ix_wallets_id"), table_name="wallets")
    op.drop_table("wallets")
    op.drop_index("ix_commission_referrals_status", table_name="commission_referrals")
    op.drop_index("ix_commission_referrals_user", table_name="commission_referrals")
    op.drop_index(op.f("ix_commission_referrals_id"), table_name="commission_referrals")
    op.drop_table("commission_referrals")
    op.drop_index(op.f("ix_affiliate_links_user_id"), table_name="affiliate_links")
    op.drop_index(op.f("ix_affiliate_links_id"), table_name="affiliate_links")
    op.drop_table("affiliate_links")
    op.drop_index("ix_affiliates_status", table_name="affiliates")
    op.drop_index(op.f("ix_affiliates_id"), table_name="affiliates")
    op.drop_table("affiliates")
    op.drop_index(op.f("ix_referral_codes_id"), table_name="referral_codes")
    op.drop_table("referral_codes")
