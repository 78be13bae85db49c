"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tg_id", sa.BigInteger(), nullable=True),
        sa.Column("username", sa.String(length=64), nullable=True),
        sa.Column("is_admin", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("balance_cents", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("referral_code", sa.String(length=16), nullable=False),
        sa.Column("referred_by_code", sa.String(length=16), nullable=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=True),
        sa.Column("total_referral_earnings_cents", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("total_team_earnings_cents", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("last_salary_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_daily_reward_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_spin_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("extra_spins_available", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("balance_cents >= 0", name="ck_accounts_balance_non_negative"),
        sa.CheckConstraint("extra_spins_available >= 0", name="ck_accounts_extra_spins_non_negative"),
    )
    op.create_index("ix_accounts_tg_id", "accounts", ["tg_id"], unique=True)
    op.create_index("ix_accounts_referral_code", "accounts", ["referral_code"], unique=True)
    op.create_index("ix_accounts_parent_id", "accounts", ["parent_id"], unique=False)

    op.create_table(
        "resource_bundles",
        sa.Column("account_id", sa.Integer(), primary_key=True),
        sa.Column("water_buckets", sa.Integer(), server_default="0", nullable=False),
        sa.Column("wheat_bags", sa.Integer(), server_default="0", nullable=False),
        sa.Column("eggs", sa.Integer(), server_default="0", nullable=False),
        sa.Column("mystery_boxes", sa.Integer(), server_default="0", nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "water_buckets >= 0 AND wheat_bags >= 0 AND eggs >= 0 AND mystery_boxes >= 0",
            name="ck_resource_bundles_non_negative",
        ),
    )

    op.create_table(
        "chickens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("last_hatch_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_chickens_account_id", "chickens", ["account_id"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("transaction_id", sa.String(length=128), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_transactions_account_id", "transactions", ["account_id"], unique=False)
    op.create_index("ix_transactions_type", "transactions", ["type"], unique=False)
    op.create_index("ix_transactions_transaction_id", "transactions", ["transaction_id"], unique=True)

    op.create_table(
        "referral_earnings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("beneficiary_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False, index=True),
        sa.Column("source_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False, index=True),
        sa.Column("deposit_transaction_id", sa.String(length=128), nullable=False, index=True),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("claimed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint(
            "deposit_transaction_id", "beneficiary_id", name="uq_referral_earnings_deposit_beneficiary"
        ),
    )

    op.create_table(
        "milestone_rewards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False, index=True),
        sa.Column("milestone_cents", sa.BigInteger(), nullable=False),
        sa.Column("reward_cents", sa.BigInteger(), nullable=False),
        sa.Column("claimed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("account_id", "milestone_cents", name="uq_milestone_rewards_account_milestone"),
    )

    op.create_table(
        "salary_payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False, index=True),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("active_referrals", sa.Integer(), nullable=False),
        sa.Column("period", sa.String(length=7), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("account_id", "period", name="uq_salary_payments_account_period"),
    )

    op.create_table(
        "mystery_box_rewards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False, index=True),
        sa.Column("box_type", sa.String(length=16), nullable=False),
        sa.Column("reward_type", sa.String(length=16), nullable=True),
        sa.Column("reward_details", sa.JSON(), nullable=True),
        sa.Column("rarity", sa.String(length=16), nullable=True),
        sa.Column("opened", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("drawn_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "daily_rewards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False, index=True),
        sa.Column("reward_date", sa.Date(), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("reward_type", sa.String(length=16), nullable=False),
        sa.Column("reward_details", sa.JSON(), nullable=False),
        sa.Column("claimed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("account_id", "reward_date", name="uq_daily_rewards_account_date"),
    )

    op.create_table(
        "spin_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False, index=True),
        sa.Column("spin_type", sa.String(length=8), nullable=False),
        sa.Column("reward_type", sa.String(length=16), nullable=False),
        sa.Column("reward_details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "prices",
        sa.Column("item_type", sa.String(length=32), primary_key=True),
        sa.Column("price_cents", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("prices")
    op.drop_table("spin_history")
    op.drop_table("daily_rewards")
    op.drop_table("mystery_box_rewards")
    op.drop_table("salary_payments")
    op.drop_table("milestone_rewards")
    op.drop_table("referral_earnings")
    op.drop_index("ix_transactions_transaction_id", table_name="transactions")
    op.drop_index("ix_transactions_type", table_name="transactions")
    op.drop_index("ix_transactions_account_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_chickens_account_id", table_name="chickens")
    op.drop_table("chickens")
    op.drop_table("resource_bundles")
    op.drop_index("ix_accounts_parent_id", table_name="accounts")
    op.drop_index("ix_accounts_referral_code", table_name="accounts")
    op.drop_index("ix_accounts_tg_id", table_name="accounts")
    op.drop_table("accounts")
