"""fanout completion marker, app settings

Revision ID: 0002_fanout_and_app_settings
Revises: 0001_initial
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_fanout_and_app_settings"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("transactions") as batch:
        batch.add_column(sa.Column("fanout_completed_at", sa.DateTime(timezone=True), nullable=True))

    # confirmed before this revision: treat their fan-out as done
    op.execute(
        "UPDATE transactions SET fanout_completed_at = processed_at "
        "WHERE type = 'recharge' AND status = 'completed'"
    )

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(length=128), primary_key=True),
        sa.Column("int_value", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    with op.batch_alter_table("transactions") as batch:
        batch.drop_column("fanout_completed_at")
