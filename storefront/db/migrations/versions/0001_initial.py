"""Gateway configuration and webhook audit tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-09-28
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "gateway_configs",
        sa.Column("config_name", sa.String(length=64), nullable=False),
        sa.Column("client_id", sa.String(length=128), server_default=""),
        sa.Column("client_secret", sa.String(length=256), server_default=""),
        sa.Column("environment", sa.String(length=16), server_default="sandbox"),
        sa.Column("enabled", sa.Boolean(), server_default=sa.false()),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("config_name"),
    )

    event_state = postgresql.ENUM(
        "received", "rejected", "reconciled", "failed", name="webhookeventstate"
    )
    event_state.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("digest", sa.String(length=64), nullable=False, unique=True, index=True),
        sa.Column("order_id", sa.String(length=64), index=True),
        sa.Column("event_type", sa.String(length=64)),
        sa.Column("reported_status", sa.String(length=32)),
        sa.Column("gateway_status", sa.String(length=32)),
        sa.Column("signature_valid", sa.Boolean(), server_default=sa.false()),
        sa.Column("state", event_state, server_default="received"),
        sa.Column("error", sa.String(length=255)),
        sa.Column("payload", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("webhook_events")
    op.drop_table("gateway_configs")
    postgresql.ENUM(name="webhookeventstate").drop(op.get_bind(), checkfirst=True)
