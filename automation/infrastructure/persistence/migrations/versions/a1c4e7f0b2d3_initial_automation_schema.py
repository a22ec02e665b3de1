"""initial automation schema

Revision ID: a1c4e7f0b2d3
Revises:
Create Date: 2026-10-19

Workflow definitions, enrollments (with dedup key and processing lease),
step logs, and the customer-side tables the engine reads and mutates:
customer, customer_segment_member, email_unsubscribe, cart.
"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "a1c4e7f0b2d3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "customer",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("store_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column(
            "tags",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "attributes",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customer_store_id", "customer", ["store_id"], unique=False)
    op.create_index("ix_customer_email", "customer", ["email"], unique=False)

    op.create_table(
        "customer_segment_member",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("store_id", sa.String(), nullable=False),
        sa.Column("segment_id", sa.String(), nullable=False),
        sa.Column("customer_id", sa.String(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["customer_id"], ["customer.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "segment_id",
            "customer_id",
            name="uq_customer_segment_member_segment_customer",
        ),
    )
    op.create_index(
        "ix_customer_segment_member_store_id",
        "customer_segment_member",
        ["store_id"],
        unique=False,
    )
    op.create_index(
        "ix_customer_segment_member_segment_id",
        "customer_segment_member",
        ["segment_id"],
        unique=False,
    )
    op.create_index(
        "ix_customer_segment_member_customer_id",
        "customer_segment_member",
        ["customer_id"],
        unique=False,
    )

    op.create_table(
        "email_unsubscribe",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("store_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("store_id", "email", name="uq_email_unsubscribe_store_email"),
    )
    op.create_index(
        "ix_email_unsubscribe_store_id", "email_unsubscribe", ["store_id"], unique=False
    )

    op.create_table(
        "cart",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("store_id", sa.String(), nullable=False),
        sa.Column("customer_id", sa.String(), nullable=True),
        sa.Column("total", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column(
            "items",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "is_abandoned_email_sent",
            sa.Boolean(),
            server_default=sa.false(),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["customer_id"], ["customer.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_cart_store_id", "cart", ["store_id"], unique=False)
    op.create_index("ix_cart_customer_id", "cart", ["customer_id"], unique=False)

    op.create_table(
        "automation_workflow",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("store_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("trigger_type", sa.String(length=50), nullable=False),
        sa.Column(
            "trigger_config",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "steps",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=20), server_default="draft", nullable=False),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('draft', 'active', 'paused')",
            name="ck_automation_workflow_status",
        ),
    )
    op.create_index(
        "ix_automation_workflow_store_id", "automation_workflow", ["store_id"], unique=False
    )
    op.create_index(
        "ix_automation_workflow_deleted_at",
        "automation_workflow",
        ["deleted_at"],
        unique=False,
    )
    op.create_index(
        "ix_automation_workflow_store_status_trigger",
        "automation_workflow",
        ["store_id", "status", "trigger_type"],
        unique=False,
    )

    op.create_table(
        "automation_enrollment",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("store_id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("customer_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="active", nullable=False),
        sa.Column("current_step", sa.Integer(), server_default="0", nullable=False),
        sa.Column("next_step_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_step_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "trigger_data",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("exit_reason", sa.Text(), nullable=True),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("exited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processing_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dedup_key", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["workflow_id"], ["automation_workflow.id"], ondelete="CASCADE"
        ),
        sa.CheckConstraint(
            "status IN ('active', 'completed', 'exited')",
            name="ck_automation_enrollment_status",
        ),
        sa.CheckConstraint("current_step >= 0", name="ck_automation_enrollment_current_step"),
        sa.UniqueConstraint("dedup_key", name="uq_automation_enrollment_dedup_key"),
    )
    op.create_index(
        "ix_automation_enrollment_store_id",
        "automation_enrollment",
        ["store_id"],
        unique=False,
    )
    op.create_index(
        "ix_automation_enrollment_workflow_id",
        "automation_enrollment",
        ["workflow_id"],
        unique=False,
    )
    op.create_index(
        "ix_automation_enrollment_customer_id",
        "automation_enrollment",
        ["customer_id"],
        unique=False,
    )
    op.create_index(
        "ix_automation_enrollment_store_status_next_step",
        "automation_enrollment",
        ["store_id", "status", "next_step_at"],
        unique=False,
    )
    op.create_index(
        "ix_automation_enrollment_workflow_customer_status",
        "automation_enrollment",
        ["workflow_id", "customer_id", "status"],
        unique=False,
    )

    op.create_table(
        "automation_step_log",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("store_id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("enrollment_id", sa.String(), nullable=False),
        sa.Column("customer_id", sa.String(), nullable=False),
        sa.Column("step_index", sa.Integer(), nullable=False),
        sa.Column("step_type", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["workflow_id"], ["automation_workflow.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["enrollment_id"], ["automation_enrollment.id"], ondelete="CASCADE"
        ),
        sa.CheckConstraint(
            "status IN ('success', 'failed')", name="ck_automation_step_log_status"
        ),
    )
    op.create_index(
        "ix_automation_step_log_store_id",
        "automation_step_log",
        ["store_id"],
        unique=False,
    )
    op.create_index(
        "ix_automation_step_log_enrollment_id",
        "automation_step_log",
        ["enrollment_id"],
        unique=False,
    )
    op.create_index(
        "ix_automation_step_log_workflow_created",
        "automation_step_log",
        ["workflow_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("automation_step_log")
    op.drop_table("automation_enrollment")
    op.drop_table("automation_workflow")
    op.drop_table("cart")
    op.drop_table("email_unsubscribe")
    op.drop_table("customer_segment_member")
    op.drop_table("customer")
