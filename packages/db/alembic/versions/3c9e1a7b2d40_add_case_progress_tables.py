# This project was developed with assistance from AI tools.
"""add case progress tables

Append-only step submission log plus the per-case current-state projection.

Revision ID: 3c9e1a7b2d40
Revises:
Create Date: 2026-03-02 09:12:44.518203

"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "3c9e1a7b2d40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "case_progress_events",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("submission_id", sa.String(255), nullable=False),
        sa.Column("case_id", sa.String(255), nullable=False),
        sa.Column("step_key", sa.Text(), nullable=False),
        sa.Column("step_version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("payload", postgresql.JSONB(), nullable=False),
        sa.Column(
            "received_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("source", sa.Text(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("ip", postgresql.INET(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("submission_id", name="uq_case_progress_events_submission_id"),
    )
    op.create_index(
        "ix_case_progress_events_case_id_received_at",
        "case_progress_events",
        ["case_id", sa.text("received_at DESC")],
    )
    op.create_index(
        "ix_case_progress_events_step_key_received_at",
        "case_progress_events",
        ["step_key", sa.text("received_at DESC")],
    )
    op.create_index(
        "ix_case_progress_events_payload",
        "case_progress_events",
        ["payload"],
        postgresql_using="gin",
    )

    op.create_table(
        "cases",
        sa.Column("case_id", sa.String(255), nullable=False),
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
        sa.Column("current_step", sa.Text(), nullable=True),
        sa.Column(
            "progress",
            postgresql.JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("contact_email", sa.Text(), nullable=True),
        sa.Column("contact_phone", sa.Text(), nullable=True),
        sa.Column("hospital_name", sa.Text(), nullable=True),
        sa.Column("balance_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("in_collections", sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint("case_id"),
    )
    op.create_index("ix_cases_updated_at", "cases", [sa.text("updated_at DESC")])
    op.create_index("ix_cases_contact_email", "cases", ["contact_email"])
    op.create_index("ix_cases_progress", "cases", ["progress"], postgresql_using="gin")


def downgrade() -> None:
    op.drop_index("ix_cases_progress", table_name="cases")
    op.drop_index("ix_cases_contact_email", table_name="cases")
    op.drop_index("ix_cases_updated_at", table_name="cases")
    op.drop_table("cases")
    op.drop_index("ix_case_progress_events_payload", table_name="case_progress_events")
    op.drop_index(
        "ix_case_progress_events_step_key_received_at", table_name="case_progress_events"
    )
    op.drop_index(
        "ix_case_progress_events_case_id_received_at", table_name="case_progress_events"
    )
    op.drop_table("case_progress_events")
