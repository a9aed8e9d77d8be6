"""Baseline schema: history, alerts, agents, tickets, ideas.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── history_entries ──────────────────────────────────────────────────────
    op.create_table(
        "history_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("service_id", sa.String(100), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("response_ms", sa.Integer(), nullable=True),
    )
    op.create_index("ix_history_entries_service_id", "history_entries", ["service_id"])
    op.create_index("ix_history_entries_timestamp", "history_entries", ["timestamp"])

    # ── alerts ───────────────────────────────────────────────────────────────
    op.create_table(
        "alerts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("service_id", sa.String(100), nullable=False),
        sa.Column("service_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_alerts_service_id", "alerts", ["service_id"])
    op.create_index("ix_alerts_created_at", "alerts", ["created_at"])

    # ── agents ───────────────────────────────────────────────────────────────
    op.create_table(
        "agents",
        sa.Column("name", sa.String(100), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="offline"),
        sa.Column("current_task", sa.Text(), nullable=True),
        sa.Column("last_update", sa.DateTime(), server_default=sa.func.now()),
    )

    # ── tickets ──────────────────────────────────────────────────────────────
    op.create_table(
        "tickets",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("lane", sa.String(20), nullable=False, server_default="backlog"),
        sa.Column("assignee", sa.String(100), nullable=True),
        sa.Column("branch", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )

    # ── ideas ────────────────────────────────────────────────────────────────
    op.create_table(
        "ideas",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="proposed"),
        sa.Column("tags", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("submitted_by", sa.String(100), nullable=False, server_default="anonymous"),
        sa.Column("converted_ticket_id", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("ideas")
    op.drop_table("tickets")
    op.drop_table("agents")
    op.drop_index("ix_alerts_created_at", table_name="alerts")
    op.drop_index("ix_alerts_service_id", table_name="alerts")
    op.drop_table("alerts")
    op.drop_index("ix_history_entries_timestamp", table_name="history_entries")
    op.drop_index("ix_history_entries_service_id", table_name="history_entries")
    op.drop_table("history_entries")
