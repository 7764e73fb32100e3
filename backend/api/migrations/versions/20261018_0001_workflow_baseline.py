"""Workflow baseline: content_items and the append-only workflow_history ledger

- content_items carries only the columns the workflow engine reads or writes
- workflow_history rows are never updated or deleted; on Postgres a trigger
  rejects UPDATE and DELETE
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from editorial.tables import UTCDateTime

revision = "20261018_0001_workflow_baseline"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "content_items",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("author_id", sa.String(64)),
        sa.Column("editor_id", sa.String(64)),
        sa.Column("assigned_to", sa.String(64)),
        sa.Column("assigned_at", UTCDateTime()),
        sa.Column("assigned_by", sa.String(64)),
        sa.Column("published_at", UTCDateTime()),
        sa.Column("scheduled_for", UTCDateTime()),
        sa.Column("review_requested_at", UTCDateTime()),
        sa.Column("review_requested_by", sa.String(64)),
        sa.Column("approved_at", UTCDateTime()),
        sa.Column("approved_by", sa.String(64)),
        sa.Column("rejected_at", UTCDateTime()),
        sa.Column("rejected_by", sa.String(64)),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
    )
    op.create_index("ix_content_items_status_updated", "content_items", ["status", "updated_at"])
    op.create_index("ix_content_items_scheduled", "content_items", ["status", "scheduled_for"])
    op.create_index("ix_content_items_assigned_to", "content_items", ["assigned_to"])

    op.create_table(
        "workflow_history",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(64), nullable=False, unique=True),
        sa.Column("article_id", sa.String(64), nullable=False),
        sa.Column("from_status", sa.String(32), nullable=False),
        sa.Column("to_status", sa.String(32), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("user_role", sa.String(32), nullable=False),
        sa.Column("reason", sa.Text()),
        sa.Column("feedback", sa.Text()),
        sa.Column("created_at", UTCDateTime(), nullable=False),
    )
    op.create_index("ix_workflow_history_article", "workflow_history", ["article_id", "seq"])
    op.create_index("ix_workflow_history_created", "workflow_history", ["created_at"])

    if op.get_bind().dialect.name == "postgresql":
        op.execute("""
        CREATE OR REPLACE FUNCTION workflow_history_append_only() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'workflow_history is append-only';
        END;
        $$ LANGUAGE plpgsql;
        """)
        op.execute("""
        CREATE TRIGGER workflow_history_no_update_delete
        BEFORE UPDATE OR DELETE ON workflow_history
        FOR EACH ROW EXECUTE FUNCTION workflow_history_append_only();
        """)


def downgrade() -> None:
    raise NotImplementedError("Downgrades are not supported for the workflow baseline.")
