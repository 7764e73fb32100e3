from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, MetaData, String, Table, Text
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Stores UTC and always hands back timezone-aware UTC datetimes.

    SQLite drops tzinfo on the way in; Postgres keeps it. Either way the
    application only ever sees aware values.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime passed to a UTC column")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


metadata = MetaData()

content_items = Table(
    "content_items",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("title", Text, nullable=False, server_default=""),
    Column("status", String(32), nullable=False),
    Column("author_id", String(64)),
    Column("editor_id", String(64)),
    Column("assigned_to", String(64)),
    Column("assigned_at", UTCDateTime()),
    Column("assigned_by", String(64)),
    Column("published_at", UTCDateTime()),
    Column("scheduled_for", UTCDateTime()),
    Column("review_requested_at", UTCDateTime()),
    Column("review_requested_by", String(64)),
    Column("approved_at", UTCDateTime()),
    Column("approved_by", String(64)),
    Column("rejected_at", UTCDateTime()),
    Column("rejected_by", String(64)),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

Index("ix_content_items_status_updated", content_items.c.status, content_items.c.updated_at)
Index("ix_content_items_scheduled", content_items.c.status, content_items.c.scheduled_for)
Index("ix_content_items_assigned_to", content_items.c.assigned_to)

# Append-only. `seq` gives a stable order for records sharing a timestamp.
workflow_history = Table(
    "workflow_history",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), nullable=False, unique=True),
    Column("article_id", String(64), nullable=False),
    Column("from_status", String(32), nullable=False),
    Column("to_status", String(32), nullable=False),
    Column("user_id", String(64), nullable=False),
    Column("user_name", Text, nullable=False),
    Column("user_role", String(32), nullable=False),
    Column("reason", Text),
    Column("feedback", Text),
    Column("created_at", UTCDateTime(), nullable=False),
)

Index("ix_workflow_history_article", workflow_history.c.article_id, workflow_history.c.seq)
Index("ix_workflow_history_created", workflow_history.c.created_at)
