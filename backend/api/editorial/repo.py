from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.engine import Engine, RowMapping
from sqlalchemy.exc import SQLAlchemyError

from editorial.errors import InvalidArgument, LedgerWriteFailed, StaleStatus
from editorial.models import ContentItem, Page, TransitionRecord, new_record_id
from editorial.tables import content_items, workflow_history
from editorial.workflow import WorkflowStatus, parse_status


# ----------------------------
# Helpers
# ----------------------------

# Columns the executor may write during a transition.
MUTABLE_ON_TRANSITION = frozenset(
    {
        "published_at",
        "scheduled_for",
        "review_requested_at",
        "review_requested_by",
        "approved_at",
        "approved_by",
        "rejected_at",
        "rejected_by",
        "updated_at",
    }
)


def _item_from_row(row: RowMapping) -> ContentItem:
    data = dict(row)
    data["status"] = parse_status(data["status"])
    return ContentItem(**data)


def _record_from_row(row: RowMapping) -> TransitionRecord:
    data = dict(row)
    data.pop("seq", None)
    data["from_status"] = parse_status(data["from_status"])
    data["to_status"] = parse_status(data["to_status"])
    return TransitionRecord(**data)


def _record_values(record: TransitionRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "article_id": record.article_id,
        "from_status": record.from_status.value,
        "to_status": record.to_status.value,
        "user_id": record.user_id,
        "user_name": record.user_name,
        "user_role": record.user_role,
        "reason": record.reason,
        "feedback": record.feedback,
        "created_at": record.created_at,
    }


# ----------------------------
# Store
# ----------------------------


class SqlWorkflowStore:
    """
    Content-item store and history ledger over one SQLAlchemy engine.

    Every public method opens its own `engine.begin()` block. There is no
    update or delete path for workflow_history.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # -- content items --------------------------------------------------

    def create_item(
        self,
        title: str,
        status: WorkflowStatus,
        at: datetime,
        author_id: Optional[str] = None,
        editor_id: Optional[str] = None,
        item_id: Optional[str] = None,
        **fields: Any,
    ) -> ContentItem:
        values = {
            "id": item_id or new_record_id(),
            "title": title,
            "status": parse_status(status).value,
            "author_id": author_id,
            "editor_id": editor_id,
            "created_at": at,
            "updated_at": at,
            **fields,
        }
        with self.engine.begin() as conn:
            conn.execute(insert(content_items).values(**values))
            row = conn.execute(
                select(content_items).where(content_items.c.id == values["id"])
            ).mappings().one()
        return _item_from_row(row)

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(content_items).where(content_items.c.id == str(item_id))
            ).mappings().first()
        return _item_from_row(row) if row else None

    def apply_transition(
        self,
        item_id: str,
        expected_status: WorkflowStatus,
        changes: Mapping[str, Any],
        record: TransitionRecord,
    ) -> ContentItem:
        unknown = set(changes) - MUTABLE_ON_TRANSITION
        if unknown:
            raise ValueError(f"columns not writable by a transition: {sorted(unknown)}")

        stmt = (
            update(content_items)
            .where(
                and_(
                    content_items.c.id == str(item_id),
                    content_items.c.status == expected_status.value,
                )
            )
            .values(status=record.to_status.value, **changes)
        )

        with self.engine.begin() as conn:
            result = conn.execute(stmt)
            if result.rowcount != 1:
                raise StaleStatus(str(item_id), expected_status.value)

            try:
                conn.execute(insert(workflow_history).values(**_record_values(record)))
            except SQLAlchemyError as e:
                raise LedgerWriteFailed("the transition could not be recorded; nothing was changed") from e

            row = conn.execute(
                select(content_items).where(content_items.c.id == str(item_id))
            ).mappings().one()

        return _item_from_row(row)

    def assign(self, item_id: str, assignee_id: str, assigned_by: str, at: datetime) -> Optional[ContentItem]:
        stmt = (
            update(content_items)
            .where(content_items.c.id == str(item_id))
            .values(assigned_to=assignee_id, assigned_at=at, assigned_by=assigned_by, updated_at=at)
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
            if result.rowcount != 1:
                return None
            row = conn.execute(
                select(content_items).where(content_items.c.id == str(item_id))
            ).mappings().one()
        return _item_from_row(row)

    def list_items(
        self,
        statuses: Sequence[WorkflowStatus],
        page: int,
        limit: int,
        author_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> Page:
        conditions = [content_items.c.status.in_([s.value for s in statuses])]
        if author_id:
            conditions.append(content_items.c.author_id == author_id)
        if assigned_to:
            conditions.append(content_items.c.assigned_to == assigned_to)
        where = and_(*conditions)

        offset = (page - 1) * limit
        sql_items = (
            select(content_items)
            .where(where)
            .order_by(content_items.c.updated_at.desc(), content_items.c.id)
            .limit(limit)
            .offset(offset)
        )
        sql_total = select(func.count()).select_from(content_items).where(where)

        with self.engine.begin() as conn:
            rows = conn.execute(sql_items).mappings().all()
            total = conn.execute(sql_total).scalar_one()

        return Page(items=[_item_from_row(r) for r in rows], page=page, limit=limit, total=int(total))

    def due_scheduled(self, now: datetime, limit: int) -> List[ContentItem]:
        sql = (
            select(content_items)
            .where(
                and_(
                    content_items.c.status == WorkflowStatus.SCHEDULED.value,
                    content_items.c.scheduled_for.is_not(None),
                    content_items.c.scheduled_for <= now,
                )
            )
            .order_by(content_items.c.scheduled_for.asc(), content_items.c.id)
            .limit(limit)
        )
        with self.engine.begin() as conn:
            rows = conn.execute(sql).mappings().all()
        return [_item_from_row(r) for r in rows]

    def status_counts(self) -> Dict[WorkflowStatus, int]:
        sql = select(content_items.c.status, func.count()).group_by(content_items.c.status)
        counts = {s: 0 for s in WorkflowStatus}
        with self.engine.begin() as conn:
            for status, n in conn.execute(sql).all():
                try:
                    counts[parse_status(status)] = int(n)
                except InvalidArgument:
                    continue
        return counts

    def count_published_between(self, start: datetime, end: datetime) -> int:
        sql = (
            select(func.count())
            .select_from(content_items)
            .where(
                and_(
                    content_items.c.status == WorkflowStatus.PUBLISHED.value,
                    content_items.c.published_at >= start,
                    content_items.c.published_at < end,
                )
            )
        )
        with self.engine.begin() as conn:
            return int(conn.execute(sql).scalar_one())

    # -- ledger ---------------------------------------------------------

    def append(self, record: TransitionRecord) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(workflow_history).values(**_record_values(record)))
        except SQLAlchemyError as e:
            raise LedgerWriteFailed("the transition could not be recorded") from e

    def history_for(self, item_id: str) -> List[TransitionRecord]:
        sql = (
            select(workflow_history)
            .where(workflow_history.c.article_id == str(item_id))
            .order_by(workflow_history.c.created_at.asc(), workflow_history.c.seq.asc())
        )
        with self.engine.begin() as conn:
            rows = conn.execute(sql).mappings().all()
        return [_record_from_row(r) for r in rows]

    def records_since(self, since: Optional[datetime]) -> List[TransitionRecord]:
        sql = select(workflow_history)
        if since is not None:
            sql = sql.where(workflow_history.c.created_at >= since)
        sql = sql.order_by(workflow_history.c.created_at.asc(), workflow_history.c.seq.asc())
        with self.engine.begin() as conn:
            rows = conn.execute(sql).mappings().all()
        return [_record_from_row(r) for r in rows]

    def _grouped_counts(self, column, since: Optional[datetime]) -> Dict[str, int]:
        sql = select(column, func.count()).select_from(workflow_history)
        if since is not None:
            sql = sql.where(workflow_history.c.created_at >= since)
        sql = sql.group_by(column)
        with self.engine.begin() as conn:
            return {str(key): int(n) for key, n in conn.execute(sql).all()}

    def counts_by_status(self, since: Optional[datetime] = None) -> Dict[str, int]:
        return self._grouped_counts(workflow_history.c.to_status, since)

    def counts_by_actor(self, since: Optional[datetime] = None) -> Dict[str, int]:
        return self._grouped_counts(workflow_history.c.user_id, since)
