"""
Read side of the workflow history.

The ledger is an audit trail. The item's own `status` column is
authoritative; nothing here is used to decide what an item's status is.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from editorial.errors import LedgerInconsistency
from editorial.models import TransitionRecord
from editorial.ports import LedgerStore
from editorial.workflow import WorkflowStatus, is_edge, parse_status

S = WorkflowStatus


class HistoryLedger:
    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    def record(self, record: TransitionRecord) -> None:
        self.store.append(record)

    def history_for(self, item_id: str) -> list[TransitionRecord]:
        """Oldest first."""
        return list(self.store.history_for(item_id))

    def replay(self, item_id: str, initial: WorkflowStatus | str) -> WorkflowStatus:
        """
        Fold the item's history from `initial` and return the resulting status.

        Raises LedgerInconsistency if a record does not start where the
        previous one ended or follows no edge of the graph.
        """
        status = parse_status(initial)
        for rec in self.history_for(item_id):
            if rec.from_status is not status:
                raise LedgerInconsistency(
                    f"record {rec.id} starts at {rec.from_status.value}, expected {status.value}"
                )
            if not is_edge(rec.from_status, rec.to_status):
                raise LedgerInconsistency(
                    f"record {rec.id} follows no edge: {rec.from_status.value} -> {rec.to_status.value}"
                )
            status = rec.to_status
        return status

    def counts_by_status(self, since: Optional[datetime] = None) -> dict[str, int]:
        return self.store.counts_by_status(since)

    def counts_by_actor(self, since: Optional[datetime] = None) -> dict[str, int]:
        return self.store.counts_by_actor(since)

    def decision_counts(self, since: Optional[datetime] = None) -> tuple[int, int]:
        """(approved, rejected) decisions recorded since `since`."""
        counts = self.counts_by_status(since)
        return counts.get(S.APPROVED.value, 0), counts.get(S.REJECTED.value, 0)

    def rejection_rate(self, since: Optional[datetime] = None) -> float:
        approved, rejected = self.decision_counts(since)
        decisions = approved + rejected
        if decisions == 0:
            return 0.0
        return round(rejected / decisions * 100, 2)

    def average_approval_hours(self, since: Optional[datetime] = None) -> float:
        """Mean time from entering review to the next approval, per article."""
        review_started: dict[str, datetime] = {}
        durations: list[float] = []
        for rec in self.store.records_since(since):
            if rec.to_status is S.REVIEW:
                review_started.setdefault(rec.article_id, rec.created_at)
            elif rec.to_status is S.APPROVED:
                started = review_started.pop(rec.article_id, None)
                if started is not None:
                    durations.append((rec.created_at - started).total_seconds() / 3600)
        if not durations:
            return 0.0
        return round(sum(durations) / len(durations), 2)
