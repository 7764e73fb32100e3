"""Collaborator interfaces the workflow engine consumes.

`editorial.repo.SqlWorkflowStore` implements both store protocols; item
mutation and ledger append share one database transaction, so in practice
they are the same object.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from editorial.models import ContentItem, Page, TransitionRecord
from editorial.workflow import WorkflowStatus


class ContentStore(Protocol):
    def get_item(self, item_id: str) -> Optional[ContentItem]: ...

    def apply_transition(
        self,
        item_id: str,
        expected_status: WorkflowStatus,
        changes: Mapping[str, Any],
        record: TransitionRecord,
    ) -> ContentItem:
        """Compare-and-swap on status plus ledger append, atomically.

        Raises StaleStatus when the status no longer matches and
        LedgerWriteFailed when the append fails; neither leaves a partial write.
        """
        ...

    def assign(self, item_id: str, assignee_id: str, assigned_by: str, at: datetime) -> Optional[ContentItem]: ...

    def list_items(
        self,
        statuses: Sequence[WorkflowStatus],
        page: int,
        limit: int,
        author_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> Page: ...

    def due_scheduled(self, now: datetime, limit: int) -> list[ContentItem]: ...

    def status_counts(self) -> dict[WorkflowStatus, int]: ...

    def count_published_between(self, start: datetime, end: datetime) -> int: ...


class LedgerStore(Protocol):
    def append(self, record: TransitionRecord) -> None: ...

    def history_for(self, item_id: str) -> list[TransitionRecord]: ...

    def records_since(self, since: Optional[datetime]) -> list[TransitionRecord]: ...

    def counts_by_status(self, since: Optional[datetime] = None) -> dict[str, int]: ...

    def counts_by_actor(self, since: Optional[datetime] = None) -> dict[str, int]: ...


class NotificationSender(Protocol):
    def send(self, event: Any) -> None: ...
