"""
Facade used by the HTTP layer and the worker.

Every workflow failure is recovered here and handed back as a result object
carrying a UI-safe message and the error kind; nothing below this boundary
leaks out as an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional, Sequence, Union

import structlog
from sqlalchemy.exc import SQLAlchemyError

from editorial import roles
from editorial.assignment import AssignmentManager
from editorial.clock import Clock
from editorial.errors import InvalidArgument, WorkflowError
from editorial.executor import TransitionExecutor
from editorial.ledger import HistoryLedger
from editorial.models import Actor, ContentItem, Page, TransitionOptions, TransitionRecord, WorkflowStats
from editorial.reconciler import ScheduledPublicationReconciler
from editorial.repo import SqlWorkflowStore
from editorial.workflow import STATES, WorkflowStatus, display_name, parse_status

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 50
STATS_WINDOW = timedelta(days=30)

StatusFilter = Union[WorkflowStatus, str, Sequence[Union[WorkflowStatus, str]], None]


@dataclass(frozen=True)
class TransitionResult:
    success: bool
    message: str
    item: Optional[ContentItem] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class AssignmentResult:
    success: bool
    message: str
    item: Optional[ContentItem] = None
    error: Optional[str] = None


class WorkflowService:
    def __init__(
        self,
        store: SqlWorkflowStore,
        clock: Clock,
        dispatcher: Optional[Any] = None,
        batch_size: int = 100,
    ) -> None:
        self.store = store
        self.clock = clock
        self.executor = TransitionExecutor(store, clock, dispatcher)
        self.assignments = AssignmentManager(store, clock, dispatcher)
        self.ledger = HistoryLedger(store)
        self.reconciler = ScheduledPublicationReconciler(store, self.executor, clock, batch_size=batch_size)

    # -----------------------------
    # Commands
    # -----------------------------

    def transition_status(
        self,
        item_id: str,
        to_status: WorkflowStatus | str,
        actor_id: str,
        actor_name: str,
        actor_role: str,
        options: Optional[TransitionOptions] = None,
    ) -> TransitionResult:
        actor = Actor(id=actor_id, name=actor_name, role=actor_role)
        try:
            item = self.executor.transition(item_id, to_status, actor, options)
        except WorkflowError as e:
            return TransitionResult(success=False, message=e.message, error=e.kind)
        except SQLAlchemyError:
            logger.exception("workflow.transition.storage_error", article_id=str(item_id))
            return TransitionResult(success=False, message="the workflow store is unavailable", error="unavailable")
        return TransitionResult(success=True, message=f"article is now {display_name(item.status)}", item=item)

    def request_changes(
        self,
        item_id: str,
        feedback: str,
        actor_id: str,
        actor_name: str,
        actor_role: str,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        return self.transition_status(
            item_id,
            WorkflowStatus.CHANGES_REQUESTED,
            actor_id,
            actor_name,
            actor_role,
            TransitionOptions(feedback=feedback, reason=reason),
        )

    def assign_article(
        self,
        item_id: str,
        assignee_id: str,
        actor_id: str,
        actor_name: str,
        actor_role: str,
    ) -> AssignmentResult:
        actor = Actor(id=actor_id, name=actor_name, role=actor_role)
        try:
            item = self.assignments.assign(item_id, assignee_id, actor)
        except WorkflowError as e:
            return AssignmentResult(success=False, message=e.message, error=e.kind)
        except SQLAlchemyError:
            logger.exception("workflow.assignment.storage_error", article_id=str(item_id))
            return AssignmentResult(success=False, message="the workflow store is unavailable", error="unavailable")
        return AssignmentResult(success=True, message="article assigned", item=item)

    def process_scheduled_publications(self, include_skipped: bool = False) -> dict:
        """
        `{"published": n, "errors": [...]}`; with `include_skipped` the count
        of items lost to a concurrent manual change is added as `skipped`.
        """
        try:
            return self.reconciler.run_once().as_dict(include_skipped)
        except WorkflowError as e:
            logger.error("reconciler.run.failed", error=e.message)
            failed = {"published": 0, "errors": [e.message]}
        except SQLAlchemyError:
            logger.exception("reconciler.run.storage_error")
            failed = {"published": 0, "errors": ["the workflow store is unavailable"]}
        if include_skipped:
            failed["skipped"] = 0
        return failed

    # -----------------------------
    # Queries
    # -----------------------------

    def get_articles_by_status(
        self,
        status: StatusFilter = None,
        page: int = 1,
        limit: int = 20,
        user_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Page:
        """
        `status` may be one status, several, or None for every status `role`
        works with.
        """
        if status is None:
            statuses = roles.statuses_for_role(role) if role else list(STATES)
        elif isinstance(status, (WorkflowStatus, str)):
            statuses = [parse_status(status)]
        else:
            statuses = [parse_status(s) for s in status]
        if not statuses:
            raise InvalidArgument("at least one status is required")

        page = max(1, int(page))
        limit = min(MAX_PAGE_SIZE, max(1, int(limit)))
        return self.store.list_items(statuses, page, limit, author_id=user_id, assigned_to=assigned_to)

    def get_article(self, item_id: str) -> Optional[ContentItem]:
        return self.store.get_item(item_id)

    def get_workflow_history(self, item_id: str) -> list[TransitionRecord]:
        return self.ledger.history_for(item_id)

    def get_available_transitions(self, current_status: WorkflowStatus | str, role: str) -> list[WorkflowStatus]:
        return roles.available_transitions(current_status, role)

    def get_workflow_stats(self) -> WorkflowStats:
        now = self.clock.now()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        since = now - STATS_WINDOW

        counts = self.store.status_counts()
        return WorkflowStats(
            status_counts={s.value: counts.get(s, 0) for s in STATES},
            pending_review=counts.get(WorkflowStatus.REVIEW, 0),
            approved_waiting=counts.get(WorkflowStatus.APPROVED, 0),
            scheduled_waiting=counts.get(WorkflowStatus.SCHEDULED, 0),
            published_today=self.store.count_published_between(day_start, day_start + timedelta(days=1)),
            rejection_rate=self.ledger.rejection_rate(since),
            average_approval_hours=self.ledger.average_approval_hours(since),
            transitions_by_status=self.ledger.counts_by_status(since),
            transitions_by_actor=self.ledger.counts_by_actor(since),
        )
