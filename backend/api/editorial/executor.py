"""
The single choke point for status changes.

Both the HTTP service and the scheduled-publication reconciler call
`TransitionExecutor.transition`. Shared state is only touched through the
store's `apply_transition`, which updates the item with a compare-and-swap on
its status and appends the ledger record in the same database transaction.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from editorial import roles
from editorial.clock import Clock
from editorial.errors import Conflict, Forbidden, IllegalTransition, InvalidArgument, NotFound, StaleStatus
from editorial.models import Actor, ContentItem, TransitionOptions, TransitionRecord, new_record_id
from editorial.notifications import transition_event
from editorial.ports import ContentStore
from editorial.workflow import WorkflowStatus, action_verb, display_name, parse_status, validate_transition

logger = structlog.get_logger(__name__)

S = WorkflowStatus


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def check_actor(actor: Actor) -> None:
    if not (actor.id or "").strip():
        raise InvalidArgument("an acting user is required")
    if not (actor.role or "").strip():
        raise InvalidArgument("the acting user has no role")


def authorize(actor: Actor, from_status: WorkflowStatus, to_status: WorkflowStatus) -> None:
    """Edge existence first, then role permission."""
    validate_transition(from_status, to_status)
    if not roles.is_allowed(actor.role, from_status, to_status):
        raise Forbidden(
            f"your role ({actor.role}) cannot {action_verb(to_status)} an article that is {display_name(from_status)}"
        )


def field_changes(
    item: ContentItem,
    to_status: WorkflowStatus,
    actor: Actor,
    options: TransitionOptions,
    now: datetime,
) -> dict[str, Any]:
    """Column updates that accompany moving `item` to `to_status`."""
    src = item.status
    changes: dict[str, Any] = {"updated_at": now}

    if to_status is S.PUBLISHED:
        changes["published_at"] = as_utc(options.published_at) if options.published_at else now
        changes["scheduled_for"] = None
    elif src is S.PUBLISHED:
        changes["published_at"] = None

    if to_status is S.SCHEDULED:
        if options.scheduled_for is None:
            raise InvalidArgument("a publication time is required to schedule an article")
        scheduled_for = as_utc(options.scheduled_for)
        if scheduled_for <= now:
            raise InvalidArgument("the publication time must be in the future")
        changes["scheduled_for"] = scheduled_for
    elif src is S.SCHEDULED:
        changes["scheduled_for"] = None

    if to_status is S.CHANGES_REQUESTED and actor.role != roles.SYSTEM_SCHEDULER:
        if not (options.feedback or "").strip():
            raise InvalidArgument("feedback is required when requesting changes")

    if to_status is S.REVIEW:
        changes["review_requested_at"] = now
        changes["review_requested_by"] = actor.id
    elif to_status is S.APPROVED:
        changes["approved_at"] = now
        changes["approved_by"] = actor.id
    elif to_status is S.REJECTED:
        changes["rejected_at"] = now
        changes["rejected_by"] = actor.id

    return changes


class TransitionExecutor:
    def __init__(self, store: ContentStore, clock: Clock, dispatcher: Optional[Any] = None) -> None:
        self.store = store
        self.clock = clock
        self.dispatcher = dispatcher

    def _load(self, item_id: str) -> ContentItem:
        item = self.store.get_item(item_id)
        if item is None:
            raise NotFound("article not found")
        return item

    def _attempt(
        self,
        item: ContentItem,
        to_status: WorkflowStatus,
        actor: Actor,
        options: TransitionOptions,
        now: datetime,
    ) -> ContentItem:
        changes = field_changes(item, to_status, actor, options, now)
        record = TransitionRecord(
            id=new_record_id(),
            article_id=item.id,
            from_status=item.status,
            to_status=to_status,
            user_id=actor.id,
            user_name=actor.name or actor.id,
            user_role=actor.role,
            created_at=now,
            reason=options.reason,
            feedback=options.feedback,
        )
        return self.store.apply_transition(item.id, item.status, changes, record)

    def transition(
        self,
        item_id: str,
        to_status: WorkflowStatus | str,
        actor: Actor,
        options: Optional[TransitionOptions] = None,
    ) -> ContentItem:
        """
        Move an article to `to_status` on behalf of `actor`.

        Raises NotFound, IllegalTransition, Forbidden, InvalidArgument,
        Conflict or LedgerWriteFailed. On success exactly one ledger record
        was written together with the item update.
        """
        options = options or TransitionOptions()
        target = parse_status(to_status)
        check_actor(actor)
        log = logger.bind(article_id=str(item_id), to_status=target.value, actor_id=actor.id, actor_role=actor.role)

        item = self._load(item_id)
        from_status = item.status
        authorize(actor, from_status, target)
        now = self.clock.now()

        try:
            updated = self._attempt(item, target, actor, options, now)
        except StaleStatus:
            # Someone else moved the item after we read it. Re-read once and
            # re-check the request against whatever status won.
            log.info("workflow.transition.stale", expected=from_status.value)
            item = self._load(item_id)
            try:
                authorize(actor, item.status, target)
            except (IllegalTransition, Forbidden) as e:
                log.info("workflow.transition.conflict", current=item.status.value, reason=e.message)
                raise Conflict(
                    f"the article was changed to {display_name(item.status)} while you were working; reload and try again"
                ) from e
            from_status = item.status
            try:
                updated = self._attempt(item, target, actor, options, now)
            except StaleStatus as e:
                log.info("workflow.transition.conflict", current="unknown", reason="second stale write")
                raise Conflict("the article is being changed by someone else; reload and try again") from e

        log.info("workflow.transition.applied", from_status=from_status.value)
        self._notify(updated, from_status, actor, options)
        return updated

    def _notify(self, item: ContentItem, from_status: WorkflowStatus, actor: Actor, options: TransitionOptions) -> None:
        if self.dispatcher is None:
            return
        event = transition_event(item, from_status, actor.name or actor.id, options.reason, options.feedback)
        try:
            self.dispatcher.dispatch(event)
        except Exception as e:
            # The transition is already committed.
            logger.warning("notification.dispatch_failed", article_id=item.id, kind=event.kind, error=str(e))
