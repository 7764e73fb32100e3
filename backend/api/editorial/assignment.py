from __future__ import annotations

from typing import Any, Optional

import structlog

from editorial import roles
from editorial.clock import Clock
from editorial.errors import Forbidden, InvalidArgument, NotFound
from editorial.executor import check_actor
from editorial.models import Actor, ContentItem
from editorial.notifications import assignment_event
from editorial.ports import ContentStore

logger = structlog.get_logger(__name__)


class AssignmentManager:
    """
    Hands an article to a specific reviewer.

    Not a status transition: the status is untouched and no ledger record is
    written. A lightweight `assigned` notification goes out instead.
    """

    def __init__(self, store: ContentStore, clock: Clock, dispatcher: Optional[Any] = None) -> None:
        self.store = store
        self.clock = clock
        self.dispatcher = dispatcher

    def assign(self, item_id: str, assignee_id: str, actor: Actor) -> ContentItem:
        check_actor(actor)
        if not roles.can_assign(actor.role):
            raise Forbidden(f"your role ({actor.role}) cannot assign articles")

        assignee = (assignee_id or "").strip()
        if not assignee:
            raise InvalidArgument("an assignee is required")

        updated = self.store.assign(item_id, assignee, actor.id, self.clock.now())
        if updated is None:
            raise NotFound("article not found")

        logger.info("workflow.assignment.applied", article_id=updated.id, assignee_id=assignee, actor_id=actor.id)

        if self.dispatcher is not None:
            try:
                self.dispatcher.dispatch(assignment_event(updated, assignee, actor.name or actor.id))
            except Exception as e:
                logger.warning("notification.dispatch_failed", article_id=updated.id, kind="assigned", error=str(e))

        return updated
