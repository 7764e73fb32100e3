from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Optional

import httpx
import structlog

from editorial.models import ContentItem
from editorial.ports import NotificationSender
from editorial.workflow import WorkflowStatus, display_name

logger = structlog.get_logger(__name__)

S = WorkflowStatus

_KIND_BY_TARGET: dict[WorkflowStatus, str] = {
    S.CHANGES_REQUESTED: "changes_requested",
    S.APPROVED: "approved",
    S.PUBLISHED: "published",
    S.REJECTED: "rejected",
    S.ARCHIVED: "archived",
}


@dataclass(frozen=True)
class NotificationEvent:
    kind: str
    article_id: str
    title: str
    actor_name: str
    message: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    assignee_id: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


def transition_event(
    item: ContentItem,
    from_status: WorkflowStatus,
    actor_name: str,
    reason: Optional[str] = None,
    feedback: Optional[str] = None,
) -> NotificationEvent:
    to_status = item.status
    kind = _KIND_BY_TARGET.get(to_status, "status_changed")

    if kind == "changes_requested":
        message = feedback or reason or "Changes requested"
    elif kind == "rejected":
        message = reason or "Article rejected"
    else:
        message = f"{item.title!r} is now {display_name(to_status)}"

    return NotificationEvent(
        kind=kind,
        article_id=item.id,
        title=item.title,
        actor_name=actor_name,
        message=message,
        from_status=from_status.value,
        to_status=to_status.value,
    )


def assignment_event(item: ContentItem, assignee_id: str, actor_name: str) -> NotificationEvent:
    return NotificationEvent(
        kind="assigned",
        article_id=item.id,
        title=item.title,
        actor_name=actor_name,
        message=f"{item.title!r} was assigned to {assignee_id}",
        assignee_id=assignee_id,
    )


# ----------------------------
# Senders
# ----------------------------


class LoggingSender:
    """Default sender when no webhook is configured."""

    def send(self, event: NotificationEvent) -> None:
        logger.info("notification.sent", channel="log", **event.as_dict())


class WebhookSender:
    """POSTs each event as JSON to a single webhook (Slack-compatible `text` included)."""

    def __init__(self, url: str, timeout_seconds: float = 5.0, client: Optional[httpx.Client] = None) -> None:
        self.url = url
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self._owns_client = client is None

    def send(self, event: NotificationEvent) -> None:
        payload = event.as_dict()
        payload["text"] = f"[{event.kind}] {event.message} (by {event.actor_name})"
        response = self._client.post(self.url, json=payload)
        response.raise_for_status()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


# ----------------------------
# Dispatch
# ----------------------------


class NotificationDispatcher:
    """
    Fire-and-forget delivery on a small thread pool.

    `dispatch` returns as soon as the event is queued. Delivery failures are
    logged here and never reach the caller, so a slow or broken channel
    cannot undo a committed transition.
    """

    def __init__(self, sender: NotificationSender, max_workers: int = 4) -> None:
        self.sender = sender
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    def dispatch(self, event: NotificationEvent) -> Future:
        return self._pool.submit(self._deliver, event)

    def _deliver(self, event: NotificationEvent) -> None:
        try:
            self.sender.send(event)
        except Exception as e:
            logger.warning(
                "notification.failed",
                kind=event.kind,
                article_id=event.article_id,
                error=str(e),
            )

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
        close = getattr(self.sender, "close", None)
        if callable(close):
            close()


class InlineDispatcher:
    """Delivers synchronously. Useful in tests and one-shot scripts."""

    def __init__(self, sender: NotificationSender) -> None:
        self.sender = sender

    def dispatch(self, event: NotificationEvent) -> None:
        try:
            self.sender.send(event)
        except Exception as e:
            logger.warning("notification.failed", kind=event.kind, article_id=event.article_id, error=str(e))

    def shutdown(self, wait: bool = True) -> None:
        return None


def build_sender(webhook_url: Optional[str], timeout_seconds: float = 5.0) -> NotificationSender:
    if webhook_url:
        return WebhookSender(webhook_url, timeout_seconds=timeout_seconds)
    return LoggingSender()
