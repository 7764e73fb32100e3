import json
from datetime import datetime, timezone

import httpx
import pytest

from editorial.models import ContentItem
from editorial.notifications import (
    LoggingSender,
    NotificationDispatcher,
    WebhookSender,
    assignment_event,
    build_sender,
    transition_event,
)
from editorial.workflow import WorkflowStatus as S

from conftest import FailingSender, RecordingSender

AT = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _item(status: S) -> ContentItem:
    return ContentItem(id="a-1", title="Harbour reopens", status=status, created_at=AT, updated_at=AT)


@pytest.mark.parametrize(
    "to_status,kind",
    [
        (S.CHANGES_REQUESTED, "changes_requested"),
        (S.APPROVED, "approved"),
        (S.PUBLISHED, "published"),
        (S.REJECTED, "rejected"),
        (S.ARCHIVED, "archived"),
        (S.REVIEW, "status_changed"),
        (S.SCHEDULED, "status_changed"),
    ],
)
def test_event_kind_follows_target(to_status, kind):
    event = transition_event(_item(to_status), S.REVIEW, "Rui")
    assert event.kind == kind
    assert event.to_status == to_status.value
    assert event.from_status == "review"


def test_changes_requested_carries_feedback():
    event = transition_event(_item(S.CHANGES_REQUESTED), S.REVIEW, "Rui", feedback="cite the port authority")
    assert event.message == "cite the port authority"


def test_rejection_carries_reason():
    event = transition_event(_item(S.REJECTED), S.REVIEW, "Rui", reason="off topic")
    assert event.message == "off topic"


def test_assignment_event():
    event = assignment_event(_item(S.REVIEW), "u-reviewer", "Chris")
    assert event.kind == "assigned"
    assert event.assignee_id == "u-reviewer"
    assert event.to_status is None


def test_webhook_sender_posts_json():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    sender = WebhookSender("https://hooks.example.test/newsroom", client=client)

    sender.send(transition_event(_item(S.PUBLISHED), S.APPROVED, "Chris"))

    assert len(seen) == 1
    body = json.loads(seen[0].content)
    assert seen[0].method == "POST"
    assert body["kind"] == "published"
    assert body["article_id"] == "a-1"
    assert body["text"].startswith("[published]")
    client.close()


def test_webhook_sender_raises_on_error_status():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(502)))
    sender = WebhookSender("https://hooks.example.test/newsroom", client=client)

    with pytest.raises(httpx.HTTPStatusError):
        sender.send(transition_event(_item(S.PUBLISHED), S.APPROVED, "Chris"))
    client.close()


def test_dispatcher_delivers_in_background():
    sender = RecordingSender()
    dispatcher = NotificationDispatcher(sender, max_workers=1)

    future = dispatcher.dispatch(transition_event(_item(S.APPROVED), S.REVIEW, "Rui"))
    future.result(timeout=5)
    dispatcher.shutdown()

    assert [e.kind for e in sender.events] == ["approved"]


def test_dispatcher_swallows_delivery_failures():
    dispatcher = NotificationDispatcher(FailingSender(), max_workers=1)

    future = dispatcher.dispatch(transition_event(_item(S.APPROVED), S.REVIEW, "Rui"))

    assert future.result(timeout=5) is None
    dispatcher.shutdown()


def test_build_sender():
    assert isinstance(build_sender(None), LoggingSender)
    webhook = build_sender("https://hooks.example.test/newsroom", timeout_seconds=1)
    assert isinstance(webhook, WebhookSender)
    webhook.close()
