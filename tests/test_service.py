from datetime import timedelta

import pytest
from sqlalchemy import text

from editorial.errors import InvalidArgument
from editorial.models import TransitionOptions
from editorial.workflow import WorkflowStatus as S

from conftest import ADMIN, CHIEF, EDITOR, REVIEWER


def _as(actor):
    return actor.id, actor.name, actor.role


def test_transition_success_result(service, make_item):
    item = make_item(S.DRAFT)

    result = service.transition_status(item.id, "review", *_as(EDITOR))

    assert result.success
    assert result.error is None
    assert result.message == "article is now review"
    assert result.item.status is S.REVIEW


@pytest.mark.parametrize(
    "start,target,actor,kind",
    [
        (S.DRAFT, S.PUBLISHED, ADMIN, "illegal_transition"),
        (S.REVIEW, S.APPROVED, EDITOR, "forbidden"),
        (S.APPROVED, S.SCHEDULED, CHIEF, "invalid_argument"),
    ],
)
def test_transition_failures_become_results(service, make_item, start, target, actor, kind):
    item = make_item(start)

    result = service.transition_status(item.id, target, *_as(actor))

    assert not result.success
    assert result.error == kind
    assert result.item is None
    assert result.message


def test_transition_missing_article(service):
    result = service.transition_status("nope", S.REVIEW, *_as(EDITOR))
    assert (result.success, result.error) == (False, "not_found")


def test_unknown_target_status_is_invalid(service, make_item):
    item = make_item(S.DRAFT)
    result = service.transition_status(item.id, "published_now", *_as(ADMIN))
    assert result.error == "invalid_argument"


def test_storage_failure_becomes_unavailable(service, make_item, engine):
    item = make_item(S.DRAFT)
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE content_items"))

    result = service.transition_status(item.id, S.REVIEW, *_as(EDITOR))

    assert (result.success, result.error) == (False, "unavailable")


def test_request_changes_records_feedback(service, make_item, sender):
    item = make_item(S.REVIEW)

    result = service.request_changes(item.id, "add the minister's reply", *_as(REVIEWER))

    assert result.success
    assert result.item.status is S.CHANGES_REQUESTED
    (record,) = service.get_workflow_history(item.id)
    assert record.feedback == "add the minister's reply"
    assert sender.events[-1].message == "add the minister's reply"


def test_request_changes_requires_feedback(service, make_item):
    item = make_item(S.REVIEW)
    result = service.request_changes(item.id, "  ", *_as(REVIEWER))
    assert result.error == "invalid_argument"


def test_assign_article_results(service, make_item):
    item = make_item(S.REVIEW)

    ok = service.assign_article(item.id, REVIEWER.id, *_as(CHIEF))
    denied = service.assign_article(item.id, REVIEWER.id, *_as(EDITOR))
    missing = service.assign_article("nope", REVIEWER.id, *_as(CHIEF))

    assert ok.success and ok.item.assigned_to == REVIEWER.id
    assert denied.error == "forbidden"
    assert missing.error == "not_found"


def test_process_scheduled_publications(service, make_item, clock):
    make_item(S.SCHEDULED, scheduled_for=clock.now() - timedelta(minutes=1))
    make_item(S.SCHEDULED, scheduled_for=clock.now() + timedelta(minutes=1))

    assert service.process_scheduled_publications() == {"published": 1, "errors": []}
    assert service.process_scheduled_publications() == {"published": 0, "errors": []}


def test_process_scheduled_publications_reports_skipped_on_request(service, make_item, clock):
    make_item(S.SCHEDULED, scheduled_for=clock.now() - timedelta(minutes=1))

    assert service.process_scheduled_publications(include_skipped=True) == {
        "published": 1,
        "errors": [],
        "skipped": 0,
    }


def test_process_scheduled_publications_with_storage_down(service, make_item, clock, engine):
    make_item(S.SCHEDULED, scheduled_for=clock.now() - timedelta(minutes=1))
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE content_items"))

    result = service.process_scheduled_publications()

    assert result["published"] == 0
    assert len(result["errors"]) == 1


def test_listing_paginates_newest_first(service, make_item, clock):
    ids = []
    for _ in range(5):
        ids.append(make_item(S.DRAFT).id)
        clock.advance(minutes=1)

    first = service.get_articles_by_status(S.DRAFT, page=1, limit=2)
    last = service.get_articles_by_status(S.DRAFT, page=3, limit=2)

    assert first.total == 5
    assert first.total_pages == 3
    assert [i.id for i in first.items] == [ids[4], ids[3]]
    assert [i.id for i in last.items] == [ids[0]]


def test_listing_clamps_limit(service, make_item):
    make_item(S.DRAFT)
    assert service.get_articles_by_status(S.DRAFT, limit=500).limit == 50
    assert service.get_articles_by_status(S.DRAFT, limit=0).limit == 1
    assert service.get_articles_by_status(S.DRAFT, page=-3).page == 1


def test_listing_filters(service, make_item):
    mine = make_item(S.REVIEW, author_id=EDITOR.id, assigned_to=REVIEWER.id)
    make_item(S.REVIEW, author_id="u-someone-else")
    make_item(S.DRAFT, author_id=EDITOR.id)

    by_author = service.get_articles_by_status(S.REVIEW, user_id=EDITOR.id)
    by_assignee = service.get_articles_by_status(["review", "draft"], assigned_to=REVIEWER.id)
    several = service.get_articles_by_status([S.REVIEW, S.DRAFT])

    assert [i.id for i in by_author.items] == [mine.id]
    assert [i.id for i in by_assignee.items] == [mine.id]
    assert several.total == 3


def test_listing_defaults_to_the_roles_statuses(service, make_item):
    make_item(S.PUBLISHED)
    make_item(S.REVIEW)

    assert service.get_articles_by_status(role="admin").total == 2
    assert {i.status for i in service.get_articles_by_status(role="editor").items} == {S.REVIEW}


def test_listing_rejects_unknown_status(service):
    with pytest.raises(InvalidArgument):
        service.get_articles_by_status("nonsense")
    with pytest.raises(InvalidArgument):
        service.get_articles_by_status([])


def test_available_transitions(service):
    assert service.get_available_transitions("approved", "chief_editor") == [S.PUBLISHED, S.SCHEDULED]
    assert service.get_available_transitions("approved", "editor") == []


def test_workflow_stats(service, make_item, clock):
    a = make_item(S.REVIEW)
    b = make_item(S.REVIEW)
    make_item(S.DRAFT)
    make_item(S.PUBLISHED, published_at=clock.now() - timedelta(days=3))

    clock.advance(hours=3)
    service.transition_status(a.id, S.APPROVED, *_as(REVIEWER))
    service.transition_status(b.id, S.REJECTED, *_as(REVIEWER), TransitionOptions(reason="duplicate"))
    service.transition_status(a.id, S.PUBLISHED, *_as(CHIEF))

    stats = service.get_workflow_stats()

    assert stats.status_counts["published"] == 2
    assert stats.status_counts["rejected"] == 1
    assert stats.status_counts["draft"] == 1
    assert stats.status_counts["archived"] == 0
    assert set(stats.status_counts) == {s.value for s in S}
    assert stats.pending_review == 0
    assert stats.published_today == 1
    assert stats.rejection_rate == 50.0
    assert stats.transitions_by_status == {"approved": 1, "rejected": 1, "published": 1}
    assert stats.transitions_by_actor == {REVIEWER.id: 2, CHIEF.id: 1}
