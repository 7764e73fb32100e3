import itertools

import pytest

from editorial import roles
from editorial.errors import IllegalTransition, InvalidArgument
from editorial.models import Actor
from editorial.workflow import (
    STATES,
    WorkflowStatus as S,
    allowed_targets,
    display_name,
    edges,
    is_edge,
    is_terminal,
    list_states,
    parse_status,
    validate_transition,
)


EXPECTED_EDGES = {
    (S.INGESTION_PENDING, S.DRAFT),
    (S.DRAFT, S.REVIEW),
    (S.REVIEW, S.APPROVED),
    (S.REVIEW, S.CHANGES_REQUESTED),
    (S.REVIEW, S.REJECTED),
    (S.CHANGES_REQUESTED, S.REVISED),
    (S.REVISED, S.REVIEW),
    (S.APPROVED, S.PUBLISHED),
    (S.APPROVED, S.SCHEDULED),
    (S.SCHEDULED, S.PUBLISHED),
    (S.SCHEDULED, S.APPROVED),
    (S.PUBLISHED, S.DRAFT),
    (S.REJECTED, S.DRAFT),
    (S.ARCHIVED, S.DRAFT),
} | {(s, S.ARCHIVED) for s in STATES if s is not S.ARCHIVED}


def test_list_states_is_the_fixed_set():
    assert list_states() == [
        "ingestion_pending",
        "draft",
        "review",
        "changes_requested",
        "revised",
        "approved",
        "published",
        "scheduled",
        "archived",
        "rejected",
    ]


def test_edges_match_the_editorial_graph():
    assert set(edges()) == EXPECTED_EDGES


def test_every_status_can_be_archived_except_archived():
    for s in STATES:
        assert is_edge(s, S.ARCHIVED) is (s is not S.ARCHIVED)


def test_no_self_loops():
    for s in STATES:
        assert not is_edge(s, s)


def test_allowed_targets_in_enum_order():
    assert allowed_targets(S.REVIEW) == [S.CHANGES_REQUESTED, S.APPROVED, S.ARCHIVED, S.REJECTED]
    assert allowed_targets("archived") == [S.DRAFT]


@pytest.mark.parametrize("raw", ["draft", " DRAFT ", "Draft", S.DRAFT])
def test_parse_status_normalizes(raw):
    assert parse_status(raw) is S.DRAFT


@pytest.mark.parametrize("raw", ["", "solicitado_mudancas", "PUBLISHED_NOW", None])
def test_parse_status_rejects_unknown(raw):
    with pytest.raises(InvalidArgument):
        parse_status(raw)


def test_validate_transition_message_is_readable():
    with pytest.raises(IllegalTransition) as exc:
        validate_transition(S.ARCHIVED, S.PUBLISHED)
    assert exc.value.message == "cannot publish an article that is archived"


def test_terminal_statuses():
    assert is_terminal(S.ARCHIVED)
    assert is_terminal(S.PUBLISHED)
    assert not is_terminal(S.SCHEDULED)


def test_display_name():
    assert display_name("changes_requested") == "changes requested"


def test_graph_closure_through_the_executor(executor, make_item, store):
    """No role, not even admin, can take a pair that is not an edge."""
    non_edges = [(a, b) for a, b in itertools.product(STATES, STATES) if (a, b) not in EXPECTED_EDGES]
    assert non_edges

    for src, dst in non_edges:
        item = make_item(src)
        for role in roles.ROLES:
            actor = Actor(id=f"u-{role}", name=role, role=role)
            with pytest.raises(IllegalTransition):
                executor.transition(item.id, dst, actor)
        assert store.history_for(item.id) == []
        assert store.get_item(item.id).status is src
