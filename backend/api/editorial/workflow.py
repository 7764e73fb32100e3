from __future__ import annotations

from enum import Enum

from editorial.errors import IllegalTransition, InvalidArgument


class WorkflowStatus(str, Enum):
    INGESTION_PENDING = "ingestion_pending"
    DRAFT = "draft"
    REVIEW = "review"
    CHANGES_REQUESTED = "changes_requested"
    REVISED = "revised"
    APPROVED = "approved"
    PUBLISHED = "published"
    SCHEDULED = "scheduled"
    ARCHIVED = "archived"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value


S = WorkflowStatus

STATES: list[WorkflowStatus] = list(WorkflowStatus)


def list_states() -> list[str]:
    return [s.value for s in STATES]


# The editorial graph. Archival is added below for every status so the
# table stays readable.
_TRANSITIONS: dict[WorkflowStatus, frozenset[WorkflowStatus]] = {
    S.INGESTION_PENDING: frozenset({S.DRAFT}),
    S.DRAFT: frozenset({S.REVIEW}),
    S.REVIEW: frozenset({S.APPROVED, S.CHANGES_REQUESTED, S.REJECTED}),
    S.CHANGES_REQUESTED: frozenset({S.REVISED}),
    S.REVISED: frozenset({S.REVIEW}),
    S.APPROVED: frozenset({S.PUBLISHED, S.SCHEDULED}),
    S.SCHEDULED: frozenset({S.PUBLISHED, S.APPROVED}),
    S.PUBLISHED: frozenset({S.DRAFT}),
    S.REJECTED: frozenset({S.DRAFT}),
    S.ARCHIVED: frozenset({S.DRAFT}),
}

_TRANSITIONS = {
    src: targets | {S.ARCHIVED} if src is not S.ARCHIVED else targets
    for src, targets in _TRANSITIONS.items()
}

# Edges that only a time-triggered process may take.
TIME_TRIGGERED_EDGES: frozenset[tuple[WorkflowStatus, WorkflowStatus]] = frozenset(
    {(S.SCHEDULED, S.PUBLISHED)}
)

_DISPLAY_NAMES: dict[WorkflowStatus, str] = {
    S.INGESTION_PENDING: "awaiting ingestion review",
    S.DRAFT: "draft",
    S.REVIEW: "in review",
    S.CHANGES_REQUESTED: "changes requested",
    S.REVISED: "revised",
    S.APPROVED: "approved",
    S.PUBLISHED: "published",
    S.SCHEDULED: "scheduled",
    S.ARCHIVED: "archived",
    S.REJECTED: "rejected",
}

# What the user was trying to do, for error messages ("cannot publish ...").
_ACTION_VERBS: dict[WorkflowStatus, str] = {
    S.INGESTION_PENDING: "return to ingestion",
    S.DRAFT: "move to draft",
    S.REVIEW: "send to review",
    S.CHANGES_REQUESTED: "request changes on",
    S.REVISED: "mark as revised",
    S.APPROVED: "approve",
    S.PUBLISHED: "publish",
    S.SCHEDULED: "schedule",
    S.ARCHIVED: "archive",
    S.REJECTED: "reject",
}


def parse_status(value: WorkflowStatus | str) -> WorkflowStatus:
    if isinstance(value, WorkflowStatus):
        return value
    normalized = (value or "").strip().lower()
    try:
        return WorkflowStatus(normalized)
    except ValueError:
        raise InvalidArgument(f"Unknown status: {value!r}") from None


def is_edge(from_status: WorkflowStatus | str, to_status: WorkflowStatus | str) -> bool:
    src = parse_status(from_status)
    dst = parse_status(to_status)
    return dst in _TRANSITIONS.get(src, frozenset())


def allowed_targets(from_status: WorkflowStatus | str) -> list[WorkflowStatus]:
    """Next statuses reachable from `from_status`, in enum order."""
    src = parse_status(from_status)
    targets = _TRANSITIONS.get(src, frozenset())
    return [s for s in STATES if s in targets]


def edges() -> list[tuple[WorkflowStatus, WorkflowStatus]]:
    return [(src, dst) for src in STATES for dst in allowed_targets(src)]


def is_time_triggered(from_status: WorkflowStatus, to_status: WorkflowStatus) -> bool:
    return (from_status, to_status) in TIME_TRIGGERED_EDGES


def is_terminal(status: WorkflowStatus | str) -> bool:
    """Archived and published items expect no further routine transitions."""
    return parse_status(status) in (S.ARCHIVED, S.PUBLISHED)


def display_name(status: WorkflowStatus | str) -> str:
    s = parse_status(status)
    return _DISPLAY_NAMES.get(s, s.value)


def action_verb(status: WorkflowStatus | str) -> str:
    s = parse_status(status)
    return _ACTION_VERBS.get(s, f"move to {s.value}")


def validate_transition(from_status: WorkflowStatus | str, to_status: WorkflowStatus | str) -> None:
    """
    Raises IllegalTransition if there is no edge from `from_status` to `to_status`.
    """
    src = parse_status(from_status)
    dst = parse_status(to_status)

    if not is_edge(src, dst):
        raise IllegalTransition(f"cannot {action_verb(dst)} an article that is {display_name(src)}")
