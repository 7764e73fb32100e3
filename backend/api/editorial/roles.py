"""Role-based authorization for workflow transitions.

Everything here is pure: no I/O, no clock. The executor consults
`is_allowed` exactly once per attempt, after the edge check.
"""

from __future__ import annotations

from editorial.workflow import STATES, WorkflowStatus, allowed_targets, is_edge, is_time_triggered, parse_status

S = WorkflowStatus

ADMIN = "admin"
SUPER_ADMIN = "super_admin"
CHIEF_EDITOR = "chief_editor"
EDITOR = "editor"
REVIEWER = "reviewer"
SYSTEM_SCHEDULER = "system-scheduler"

ROLES: tuple[str, ...] = (SUPER_ADMIN, ADMIN, CHIEF_EDITOR, EDITOR, REVIEWER, SYSTEM_SCHEDULER)

SUPER_ROLES: frozenset[str] = frozenset({ADMIN, SUPER_ADMIN})
AUTHORING_ROLES: frozenset[str] = frozenset({EDITOR, CHIEF_EDITOR})
REVIEW_CAPABLE: frozenset[str] = frozenset({REVIEWER, CHIEF_EDITOR, ADMIN, SUPER_ADMIN})
PUBLISH_CAPABLE: frozenset[str] = frozenset({CHIEF_EDITOR, ADMIN, SUPER_ADMIN})
ASSIGNMENT_CAPABLE: frozenset[str] = frozenset({CHIEF_EDITOR, ADMIN, SUPER_ADMIN})
ADMIN_ONLY: frozenset[str] = frozenset({ADMIN, SUPER_ADMIN})

# Who may move an item *into* a status.
_TARGET_ROLES: dict[WorkflowStatus, frozenset[str]] = {
    S.DRAFT: AUTHORING_ROLES,
    S.REVIEW: AUTHORING_ROLES,
    S.CHANGES_REQUESTED: REVIEW_CAPABLE,
    S.REVISED: AUTHORING_ROLES,
    S.APPROVED: frozenset({REVIEWER, CHIEF_EDITOR}),
    S.REJECTED: frozenset({REVIEWER, CHIEF_EDITOR}),
    S.PUBLISHED: PUBLISH_CAPABLE,
    S.SCHEDULED: PUBLISH_CAPABLE,
    S.ARCHIVED: ADMIN_ONLY,
}

# Edges whose permission differs from their target's.
_EDGE_ROLES: dict[tuple[WorkflowStatus, WorkflowStatus], frozenset[str]] = {
    (S.PUBLISHED, S.DRAFT): PUBLISH_CAPABLE,
    (S.ARCHIVED, S.DRAFT): ADMIN_ONLY,
    (S.SCHEDULED, S.APPROVED): PUBLISH_CAPABLE,
    (S.SCHEDULED, S.PUBLISHED): frozenset({SYSTEM_SCHEDULER}),
}


def _normalize_role(role: str | None) -> str:
    return (role or "").strip().lower()


def is_super(role: str | None) -> bool:
    return _normalize_role(role) in SUPER_ROLES


def roles_for_edge(from_status: WorkflowStatus | str, to_status: WorkflowStatus | str) -> frozenset[str]:
    """Role set named for an edge, before the super-role bypass."""
    src = parse_status(from_status)
    dst = parse_status(to_status)
    if (src, dst) in _EDGE_ROLES:
        return _EDGE_ROLES[(src, dst)]
    return _TARGET_ROLES.get(dst, frozenset())


def is_allowed(role: str | None, from_status: WorkflowStatus | str, to_status: WorkflowStatus | str) -> bool:
    src = parse_status(from_status)
    dst = parse_status(to_status)
    if not is_edge(src, dst):
        return False

    r = _normalize_role(role)
    permitted = roles_for_edge(src, dst)

    # Time-triggered edges belong to the scheduler alone.
    if is_time_triggered(src, dst):
        return r in permitted

    # The scheduler identity holds no other edge, whatever the tables say.
    if r == SYSTEM_SCHEDULER:
        return False

    if r in SUPER_ROLES:
        return True
    return r in permitted


def available_transitions(current_status: WorkflowStatus | str, role: str | None) -> list[WorkflowStatus]:
    src = parse_status(current_status)
    return [dst for dst in allowed_targets(src) if is_allowed(role, src, dst)]


def can_assign(role: str | None) -> bool:
    return _normalize_role(role) in ASSIGNMENT_CAPABLE


def statuses_for_role(role: str | None) -> list[WorkflowStatus]:
    """Statuses a role works with on its listing screens."""
    r = _normalize_role(role)
    if r in SUPER_ROLES or r == CHIEF_EDITOR:
        return list(STATES)
    if r == REVIEWER:
        return [S.REVIEW, S.CHANGES_REQUESTED, S.REVISED, S.APPROVED]
    if r == EDITOR:
        return [S.INGESTION_PENDING, S.DRAFT, S.REVIEW, S.CHANGES_REQUESTED, S.REVISED, S.REJECTED]
    return [S.PUBLISHED]


def permission_matrix() -> dict[tuple[WorkflowStatus, WorkflowStatus], frozenset[str]]:
    """Every edge mapped to the roles that can take it (super bypass applied)."""
    matrix: dict[tuple[WorkflowStatus, WorkflowStatus], frozenset[str]] = {}
    for src in STATES:
        for dst in allowed_targets(src):
            matrix[(src, dst)] = frozenset(r for r in ROLES if is_allowed(r, src, dst))
    return matrix
