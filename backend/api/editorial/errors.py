from __future__ import annotations


class WorkflowError(Exception):
    """Base for every failure the workflow engine reports to its callers.

    `message` is safe to show in a UI; `kind` is a stable machine-readable tag.
    """

    kind = "workflow_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(WorkflowError):
    kind = "not_found"


class IllegalTransition(WorkflowError):
    kind = "illegal_transition"


class Forbidden(WorkflowError):
    kind = "forbidden"


class InvalidArgument(WorkflowError):
    kind = "invalid_argument"


class Conflict(WorkflowError):
    kind = "conflict"


class LedgerWriteFailed(WorkflowError):
    kind = "ledger_write_failed"


class LedgerInconsistency(WorkflowError):
    kind = "ledger_inconsistency"


class ReconcileQueryFailed(WorkflowError):
    kind = "reconcile_query_failed"


class StaleStatus(Exception):
    """Raised by a store when the compare-and-swap on status matched no row.

    Internal to the executor; callers see `Conflict` instead.
    """

    def __init__(self, item_id: str, expected: str) -> None:
        super().__init__(f"{item_id} no longer has status {expected}")
        self.item_id = item_id
        self.expected = expected
