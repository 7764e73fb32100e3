"""Shared pytest fixtures for the workflow engine tests.

Every test gets a fresh in-memory SQLite database, a frozen clock pinned to
2026-10-18 12:00 UTC and a notification sender that just records events.
"""

from datetime import datetime, timezone
from typing import Any

import pytest

from editorial.clock import FrozenClock
from editorial.db import create_engine_for_url, create_schema
from editorial.executor import TransitionExecutor
from editorial.models import Actor
from editorial.notifications import InlineDispatcher
from editorial.repo import SqlWorkflowStore
from editorial.service import WorkflowService
from editorial.workflow import WorkflowStatus

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

EDITOR = Actor(id="u-editor", name="Edith Editor", role="editor")
REVIEWER = Actor(id="u-reviewer", name="Rui Reviewer", role="reviewer")
CHIEF = Actor(id="u-chief", name="Chris Chief", role="chief_editor")
ADMIN = Actor(id="u-admin", name="Ada Admin", role="admin")


class RecordingSender:
    def __init__(self) -> None:
        self.events: list[Any] = []

    def send(self, event: Any) -> None:
        self.events.append(event)


class FailingSender:
    def send(self, event: Any) -> None:
        raise RuntimeError("webhook down")


@pytest.fixture
def engine():
    eng = create_engine_for_url("sqlite://")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def store(engine) -> SqlWorkflowStore:
    return SqlWorkflowStore(engine)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def dispatcher(sender) -> InlineDispatcher:
    return InlineDispatcher(sender)


@pytest.fixture
def executor(store, clock, dispatcher) -> TransitionExecutor:
    return TransitionExecutor(store, clock, dispatcher)


@pytest.fixture
def service(store, clock, dispatcher) -> WorkflowService:
    return WorkflowService(store, clock, dispatcher)


@pytest.fixture
def make_item(store, clock):
    """Create an article directly in the store at a given status."""

    def _make(status: WorkflowStatus = WorkflowStatus.DRAFT, title: str = "Budget talks stall", **fields):
        fields.setdefault("author_id", EDITOR.id)
        return store.create_item(title=title, status=status, at=clock.now(), **fields)

    return _make
