from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import uuid4

from editorial.workflow import WorkflowStatus


@dataclass(frozen=True)
class ContentItem:
    id: str
    title: str
    status: WorkflowStatus
    created_at: datetime
    updated_at: datetime
    author_id: Optional[str] = None
    editor_id: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[str] = None
    published_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    review_requested_at: Optional[datetime] = None
    review_requested_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None


@dataclass(frozen=True)
class TransitionRecord:
    id: str
    article_id: str
    from_status: WorkflowStatus
    to_status: WorkflowStatus
    user_id: str
    user_name: str
    user_role: str
    created_at: datetime
    reason: Optional[str] = None
    feedback: Optional[str] = None


@dataclass(frozen=True)
class Actor:
    id: str
    name: str
    role: str


SYSTEM_ACTOR = Actor(id="system", name="Scheduler", role="system-scheduler")


@dataclass(frozen=True)
class TransitionOptions:
    reason: Optional[str] = None
    feedback: Optional[str] = None
    published_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None


@dataclass(frozen=True)
class Page:
    items: list[ContentItem]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


@dataclass(frozen=True)
class WorkflowStats:
    status_counts: dict[str, int]
    pending_review: int
    approved_waiting: int
    scheduled_waiting: int
    published_today: int
    rejection_rate: float
    average_approval_hours: float
    transitions_by_status: dict[str, int] = field(default_factory=dict)
    transitions_by_actor: dict[str, int] = field(default_factory=dict)


def new_record_id() -> str:
    return uuid4().hex
