from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from editorial.workflow import WorkflowStatus


class ArticleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    status: WorkflowStatus
    author_id: Optional[str] = None
    editor_id: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[str] = None
    published_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    review_requested_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TransitionIn(BaseModel):
    article_id: str = Field(..., min_length=1)
    to_status: WorkflowStatus
    reason: Optional[str] = Field(None, max_length=2000)
    feedback: Optional[str] = Field(None, max_length=8000)
    published_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None


class RequestChangesIn(BaseModel):
    article_id: str = Field(..., min_length=1)
    changes_requested: str = Field(..., min_length=1, max_length=8000)
    reason: Optional[str] = Field(None, max_length=2000)


class AssignIn(BaseModel):
    article_id: str = Field(..., min_length=1)
    assigned_to_user_id: str = Field(..., min_length=1)


class TransitionOut(BaseModel):
    success: bool
    message: str
    article: Optional[ArticleOut] = None


class AssignOut(BaseModel):
    success: bool
    message: str


class TransitionRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    article_id: str
    from_status: WorkflowStatus
    to_status: WorkflowStatus
    user_id: str
    user_name: str
    user_role: str
    reason: Optional[str] = None
    feedback: Optional[str] = None
    created_at: datetime


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ArticleListOut(BaseModel):
    items: List[ArticleOut]
    pagination: PaginationOut
    total: int


class AvailableTransitionsOut(BaseModel):
    status: WorkflowStatus
    role: str
    allowed: List[WorkflowStatus]


class WorkflowStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status_counts: Dict[str, int]
    pending_review: int
    approved_waiting: int
    scheduled_waiting: int
    published_today: int
    rejection_rate: float
    average_approval_hours: float
    transitions_by_status: Dict[str, int]
    transitions_by_actor: Dict[str, int]


class ScheduledRunOut(BaseModel):
    published: int
    errors: List[str]
    skipped: int = 0
