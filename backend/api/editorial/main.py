from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional
from uuid import uuid4

import structlog
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from editorial import roles
from editorial.clock import SystemClock
from editorial.config import load_settings
from editorial.db import build_engine, db_ping
from editorial.errors import InvalidArgument
from editorial.logging_config import configure_logging, request_context
from editorial.models import Actor, TransitionOptions
from editorial.notifications import NotificationDispatcher, build_sender
from editorial.reconciler import PeriodicReconciler
from editorial.repo import SqlWorkflowStore
from editorial.schemas import (
    ArticleListOut,
    ArticleOut,
    AssignIn,
    AssignOut,
    AvailableTransitionsOut,
    PaginationOut,
    RequestChangesIn,
    ScheduledRunOut,
    TransitionIn,
    TransitionOut,
    TransitionRecordOut,
    WorkflowStatsOut,
)
from editorial.service import WorkflowService
from editorial.workflow import WorkflowStatus, list_states, parse_status

logger = structlog.get_logger(__name__)

# error kind -> HTTP status
_STATUS_BY_KIND = {
    "not_found": 404,
    "illegal_transition": 400,
    "forbidden": 403,
    "invalid_argument": 422,
    "conflict": 409,
    "ledger_write_failed": 500,
    "unavailable": 503,
}


@asynccontextmanager
async def _lifespan(app: FastAPI):
    if getattr(app.state, "service", None) is not None:
        # injected by create_app(service=...)
        yield
        return

    settings = load_settings()
    configure_logging(settings.log_level, settings.log_json, service_name="editorial-api")

    engine = build_engine(settings)
    dispatcher = NotificationDispatcher(
        build_sender(settings.notify_webhook_url, settings.notify_timeout_seconds),
        max_workers=settings.notify_max_workers,
    )
    service = WorkflowService(
        SqlWorkflowStore(engine),
        SystemClock(),
        dispatcher,
        batch_size=settings.scheduler_batch_size,
    )
    app.state.engine = engine
    app.state.service = service

    periodic: Optional[PeriodicReconciler] = None
    if settings.scheduler_in_process:
        periodic = PeriodicReconciler(service.reconciler, settings.scheduler_interval_seconds)
        periodic.start()

    logger.info("api.started", scheduler_in_process=settings.scheduler_in_process)
    try:
        yield
    finally:
        if periodic is not None:
            periodic.stop(timeout=settings.scheduler_interval_seconds)
        dispatcher.shutdown(wait=False)
        engine.dispose()
        app.state.service = None
        logger.info("api.stopped")


def get_service(request: Request) -> WorkflowService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="service not ready")
    return service


def get_actor(
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
    x_actor_name: str | None = Header(default=None, alias="X-Actor-Name"),
    x_actor_role: str | None = Header(default=None, alias="X-Actor-Role"),
) -> Actor:
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="actor headers are required")
    return Actor(id=x_actor_id, name=x_actor_name or x_actor_id, role=x_actor_role.strip().lower())


def _raise_for(error: str | None, message: str) -> None:
    raise HTTPException(status_code=_STATUS_BY_KIND.get(error or "", 400), detail=message)


def create_app(service: Optional[WorkflowService] = None) -> FastAPI:
    app = FastAPI(title="Editorial Workflow API", version="1.0.0", lifespan=_lifespan)
    app.state.service = service

    @app.middleware("http")
    async def bind_request_logging(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        with request_context(
            request_id,
            actor_id=request.headers.get("X-Actor-Id"),
            actor_role=request.headers.get("X-Actor-Role"),
            path=request.url.path,
        ):
            response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    # -----------------------------
    # Health checks
    # -----------------------------
    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/readyz")
    def readyz(svc: WorkflowService = Depends(get_service)):
        try:
            db_ping(svc.store.engine)
        except SQLAlchemyError as e:
            logger.warning("api.readyz.db_unavailable", error=str(e))
            raise HTTPException(status_code=_STATUS_BY_KIND["unavailable"], detail="database unavailable")
        return {"status": "ready", "db": "ok"}

    # -----------------------------
    # Workflow reference data
    # -----------------------------
    @app.get("/workflow/states")
    def workflow_states():
        return {"states": list_states()}

    @app.get("/workflow/transitions", response_model=AvailableTransitionsOut)
    def workflow_transitions(
        status: str = Query(...),
        role: str = Query(...),
        svc: WorkflowService = Depends(get_service),
    ):
        try:
            current = parse_status(status)
        except InvalidArgument as e:
            raise HTTPException(status_code=422, detail=e.message)
        return {"status": current, "role": role, "allowed": svc.get_available_transitions(current, role)}

    # -----------------------------
    # Commands
    # -----------------------------
    @app.post("/workflow/transition", response_model=TransitionOut)
    def transition(
        body: TransitionIn,
        actor: Actor = Depends(get_actor),
        svc: WorkflowService = Depends(get_service),
    ):
        result = svc.transition_status(
            body.article_id,
            body.to_status,
            actor.id,
            actor.name,
            actor.role,
            TransitionOptions(
                reason=body.reason,
                feedback=body.feedback,
                published_at=body.published_at,
                scheduled_for=body.scheduled_for,
            ),
        )
        if not result.success:
            _raise_for(result.error, result.message)
        return {"success": True, "message": result.message, "article": result.item}

    @app.post("/workflow/request-changes", response_model=TransitionOut)
    def request_changes(
        body: RequestChangesIn,
        actor: Actor = Depends(get_actor),
        svc: WorkflowService = Depends(get_service),
    ):
        result = svc.request_changes(
            body.article_id,
            body.changes_requested,
            actor.id,
            actor.name,
            actor.role,
            reason=body.reason,
        )
        if not result.success:
            _raise_for(result.error, result.message)
        return {"success": True, "message": result.message, "article": result.item}

    @app.post("/workflow/assign", response_model=AssignOut)
    def assign(
        body: AssignIn,
        actor: Actor = Depends(get_actor),
        svc: WorkflowService = Depends(get_service),
    ):
        result = svc.assign_article(body.article_id, body.assigned_to_user_id, actor.id, actor.name, actor.role)
        if not result.success:
            _raise_for(result.error, result.message)
        return {"success": True, "message": result.message}

    @app.post("/workflow/scheduled/process", response_model=ScheduledRunOut)
    def process_scheduled(
        actor: Actor = Depends(get_actor),
        svc: WorkflowService = Depends(get_service),
    ):
        if not roles.is_super(actor.role):
            raise HTTPException(status_code=403, detail="only administrators can run the scheduler by hand")
        return svc.process_scheduled_publications(include_skipped=True)

    # -----------------------------
    # Queries
    # -----------------------------
    @app.get("/workflow/articles", response_model=ArticleListOut)
    def articles(
        status: str = Query("all"),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1),
        user_id: str | None = Query(None),
        assigned_to: str | None = Query(None),
        actor: Actor = Depends(get_actor),
        svc: WorkflowService = Depends(get_service),
    ):
        statuses: list[WorkflowStatus] | None = None
        if status and status.strip().lower() != "all":
            try:
                statuses = [parse_status(s) for s in status.split(",") if s.strip()]
            except InvalidArgument as e:
                raise HTTPException(status_code=422, detail=e.message)

        # plain editors only see their own articles
        if actor.role == roles.EDITOR:
            user_id = actor.id

        try:
            result = svc.get_articles_by_status(
                statuses, page=page, limit=limit, user_id=user_id, assigned_to=assigned_to, role=actor.role
            )
        except InvalidArgument as e:
            raise HTTPException(status_code=422, detail=e.message)
        return {
            "items": result.items,
            "pagination": PaginationOut(
                page=result.page, limit=result.limit, total=result.total, total_pages=result.total_pages
            ),
            "total": result.total,
        }

    @app.get("/workflow/articles/{article_id}", response_model=ArticleOut)
    def article(article_id: str, svc: WorkflowService = Depends(get_service)):
        item = svc.get_article(article_id)
        if item is None:
            raise HTTPException(status_code=404, detail="article not found")
        return item

    @app.get("/workflow/articles/{article_id}/history", response_model=list[TransitionRecordOut])
    def article_history(article_id: str, svc: WorkflowService = Depends(get_service)):
        if svc.get_article(article_id) is None:
            raise HTTPException(status_code=404, detail="article not found")
        return svc.get_workflow_history(article_id)

    @app.get("/workflow/stats", response_model=WorkflowStatsOut)
    def stats(svc: WorkflowService = Depends(get_service)):
        return svc.get_workflow_stats()

    return app


app = create_app()
