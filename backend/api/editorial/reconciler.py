from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from editorial.clock import Clock
from editorial.errors import Conflict, ReconcileQueryFailed, WorkflowError
from editorial.executor import TransitionExecutor
from editorial.models import SYSTEM_ACTOR, TransitionOptions
from editorial.ports import ContentStore
from editorial.workflow import WorkflowStatus

logger = structlog.get_logger(__name__)

SCHEDULED_REASON = "scheduled publication"


@dataclass
class ReconcileReport:
    published: int = 0
    errors: list[str] = field(default_factory=list)
    skipped: int = 0

    def as_dict(self, include_skipped: bool = False) -> dict:
        result = {"published": self.published, "errors": list(self.errors)}
        if include_skipped:
            result["skipped"] = self.skipped
        return result


class ScheduledPublicationReconciler:
    """
    Publishes scheduled articles whose time has come.

    Goes through the executor as the `system-scheduler` actor, which is only
    authorized for scheduled -> published.
    """

    def __init__(self, store: ContentStore, executor: TransitionExecutor, clock: Clock, batch_size: int = 100) -> None:
        self.store = store
        self.executor = executor
        self.clock = clock
        self.batch_size = batch_size

    def run_once(self) -> ReconcileReport:
        now = self.clock.now()
        try:
            due = self.store.due_scheduled(now, self.batch_size)
        except SQLAlchemyError as e:
            raise ReconcileQueryFailed("could not load scheduled articles") from e

        report = ReconcileReport()
        for item in due:
            try:
                self.executor.transition(
                    item.id,
                    WorkflowStatus.PUBLISHED,
                    SYSTEM_ACTOR,
                    TransitionOptions(reason=SCHEDULED_REASON),
                )
            except Conflict as e:
                # Lost to a manual change; the next tick re-evaluates it.
                report.skipped += 1
                logger.info("reconciler.item.skipped", article_id=item.id, reason=e.message)
            except WorkflowError as e:
                report.errors.append(f"{item.id}: {e.message}")
                logger.warning("reconciler.item.failed", article_id=item.id, kind=e.kind, error=e.message)
            except SQLAlchemyError as e:
                # the item's transaction rolled back; the next tick retries it
                report.errors.append(f"{item.id}: storage error")
                logger.error("reconciler.item.storage_error", article_id=item.id, error=str(e))
            else:
                report.published += 1

        logger.info(
            "reconciler.run.completed",
            due=len(due),
            published=report.published,
            skipped=report.skipped,
            errors=len(report.errors),
        )
        return report


class PeriodicReconciler:
    """Runs a reconciler every `interval_seconds` until stopped."""

    def __init__(self, reconciler: ScheduledPublicationReconciler, interval_seconds: float = 60) -> None:
        self.reconciler = reconciler
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> Optional[ReconcileReport]:
        try:
            return self.reconciler.run_once()
        except ReconcileQueryFailed as e:
            logger.error("reconciler.run.failed", error=e.message, cause=str(e.__cause__))
            return None
        except SQLAlchemyError as e:
            # keep the loop alive; the next tick starts from a fresh query
            logger.error("reconciler.run.failed", error="storage error", cause=str(e))
            return None

    def run_forever(self, stop_event: Optional[threading.Event] = None) -> None:
        stop = stop_event or self._stop
        logger.info("reconciler.started", interval_seconds=self.interval_seconds)
        while not stop.is_set():
            self.tick()
            stop.wait(self.interval_seconds)
        logger.info("reconciler.stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name="scheduled-publications", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
