"""Worker entrypoint: publishes scheduled articles on a fixed interval.

Owns its engine, notification dispatcher and reconciler for the life of the
process; nothing is shared through module globals.
"""

from __future__ import annotations

import signal
import threading

import structlog

from editorial.clock import SystemClock
from editorial.config import load_settings
from editorial.db import build_engine
from editorial.executor import TransitionExecutor
from editorial.logging_config import configure_logging
from editorial.notifications import NotificationDispatcher, build_sender
from editorial.reconciler import PeriodicReconciler, ScheduledPublicationReconciler
from editorial.repo import SqlWorkflowStore

logger = structlog.get_logger(__name__)


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_json, service_name="editorial-worker")

    engine = build_engine(settings)
    dispatcher = NotificationDispatcher(
        build_sender(settings.notify_webhook_url, settings.notify_timeout_seconds),
        max_workers=settings.notify_max_workers,
    )
    store = SqlWorkflowStore(engine)
    clock = SystemClock()
    executor = TransitionExecutor(store, clock, dispatcher)
    reconciler = ScheduledPublicationReconciler(store, executor, clock, batch_size=settings.scheduler_batch_size)
    periodic = PeriodicReconciler(reconciler, settings.scheduler_interval_seconds)

    stop = threading.Event()

    def _request_stop(signum, _frame) -> None:
        logger.info("worker.signal", signum=signum)
        stop.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    logger.info("worker.started", interval_seconds=settings.scheduler_interval_seconds)
    try:
        periodic.run_forever(stop)
    finally:
        dispatcher.shutdown(wait=True)
        engine.dispose()
        logger.info("worker.stopped")


if __name__ == "__main__":
    main()
