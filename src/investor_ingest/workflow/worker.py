"""Run handoff: create the run record, queue it, execute it in the background.

:func:`start_ingestion` is the only way a run is created. It refuses to
start a second run while one is still ``running`` for the same investor,
so the pipeline itself never has to lock.
"""

from __future__ import annotations

import logging
import queue
import threading

from investor_ingest.config import settings
from investor_ingest.errors import NotFoundError, RunInProgressError
from investor_ingest.models import IngestionRun, StepState
from investor_ingest.stores.base import Stores
from investor_ingest.workflow.graph import IngestionWorkflow
from investor_ingest.workflow.state import WorkflowContext

logger = logging.getLogger(__name__)


class IngestionQueue:
    """FIFO of runs waiting for a worker."""

    def __init__(self) -> None:
        self._queue: queue.Queue[WorkflowContext | None] = queue.Queue()

    def put(self, ctx: WorkflowContext) -> None:
        self._queue.put(ctx)

    def get(self, timeout: float | None = None) -> WorkflowContext | None:
        """Next run, or ``None`` when the queue is being shut down."""
        return self._queue.get(timeout=timeout)

    def task_done(self) -> None:
        self._queue.task_done()

    def join(self) -> None:
        """Block until every queued run has been processed."""
        self._queue.join()

    def close(self, workers: int = 1) -> None:
        """Wake *workers* idle workers so they exit."""
        for _ in range(workers):
            self._queue.put(None)

    def __len__(self) -> int:
        return self._queue.qsize()


_handoff_lock = threading.Lock()


def start_ingestion(stores: Stores, ingestion_queue: IngestionQueue, *, investor_id: str, user_id: str) -> str:
    """Create a run for *investor_id*, enqueue it, and return its id.

    Raises
    ------
    NotFoundError
        The investor does not exist or belongs to another user.
    RunInProgressError
        A run is already ``running`` for the investor.
    """
    with _handoff_lock:
        profile = stores.profiles.get_profile(investor_id)
        if profile is None or profile.user_id != user_id:
            raise NotFoundError("Investor", investor_id)

        latest = stores.runs.latest_run_for_investor(investor_id)
        if latest is not None and latest.status == "running":
            raise RunInProgressError(investor_id, latest.id)

        stores.profiles.update_profile(investor_id, status="processing")
        run = stores.runs.create_run(
            IngestionRun(investor_id=investor_id, user_id=user_id, step_state=StepState())
        )

    ingestion_queue.put(WorkflowContext(run_id=run.id, investor_id=investor_id, user_id=user_id))
    logger.info("Queued ingestion run %s for investor %s", run.id, investor_id)
    return run.id


class IngestionWorker(threading.Thread):
    """Daemon thread that executes queued runs one at a time.

    Failures are already persisted on the run by the workflow; the worker
    only logs them and moves on to the next run.
    """

    def __init__(self, workflow: IngestionWorkflow, ingestion_queue: IngestionQueue, *, name: str | None = None) -> None:
        super().__init__(name=name or "ingestion-worker", daemon=True)
        self.workflow = workflow
        self.queue = ingestion_queue

    def run(self) -> None:
        while True:
            ctx = self.queue.get()
            try:
                if ctx is None:
                    return
                self.process(ctx)
            finally:
                self.queue.task_done()

    def process(self, ctx: WorkflowContext) -> bool:
        """Run one workflow; return whether it succeeded."""
        try:
            self.workflow.run(ctx)
        except Exception:
            logger.error("Run %s for investor %s failed", ctx.run_id, ctx.investor_id)
            return False
        return True


def start_workers(workflow: IngestionWorkflow, ingestion_queue: IngestionQueue, count: int | None = None) -> list[IngestionWorker]:
    """Start *count* worker threads on *ingestion_queue*."""
    count = count or settings.worker_count
    workers = [IngestionWorker(workflow, ingestion_queue, name=f"ingestion-worker-{i}") for i in range(count)]
    for worker in workers:
        worker.start()
    return workers


def main() -> None:
    """Serve the HTTP surface with in-process workers."""
    import uvicorn

    from investor_ingest.serving.app import create_app

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(), host="0.0.0.0", port=8080)


if __name__ == "__main__":
    main()
