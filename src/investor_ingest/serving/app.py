"""FastAPI application exposing the ingestion trigger and run status."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status

from investor_ingest.errors import NotFoundError, RunInProgressError
from investor_ingest.models import WireModel
from investor_ingest.stores.base import Stores
from investor_ingest.stores.memory import in_memory_stores
from investor_ingest.workflow.graph import IngestionWorkflow
from investor_ingest.workflow.worker import IngestionQueue, start_ingestion, start_workers

logger = logging.getLogger(__name__)


# ── Request / Response schemas ────────────────────────────────────────
class StartIngestionRequest(WireModel):
    """Trigger payload: ``{"investorId": ..., "userId": ...}``."""

    investor_id: str
    user_id: str


class StartIngestionResponse(WireModel):
    run_id: str


# ── Dependencies ──────────────────────────────────────────────────────
def get_stores(request: Request) -> Stores:
    return request.app.state.stores


def get_queue(request: Request) -> IngestionQueue:
    return request.app.state.queue


def create_app(
    stores: Stores | None = None,
    *,
    workflow: IngestionWorkflow | None = None,
    run_workers: bool = True,
    worker_count: int | None = None,
) -> FastAPI:
    """Build the API around *stores*.

    Parameters
    ----------
    stores:
        Backing stores; a fresh in-memory set when omitted.
    workflow:
        Workflow executed by the background workers.
    run_workers:
        Start worker threads on startup. Tests disable this and drain the
        queue themselves.
    """
    stores = stores or in_memory_stores()
    ingestion_queue = IngestionQueue()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        workers = []
        if run_workers:
            workers = start_workers(workflow or IngestionWorkflow(stores), ingestion_queue, worker_count)
            logger.info("Started %d ingestion workers", len(workers))
        yield
        if workers:
            ingestion_queue.close(len(workers))
            logger.info("Stopping ingestion workers")

    app = FastAPI(
        title="Investor Ingest API",
        version="0.1.0",
        description="Trigger and monitor investor document ingestion runs.",
        lifespan=lifespan,
    )
    app.state.stores = stores
    app.state.queue = ingestion_queue

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.post("/ingestions", status_code=status.HTTP_202_ACCEPTED)
    def trigger_ingestion(
        payload: StartIngestionRequest,
        stores: Annotated[Stores, Depends(get_stores)],
        ingestion_queue: Annotated[IngestionQueue, Depends(get_queue)],
    ) -> dict[str, Any]:
        """Queue an ingestion run for the investor."""
        try:
            run_id = start_ingestion(
                stores, ingestion_queue, investor_id=payload.investor_id, user_id=payload.user_id
            )
        except NotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        except RunInProgressError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return StartIngestionResponse(run_id=run_id).to_wire()

    @app.get("/ingestions/{run_id}")
    def get_ingestion(
        run_id: str,
        user_id: Annotated[str, Query(alias="userId")],
        stores: Annotated[Stores, Depends(get_stores)],
    ) -> dict[str, Any]:
        """Current state of a run owned by *user_id*."""
        run = stores.runs.get_run(run_id)
        if run is None or run.user_id != user_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Ingestion run not found: {run_id}")
        return run.to_wire()

    return app
