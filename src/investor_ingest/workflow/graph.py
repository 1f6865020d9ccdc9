"""LangGraph graph definition: the investor ingestion workflow.

This module wires the steps of :class:`IngestionSteps` into a compiled,
strictly linear :class:`StateGraph`::

      load → mark-processing → extract-urls → extract-pdfs → mark-ready
           → chunk → extract-profile → embed → finalize → [ END ]

Every node is wrapped with a checkpoint: the run's ``stepState`` is
persisted before the step starts and again once it succeeds. The first
exception escaping a step aborts the graph; :class:`IngestionWorkflow`
then marks the run and the investor as failed and re-raises.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from langgraph.graph import END, StateGraph

from investor_ingest.errors import IngestionError, WorkflowError
from investor_ingest.ingestion.embedder import EmbeddingGenerator
from investor_ingest.models import utcnow
from investor_ingest.stores.base import Stores
from investor_ingest.workflow.state import (
    FAILED_STEP,
    STEP_ORDER,
    IngestionState,
    WorkflowContext,
    create_initial_state,
)
from investor_ingest.workflow.steps import IngestionSteps

logger = logging.getLogger(__name__)

StepFn = Callable[[WorkflowContext], None]


def _context(state: IngestionState) -> WorkflowContext:
    return WorkflowContext(
        run_id=state["run_id"],
        investor_id=state["investor_id"],
        user_id=state["user_id"],
    )


def _checkpointed(name: str, step: StepFn, steps: IngestionSteps) -> Callable[[IngestionState], dict[str, Any]]:
    """Wrap *step* as a graph node that persists progress around it."""

    def node(state: IngestionState) -> dict[str, Any]:
        ctx = _context(state)
        completed = list(state["completed_steps"])
        steps.save_progress(ctx, current_step=name, completed_steps=completed)
        logger.info("[%s] step %s", ctx.run_id, name)

        try:
            step(ctx)
        except IngestionError:
            raise
        except Exception as exc:
            raise WorkflowError(str(exc) or type(exc).__name__, step=name) from exc

        # finalize writes the terminal step state together with the run status.
        if name != STEP_ORDER[-1]:
            steps.save_progress(ctx, current_step=name, completed_steps=completed + [name])
        return {"completed_steps": [name]}

    return node


def build_ingestion_graph(steps: IngestionSteps):
    """Construct and return the compiled ingestion graph.

    Parameters
    ----------
    steps:
        The step implementations, already bound to their stores.

    Returns
    -------
    CompiledGraph
        A compiled LangGraph workflow ready for ``.invoke()``.
    """
    step_fns: dict[str, StepFn] = {
        "load": steps.load,
        "mark-processing": steps.mark_processing,
        "extract-urls": steps.extract_urls,
        "extract-pdfs": steps.extract_pdfs,
        "mark-ready": steps.mark_ready,
        "chunk": steps.chunk,
        "extract-profile": steps.extract_profile,
        "embed": steps.embed,
        "finalize": steps.finalize,
    }

    workflow = StateGraph(IngestionState)

    # -- Nodes ---------------------------------------------------------------
    for name in STEP_ORDER:
        workflow.add_node(name, _checkpointed(name, step_fns[name], steps))

    # -- Edges ---------------------------------------------------------------
    workflow.set_entry_point(STEP_ORDER[0])
    for current, following in zip(STEP_ORDER, STEP_ORDER[1:]):
        workflow.add_edge(current, following)
    workflow.add_edge(STEP_ORDER[-1], END)

    return workflow.compile()


class IngestionWorkflow:
    """Runs the ingestion graph for one investor and handles fatal failures.

    Parameters
    ----------
    stores:
        Document, run, chunk and profile stores.
    steps:
        Pre-built step implementations. When omitted they are built from
        *stores* and the remaining keyword arguments.
    """

    def __init__(
        self,
        stores: Stores,
        *,
        steps: IngestionSteps | None = None,
        embedder: EmbeddingGenerator | None = None,
        **step_options: Any,
    ) -> None:
        self.stores = stores
        self.steps = steps or IngestionSteps(stores, embedder=embedder, **step_options)
        self.graph = build_ingestion_graph(self.steps)

    def run(self, ctx: WorkflowContext) -> None:
        """Execute every step in order; raise on the first fatal error."""
        logger.info("Starting ingestion run %s for investor %s", ctx.run_id, ctx.investor_id)
        try:
            self.graph.invoke(create_initial_state(ctx))
        except Exception as exc:
            logger.exception("Ingestion run %s failed", ctx.run_id)
            self._mark_failed(ctx, exc)
            raise
        logger.info("Ingestion run %s succeeded", ctx.run_id)

    def _mark_failed(self, ctx: WorkflowContext, exc: BaseException) -> None:
        run = self.stores.runs.get_run(ctx.run_id)
        if run is not None and not run.is_terminal:
            self.stores.runs.finish_run(
                ctx.run_id,
                "failed",
                error=str(exc),
                step_state=run.step_state.model_copy(
                    update={"current_step": FAILED_STEP, "last_updated": utcnow()}
                ),
            )
        if self.stores.profiles.get_profile(ctx.investor_id) is not None:
            self.stores.profiles.update_profile(ctx.investor_id, status="failed")
