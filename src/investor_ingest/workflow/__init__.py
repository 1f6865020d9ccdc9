"""
Workflow: the stateful ingestion pipeline built with LangGraph.

Public API
----------
- :class:`IngestionWorkflow`: runs every step for one investor.
- :func:`build_ingestion_graph`: compile the linear step graph.
- :func:`start_ingestion`: create, queue and hand off a run.
- :class:`WorkflowContext`: identifies one run.
"""

from investor_ingest.workflow.graph import IngestionWorkflow, build_ingestion_graph
from investor_ingest.workflow.state import STEP_ORDER, WorkflowContext
from investor_ingest.workflow.worker import IngestionQueue, IngestionWorker, start_ingestion

__all__ = [
    "STEP_ORDER",
    "IngestionQueue",
    "IngestionWorker",
    "IngestionWorkflow",
    "WorkflowContext",
    "build_ingestion_graph",
    "start_ingestion",
]
