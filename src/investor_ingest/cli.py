"""Command-line entry point.

Usage::

    investor-ingest run --name "Acme Ventures" --url https://acme.vc --pdf decks/acme.pdf
    investor-ingest serve
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from functools import partial
from typing import Any

from investor_ingest.config import settings
from investor_ingest.documents import add_pdf_document, add_url_document, create_investor
from investor_ingest.errors import IngestionError
from investor_ingest.ingestion.loader import extract_pdf_text
from investor_ingest.stores.base import Stores
from investor_ingest.stores.memory import in_memory_stores
from investor_ingest.workflow.graph import IngestionWorkflow
from investor_ingest.workflow.worker import IngestionQueue, start_ingestion

logger = logging.getLogger(__name__)

CLI_USER = "cli"


def _summary(stores: Stores, investor_id: str, run_id: str) -> dict[str, Any]:
    run = stores.runs.get_run(run_id)
    profile = stores.profiles.get_profile(investor_id)
    return {
        "run": run.to_wire() if run else None,
        "profile": (
            profile.model_dump(
                mode="json",
                by_alias=True,
                exclude={"thesis_embedding", "sectors_embedding"},
            )
            if profile
            else None
        ),
        "documents": [
            {
                "id": doc.id,
                "type": doc.type,
                "source": doc.source_ref,
                "status": doc.status,
                "error": doc.error,
            }
            for doc in stores.documents.list_documents(investor_id)
        ],
        "chunks": [
            {
                "documentId": chunk.document_id,
                "chunkIndex": chunk.chunk_index,
                "sectionType": chunk.section_type,
                "title": chunk.title,
                "chars": len(chunk.content),
                "sourceLocator": chunk.source_locator.to_wire(),
            }
            for chunk in stores.chunks.list_chunks(investor_id)
        ],
    }


def run_command(args: argparse.Namespace) -> int:
    """Ingest the given sources into in-memory stores and print the result."""
    if not args.url and not args.pdf:
        logger.error("Nothing to ingest: pass at least one --url or --pdf")
        return 2

    stores = in_memory_stores()
    investor = create_investor(
        stores, user_id=CLI_USER, name=args.name, firm=args.firm, website=args.website
    )
    try:
        for url in args.url:
            add_url_document(stores, investor_id=investor.id, user_id=CLI_USER, url=url)
        for key in args.pdf:
            add_pdf_document(stores, investor_id=investor.id, user_id=CLI_USER, storage_key=key)
    except IngestionError as exc:
        logger.error("%s", exc)
        return 2

    ingestion_queue = IngestionQueue()
    run_id = start_ingestion(stores, ingestion_queue, investor_id=investor.id, user_id=CLI_USER)
    ctx = ingestion_queue.get()
    if ctx is None:
        logger.error("Run %s was not queued", run_id)
        return 1

    workflow = IngestionWorkflow(
        stores,
        pdf_extractor=partial(extract_pdf_text, storage_dir=args.storage_dir),
    )
    exit_code = 0
    try:
        workflow.run(ctx)
    except IngestionError as exc:
        logger.error("Ingestion failed: %s", exc)
        exit_code = 1

    json.dump(_summary(stores, investor.id, run_id), sys.stdout, indent=args.indent, ensure_ascii=False)
    sys.stdout.write("\n")
    return exit_code


def serve_command(args: argparse.Namespace) -> int:
    from investor_ingest.workflow.worker import main as serve

    serve()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="investor-ingest", description="Investor document ingestion")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the pipeline once on in-memory stores")
    run.add_argument("--name", default="CLI Investor", help="Investor name")
    run.add_argument("--firm", default=None, help="Investor firm")
    run.add_argument("--website", default=None, help="Investor website")
    run.add_argument("--url", action="append", default=[], help="Web page to ingest (repeatable)")
    run.add_argument("--pdf", action="append", default=[], help="PDF storage key to ingest (repeatable)")
    run.add_argument(
        "--storage-dir",
        default=settings.pdf_storage_dir,
        help="Directory PDF storage keys are resolved against",
    )
    run.add_argument("--indent", type=int, default=2, help="JSON indentation")
    run.set_defaults(func=run_command)

    serve = sub.add_parser("serve", help="Serve the HTTP API with background workers")
    serve.set_defaults(func=serve_command)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
