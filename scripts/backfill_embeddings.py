#!/usr/bin/env python3
"""Script to backfill article embeddings.

Enumerates documents (only those lacking an embedding unless ``--all``),
embeds each body with the configured provider, and stores the vector. Runs
strictly sequentially. A failure on one document is logged and the run moves
on; nothing is retried or rolled back.
"""

import argparse
import asyncio
import sys
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from search_libs.common.config import BackfillConfig
from search_libs.common.logging import configure_logging
from search_libs.common.metrics import MetricsCollector, get_metrics_collector
from search_libs.document_store.base import DocumentStore, DocumentStoreError
from search_libs.document_store.factory import create_document_store
from search_libs.embeddings.base import EmbeddingProvider, EmbeddingProviderError
from search_libs.embeddings.openai_provider import create_embedding_provider

logger = structlog.get_logger("backfill_embeddings")


@dataclass
class BackfillReport:
    total: int = 0
    updated: int = 0
    failed_ids: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_ids


async def backfill_embeddings(
    document_store: DocumentStore,
    embedding_provider: EmbeddingProvider,
    overwrite: bool = False,
    metrics_collector: Optional[MetricsCollector] = None
) -> BackfillReport:
    """Populate embeddings for stored documents.

    Enumeration failures propagate; per-document failures are recorded in the
    returned report.
    """
    documents = await document_store.list_documents(missing_embedding_only=not overwrite)
    report = BackfillReport(total=len(documents))

    logger.info("Found documents to embed", count=report.total, overwrite=overwrite)

    for document in documents:
        logger.info("Processing document", document_id=document.id, title=document.title)
        try:
            vector = await embedding_provider.embed(document.body or "")
            await document_store.update_embedding(document.id, vector)
        except (EmbeddingProviderError, DocumentStoreError, ValueError) as e:
            report.failed_ids.append(document.id)
            if metrics_collector:
                metrics_collector.record_backfill_item("failed")
            logger.error(
                "Failed to update embedding",
                document_id=document.id,
                title=document.title,
                error=str(e)
            )
            continue

        report.updated += 1
        if metrics_collector:
            metrics_collector.record_backfill_item("updated")
        logger.info("Updated embedding", document_id=document.id)

    logger.info(
        "Backfill completed",
        total=report.total,
        updated=report.updated,
        failed=len(report.failed_ids)
    )
    return report


async def run_backfill(config: BackfillConfig, overwrite: bool) -> BackfillReport:
    """Build the store and provider from config, run, and release them."""
    metrics_collector = get_metrics_collector("backfill")
    document_store = create_document_store(config)
    embedding_provider = create_embedding_provider(config, metrics_collector)
    try:
        return await backfill_embeddings(
            document_store,
            embedding_provider,
            overwrite=overwrite,
            metrics_collector=metrics_collector
        )
    finally:
        await document_store.close()
        await embedding_provider.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main function for CLI."""
    parser = argparse.ArgumentParser(description="Backfill article embeddings")
    parser.add_argument(
        "--all",
        action="store_true",
        help="Re-embed every document, overwriting existing embeddings"
    )
    args = parser.parse_args(argv)

    config = BackfillConfig()
    configure_logging("backfill_embeddings", config.hs_log_level, config.hs_log_format)

    overwrite = args.all or config.hs_backfill_overwrite

    try:
        report = asyncio.run(run_backfill(config, overwrite))
    except DocumentStoreError as e:
        logger.error("Failed to enumerate documents", error=str(e))
        print(f"Backfill aborted: {e}")
        return 1

    if report.succeeded:
        print(f"Updated embeddings for {report.updated} documents")
        return 0

    print(
        f"Updated {report.updated} of {report.total} documents; "
        f"{len(report.failed_ids)} failed"
    )
    return 1


if __name__ == "__main__":
    sys.exit(main())
