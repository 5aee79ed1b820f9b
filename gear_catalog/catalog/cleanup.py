"""
Cleanup - Remove embeddings from every master component.

Walks the collection in id-ordered pages and commits one batch per page,
so the write count per batch never exceeds the page size.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from gear_catalog.catalog.models import OperationResult
from gear_catalog.config import CLEANUP_PAGE_SIZE, MASTER_COMPONENTS_COLLECTION
from gear_catalog.store import DELETE_SENTINEL, DocumentStore, get_store

logger = logging.getLogger(__name__)

# Pause between pages to stay under Firestore write rate limits
PAGE_DELAY_SECS = 0.05


def remove_all_embeddings(
    store: Optional[DocumentStore] = None,
    dry_run: bool = False,
    page_size: int = CLEANUP_PAGE_SIZE,
    delay_secs: float = PAGE_DELAY_SECS,
) -> OperationResult:
    """Delete the embedding field from every master component that has one."""
    store = store or get_store()
    scanned = 0
    updated = 0
    last_id: Optional[str] = None

    try:
        while True:
            page = store.page_collection(
                MASTER_COMPONENTS_COLLECTION, page_size, start_after=last_id
            )
            if not page:
                break

            batch = store.batch()
            for doc in page:
                if "embedding" in doc.data:
                    batch.update(doc.path, {"embedding": DELETE_SENTINEL})

            if len(batch):
                if not dry_run:
                    batch.commit()
                updated += len(batch)

            scanned += len(page)
            last_id = page[-1].id
            logger.debug("Cleanup page done: scanned=%d updated=%d", scanned, updated)

            if len(page) < page_size:
                break
            if delay_secs:
                time.sleep(delay_secs)
    except Exception as e:
        logger.exception("Error removing embeddings")
        return OperationResult.fail(
            str(e) or "An unexpected error occurred during the cleanup process.",
            scanned=scanned,
            updated=updated,
        )

    verb = "would remove" if dry_run else "removed"
    return OperationResult.ok(
        f"Operation complete. Scanned {scanned} documents and {verb} embeddings from {updated}.",
        scanned=scanned,
        updated=updated,
        dry_run=dry_run,
    )
