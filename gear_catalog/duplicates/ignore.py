"""
Ignore Registry - Mark a duplicate group as "not duplicates".

Markers live at ignoredDuplicates/{escapedKey} with the raw grouping key in
the "key" field (Firestore IDs cannot contain '/', sizes can). Upserts are
idempotent. There is no un-ignore.
"""

from __future__ import annotations

import logging
from typing import Optional

from gear_catalog.catalog.identity import marker_id_for_key
from gear_catalog.catalog.models import IgnoredDuplicateMarker, OperationResult
from gear_catalog.config import IGNORED_DUPLICATES_COLLECTION
from gear_catalog.store import DocumentStore, get_store

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "A group key is required to ignore duplicates."


def ignore_group(key: str, store: Optional[DocumentStore] = None) -> OperationResult:
    """Persist an ignore marker for a duplicate group key."""
    key = (key or "").strip()
    if not key:
        return OperationResult.fail(MISSING_KEY_MESSAGE)

    store = store or get_store()
    marker = IgnoredDuplicateMarker(key=key)

    try:
        store.set_doc(
            IGNORED_DUPLICATES_COLLECTION,
            marker_id_for_key(key),
            marker.to_dict(),
            merge=True,
        )
    except Exception as e:
        logger.exception("Error ignoring group %s", key)
        return OperationResult.fail(str(e) or "An unexpected error occurred.")

    logger.info("Ignoring duplicate group %s", key)
    return OperationResult.ok(f'Group "{key}" will be ignored in future scans.')
