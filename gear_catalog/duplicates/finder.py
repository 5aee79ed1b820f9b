"""
Duplicate Finder - Group master components that look like the same part.

Grouping key: name | brand | baseModel | size
- baseModel drops one cage/size variant suffix (-gs, -sgs, -long, -medium, -short)
- size falls back to "no-size"
- components with neither brand nor model are too generic to group
- keys present in ignoredDuplicates are skipped

Groups keep scan order and only groups with 2+ members are returned.
A store failure aborts the whole scan; partial results are never returned.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from gear_catalog.catalog.identity import grouping_key
from gear_catalog.catalog.models import DuplicateGroup, IgnoredDuplicateMarker, MasterComponent
from gear_catalog.config import IGNORED_DUPLICATES_COLLECTION, MASTER_COMPONENTS_COLLECTION
from gear_catalog.store import DocumentStore, StoreError, get_store

logger = logging.getLogger(__name__)


class DuplicateScanError(Exception):
    """Raised when the duplicate scan cannot read the catalog."""


def load_ignored_keys(store: DocumentStore) -> Set[str]:
    """Grouping keys that an operator marked as not duplicates."""
    docs = store.scan_collection(IGNORED_DUPLICATES_COLLECTION)
    return {IgnoredDuplicateMarker.from_dict(doc.id, doc.data).key for doc in docs}


def group_components(
    components: List[MasterComponent],
    ignored_keys: Set[str],
) -> List[DuplicateGroup]:
    """Pure grouping step over already-loaded components."""
    groups: Dict[str, List[MasterComponent]] = {}
    skipped_generic = 0
    skipped_ignored = 0

    for component in components:
        if not component.brand and not component.model:
            skipped_generic += 1
            continue

        key = grouping_key(component)
        if key in ignored_keys:
            skipped_ignored += 1
            continue

        groups.setdefault(key, []).append(component)

    logger.debug(
        "Grouping skipped %d generic and %d ignored components",
        skipped_generic, skipped_ignored,
    )
    return [
        DuplicateGroup(key=key, components=members)
        for key, members in groups.items()
        if len(members) > 1
    ]


def find_duplicate_groups(store: Optional[DocumentStore] = None) -> List[DuplicateGroup]:
    """
    Scan the master catalog for potential duplicates.

    Returns:
        Duplicate groups (each with at least 2 components)

    Raises:
        DuplicateScanError: If the catalog or ignore list cannot be read
    """
    store = store or get_store()
    try:
        docs = store.scan_collection(MASTER_COMPONENTS_COLLECTION)
        ignored_keys = load_ignored_keys(store)
    except StoreError as e:
        logger.error("Error finding duplicate components: %s", e)
        raise DuplicateScanError("Failed to scan for duplicate components.") from e

    components = [MasterComponent.from_dict(doc.id, doc.data) for doc in docs]
    groups = group_components(components, ignored_keys)

    logger.info(
        "Scanned %d master components (%d ignored keys): %d duplicate groups",
        len(components), len(ignored_keys), len(groups),
    )
    return groups


__all__ = [
    "DuplicateScanError",
    "load_ignored_keys",
    "group_components",
    "find_duplicate_groups",
]
