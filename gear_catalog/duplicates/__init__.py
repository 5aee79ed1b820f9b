"""
Duplicates Package - Find, merge and ignore duplicate master components.

This package provides:
- finder: Composite-key duplicate scan
- merge: Atomic reference rewrite + deletion of merged masters
- ignore: Persistent "not duplicates" markers
- locks: Advisory lock serializing merges
"""

from gear_catalog.duplicates.finder import (
    DuplicateScanError,
    find_duplicate_groups,
)

from gear_catalog.duplicates.merge import (
    MergeCoordinator,
    merge_duplicates,
)

from gear_catalog.duplicates.ignore import (
    ignore_group,
)

from gear_catalog.duplicates.locks import (
    LockHeldError,
    MergeLock,
)


__all__ = [
    # Finder
    "DuplicateScanError",
    "find_duplicate_groups",
    # Merge
    "MergeCoordinator",
    "merge_duplicates",
    # Ignore
    "ignore_group",
    # Locks
    "LockHeldError",
    "MergeLock",
]
