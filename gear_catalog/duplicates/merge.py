"""
Merge Coordinator - Fold duplicate master components into a primary one.

A merge:
1. Scans every users/{uid}/equipment/{eid} document (sequentially)
2. Rewrites embedded components pointing at a merged ID to the primary ID
3. Stages a whole-list update of "components" for each touched equipment doc
4. Stages deletion of every merged master component except the primary
5. Commits everything in ONE batch (all or nothing)

Key rules:
- Only masterComponentId is changed; every other field is preserved
- Merges are serialized by MergeLock (catalogLocks/masterComponents)
- Errors are logged and returned as {success: False, message}, never raised
- Re-running a failed merge is safe: rewritten refs no longer match and
  deleting a missing master is a no-op
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Set, Tuple

from gear_catalog.catalog.models import MergeResult
from gear_catalog.config import (
    BATCH_WRITE_LIMIT,
    EQUIPMENT_SUBCOLLECTION,
    MASTER_COMPONENTS_COLLECTION,
    USERS_COLLECTION,
)
from gear_catalog.duplicates.locks import MergeLock
from gear_catalog.store import DocumentStore, get_store

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Missing primary component ID or IDs to merge."
MERGE_IN_PROGRESS_MESSAGE = "Another merge is in progress. Try again once it has finished."


def normalize_merge_ids(merge_ids: Optional[Iterable[str]]) -> List[str]:
    """Strip, drop blanks and de-duplicate while keeping order."""
    seen: Set[str] = set()
    result: List[str] = []
    for merge_id in merge_ids or []:
        clean = (merge_id or "").strip()
        if clean and clean not in seen:
            seen.add(clean)
            result.append(clean)
    return result


def rewrite_component_refs(
    components: Sequence[Any],
    merged_ids: Set[str],
    primary_id: str,
) -> Tuple[List[Any], int]:
    """
    Point embedded components at primary_id.

    Returns:
        (new component list, number of entries rewritten)
    """
    rewritten = 0
    result: List[Any] = []
    for component in components:
        if isinstance(component, dict) and component.get("masterComponentId") in merged_ids:
            result.append({**component, "masterComponentId": primary_id})
            rewritten += 1
        else:
            result.append(component)
    return result, rewritten


@dataclass
class MergePlan:
    """Writes a merge will commit."""
    primary_id: str
    delete_ids: List[str] = field(default_factory=list)
    equipment_updates: List[Tuple[str, List[Any]]] = field(default_factory=list)
    components_rewritten: int = 0
    users_scanned: int = 0
    equipment_scanned: int = 0

    @property
    def write_count(self) -> int:
        return len(self.delete_ids) + len(self.equipment_updates)


class MergeCoordinator:
    """
    Coordinator for duplicate merges.

    The lock is taken HERE, not by callers.
    """

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        use_lock: bool = True,
        lock_owner: Optional[str] = None,
    ):
        self.store = store or get_store()
        self.use_lock = use_lock
        self.lock_owner = lock_owner

    def plan(self, primary_id: str, merge_ids: List[str]) -> MergePlan:
        """Scan all equipment and compute the writes for a merge."""
        merged_ids = set(merge_ids) - {primary_id}
        plan = MergePlan(
            primary_id=primary_id,
            delete_ids=[m for m in merge_ids if m != primary_id],
        )

        for user in self.store.scan_collection(USERS_COLLECTION):
            plan.users_scanned += 1
            equipment_docs = self.store.scan_subcollection(user.path, EQUIPMENT_SUBCOLLECTION)

            for equipment in equipment_docs:
                plan.equipment_scanned += 1
                components = equipment.data.get("components") or []
                if not isinstance(components, list):
                    logger.warning("Equipment %s has non-list components; skipping", equipment.path)
                    continue

                updated, rewritten = rewrite_component_refs(components, merged_ids, primary_id)
                if rewritten:
                    plan.equipment_updates.append((equipment.path, updated))
                    plan.components_rewritten += rewritten

        logger.info(
            "Merge plan for %s: %d users, %d equipment scanned; "
            "%d refs in %d equipment docs, %d masters to delete",
            primary_id, plan.users_scanned, plan.equipment_scanned,
            plan.components_rewritten, len(plan.equipment_updates), len(plan.delete_ids),
        )
        return plan

    def _commit(self, plan: MergePlan) -> None:
        batch = self.store.batch()
        for path, components in plan.equipment_updates:
            batch.update(path, {"components": components})
        for merge_id in plan.delete_ids:
            batch.delete(MASTER_COMPONENTS_COLLECTION, merge_id)
        batch.commit()

    def merge(
        self,
        primary_id: str,
        merge_ids: Optional[Iterable[str]],
        dry_run: bool = False,
    ) -> MergeResult:
        """
        Merge duplicates into primary_id.

        Args:
            primary_id: ID of the master component to keep
            merge_ids: IDs to fold into the primary (may include the primary)
            dry_run: Compute counts without writing

        Returns:
            MergeResult (success False on invalid input, lock contention or store error)
        """
        primary_id = (primary_id or "").strip()
        ids = normalize_merge_ids(merge_ids)
        if not primary_id or not ids:
            return MergeResult(success=False, message=MISSING_INPUT_MESSAGE, dry_run=dry_run)

        lock = None
        if self.use_lock and not dry_run:
            lock = MergeLock(self.store, owner=self.lock_owner)

        try:
            if lock and not lock.acquire():
                return MergeResult(success=False, message=MERGE_IN_PROGRESS_MESSAGE)

            plan = self.plan(primary_id, ids)
            counters = dict(
                dry_run=dry_run,
                equipment_updated=len(plan.equipment_updates),
                components_rewritten=plan.components_rewritten,
                deleted_ids=list(plan.delete_ids),
            )

            if plan.write_count > BATCH_WRITE_LIMIT:
                logger.warning(
                    "Merge into %s needs %d writes (limit %d); not committing",
                    primary_id, plan.write_count, BATCH_WRITE_LIMIT,
                )
                return MergeResult(
                    success=False,
                    message=(
                        f"Merge needs {plan.write_count} writes, more than the "
                        f"{BATCH_WRITE_LIMIT} allowed in one atomic batch. Nothing was changed."
                    ),
                    **counters,
                )

            if dry_run:
                return MergeResult(
                    success=True,
                    message=(
                        f"Dry run: would merge {len(plan.delete_ids)} components into {primary_id} "
                        f"({plan.components_rewritten} references in "
                        f"{len(plan.equipment_updates)} equipment records)."
                    ),
                    **counters,
                )

            if plan.write_count:
                self._commit(plan)

            logger.info(
                "Merged %s into %s (%d references rewritten)",
                plan.delete_ids, primary_id, plan.components_rewritten,
            )
            return MergeResult(
                success=True,
                message=f"Successfully merged {len(plan.delete_ids)} components into {primary_id}.",
                **counters,
            )
        except Exception as e:
            logger.exception("Error merging duplicates into %s", primary_id)
            return MergeResult(
                success=False,
                message=str(e) or "An unexpected error occurred during merge.",
                dry_run=dry_run,
            )
        finally:
            if lock:
                lock.release()


def merge_duplicates(
    primary_id: str,
    merge_ids: Optional[Iterable[str]],
    store: Optional[DocumentStore] = None,
    dry_run: bool = False,
) -> MergeResult:
    """
    Merge duplicate master components into primary_id.

    Convenience function.
    """
    return MergeCoordinator(store).merge(primary_id, merge_ids, dry_run=dry_run)


__all__ = [
    "MISSING_INPUT_MESSAGE",
    "MERGE_IN_PROGRESS_MESSAGE",
    "MergePlan",
    "MergeCoordinator",
    "normalize_merge_ids",
    "rewrite_component_refs",
    "merge_duplicates",
]
