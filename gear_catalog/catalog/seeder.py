"""
Seeder - Write reference components into the master catalog.

Each component dict is stripped of empty fields, given a deterministic ID
from an id-field profile (see identity.ID_FIELD_PROFILES) and upserted with
merge=True. Records with no derivable ID are skipped.

Writes are committed in chunks of BATCH_WRITE_LIMIT, so a failure part-way
leaves earlier chunks applied. Re-running is safe: IDs are deterministic.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from gear_catalog.catalog.identity import create_component_id, resolve_id_fields
from gear_catalog.catalog.models import ComponentSystem, OperationResult, strip_empty_fields
from gear_catalog.config import BATCH_WRITE_LIMIT, MASTER_COMPONENTS_COLLECTION
from gear_catalog.store import DocumentStore, get_store

logger = logging.getLogger(__name__)


def seed_master_components(
    components: Iterable[Mapping[str, Any]],
    id_fields: Union[str, Sequence[str]] = "base",
    store: Optional[DocumentStore] = None,
) -> OperationResult:
    """
    Seed master components.

    Args:
        components: Component dicts (name, brand, series, model, size, system, ...)
        id_fields: Profile name ("base", "sized", ...) or explicit field list
        store: Document store (defaults to Firestore)

    Returns:
        OperationResult with seeded/skipped counts
    """
    try:
        fields = resolve_id_fields(id_fields)
    except ValueError as e:
        return OperationResult.fail(str(e))

    store = store or get_store()
    staged = 0
    committed = 0
    skipped = 0

    try:
        batch = store.batch()
        for component in components:
            if not isinstance(component, Mapping):
                skipped += 1
                continue

            data = strip_empty_fields(dict(component))
            data.pop("id", None)
            master_id = create_component_id(data, fields)
            if not master_id:
                logger.debug("Skipping component with no identity: %s", data)
                skipped += 1
                continue

            system = data.get("system")
            if system and not ComponentSystem.is_known(system):
                logger.warning("Component %s has unknown system '%s'", master_id, system)

            batch.set(MASTER_COMPONENTS_COLLECTION, master_id, data, merge=True)
            staged += 1

            if len(batch) >= BATCH_WRITE_LIMIT:
                batch.commit()
                committed += len(batch)
                logger.info("Committed batch of %d components", len(batch))
                batch = store.batch()

        if len(batch):
            batch.commit()
            committed += len(batch)
    except Exception as e:
        logger.exception("Error seeding master components")
        return OperationResult.fail(
            str(e) or "An unexpected error occurred while seeding.",
            seeded=committed,
            skipped=skipped,
        )

    if staged == 0:
        return OperationResult.ok("No new components to seed.", seeded=0, skipped=skipped)

    logger.info("Seeded %d master components (%d skipped)", committed, skipped)
    return OperationResult.ok(
        f"Successfully seeded {committed} components.",
        seeded=committed,
        skipped=skipped,
    )
