"""
Catalog Package - Master component models, identity and bulk maintenance.

This package provides:
- models: MasterComponent, DuplicateGroup, markers and operation results
- identity: Component ID normalization and duplicate grouping keys
- reader: Catalog reads (all / by type)
- seeder: Seeding master components from reference data
- cleanup: Bulk field cleanup (embeddings)
"""

from gear_catalog.catalog.identity import (
    compute_component_id,
    create_component_id,
    grouping_key,
)

from gear_catalog.catalog.models import (
    ComponentSystem,
    MasterComponent,
    DuplicateGroup,
    IgnoredDuplicateMarker,
    OperationResult,
    MergeResult,
)


__all__ = [
    # Identity
    "compute_component_id",
    "create_component_id",
    "grouping_key",
    # Models
    "ComponentSystem",
    "MasterComponent",
    "DuplicateGroup",
    "IgnoredDuplicateMarker",
    "OperationResult",
    "MergeResult",
]
