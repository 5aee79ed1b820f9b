"""Catalog reads over the masterComponents collection."""

from __future__ import annotations

import logging
from typing import List, Optional

from gear_catalog.catalog.models import MasterComponent
from gear_catalog.config import MASTER_COMPONENTS_COLLECTION
from gear_catalog.store import DocumentStore, get_store

logger = logging.getLogger(__name__)


def fetch_all_master_components(store: Optional[DocumentStore] = None) -> List[MasterComponent]:
    """Load every master component."""
    store = store or get_store()
    docs = store.scan_collection(MASTER_COMPONENTS_COLLECTION)
    logger.info("Loaded %d master components", len(docs))
    return [MasterComponent.from_dict(doc.id, doc.data) for doc in docs]


def fetch_master_components_by_type(
    type_name: str,
    store: Optional[DocumentStore] = None,
) -> List[MasterComponent]:
    """Load master components whose name (component type) equals type_name."""
    if not type_name:
        return []
    store = store or get_store()
    docs = store.query_collection(MASTER_COMPONENTS_COLLECTION, "name", type_name)
    logger.info("Loaded %d master components of type %s", len(docs), type_name)
    return [MasterComponent.from_dict(doc.id, doc.data) for doc in docs]
