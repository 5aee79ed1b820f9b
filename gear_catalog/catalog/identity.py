"""
Identity - Canonical identifiers and grouping keys for master components.

Rules:
- Component IDs are lowercase, hyphen-separated, [a-z0-9-] only
- Empty/None identity fields are skipped, never rendered as "-"
- No derivable identity -> None (caller skips the record)
- Duplicate grouping keys are "name|brand|baseModel|size"
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

ID_SEPARATOR = "-"
KEY_SEPARATOR = "|"
NO_SIZE = "no-size"

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")

# Cage-length / size variants that do not distinguish a component for grouping.
# Exact list; extending it changes which components are treated as duplicates.
MODEL_VARIANT_SUFFIX = re.compile(r"-(?:sgs|gs|long|medium|short)$", re.IGNORECASE)

# Field orders used by the catalog seeders
ID_FIELD_PROFILES = {
    "base": ("brand", "name", "model"),
    "drivetrain": ("brand", "series", "name", "model"),
    "sized": ("brand", "model", "size"),
    "shoe": ("brand", "model"),
    "tire": ("brand", "name", "model", "size"),
}


def compute_component_id(fields: Iterable[Optional[Any]]) -> Optional[str]:
    """
    Derive a canonical component ID from ordered identity fields.

    Args:
        fields: Ordered field values, e.g. [brand, name, model]

    Returns:
        Slug like "sram-gx-eagle-xg-1275", or None if nothing usable remains
    """
    joined = ID_SEPARATOR.join(str(value) for value in fields if value)
    slug = _NON_ALNUM_RUN.sub(ID_SEPARATOR, joined.lower()).strip(ID_SEPARATOR)
    return slug or None


def resolve_id_fields(id_fields: Union[str, Sequence[str]]) -> List[str]:
    """
    Resolve a profile name or explicit field list.

    Raises:
        ValueError: If the profile name is unknown
    """
    if isinstance(id_fields, str):
        if id_fields not in ID_FIELD_PROFILES:
            raise ValueError(
                f"Unknown id field profile '{id_fields}'. "
                f"Valid: {', '.join(sorted(ID_FIELD_PROFILES))}"
            )
        return list(ID_FIELD_PROFILES[id_fields])
    return list(id_fields)


def create_component_id(
    component: Mapping[str, Any],
    id_fields: Union[str, Sequence[str]] = "base",
) -> Optional[str]:
    """Compute the ID of a component dict from a profile or field list."""
    return compute_component_id(component.get(f) for f in resolve_id_fields(id_fields))


def base_model(model: Optional[str]) -> str:
    """Strip one trailing variant suffix (-gs, -sgs, -long, -medium, -short)."""
    if not model:
        return ""
    return MODEL_VARIANT_SUFFIX.sub("", model)


def grouping_key(component: Any) -> str:
    """Composite duplicate-grouping key for a MasterComponent."""
    return KEY_SEPARATOR.join([
        component.name or "",
        component.brand or "",
        base_model(component.model),
        component.size or NO_SIZE,
    ])


def marker_id_for_key(key: str) -> str:
    """Firestore-safe document ID for a grouping key ('/' is not allowed)."""
    return key.replace("%", "%25").replace("/", "%2F")


def key_from_marker_id(doc_id: str) -> str:
    """Inverse of marker_id_for_key."""
    return doc_id.replace("%2F", "/").replace("%25", "%")


__all__ = [
    "ID_FIELD_PROFILES",
    "MODEL_VARIANT_SUFFIX",
    "NO_SIZE",
    "compute_component_id",
    "resolve_id_fields",
    "create_component_id",
    "base_model",
    "grouping_key",
    "marker_id_for_key",
    "key_from_marker_id",
]
