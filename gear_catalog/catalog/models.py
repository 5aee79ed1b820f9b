"""
Catalog Models - Data models for master components and duplicate handling.

Firestore Collections:
- masterComponents/{componentId}: Canonical catalog entries
- ignoredDuplicates/{escapedKey}: Groups marked as not duplicates
- users/{uid}/equipment/{equipmentId}: Equipment with embedded components
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from gear_catalog.catalog.identity import key_from_marker_id


class ComponentSystem(str, Enum):
    """Bike subsystem a component belongs to."""
    DRIVETRAIN = "Drivetrain"
    BRAKES = "Brakes"
    WHEELSET = "Wheelset"
    FRAMESET = "Frameset"
    COCKPIT = "Cockpit"
    SUSPENSION = "Suspension"
    E_BIKE = "E-Bike"
    ACCESSORIES = "Accessories"

    @classmethod
    def is_known(cls, value: Optional[str]) -> bool:
        return value in {s.value for s in cls}


# Identity fields stored as strings; "" is never persisted for these
_IDENTITY_FIELDS = ("name", "brand", "series", "model", "size", "system")


def _clean(value: Any) -> Optional[str]:
    """Return value as a stripped string, or None if empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def strip_empty_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None, an empty string or an empty container."""
    return {
        key: value
        for key, value in data.items()
        if value is not None and value != "" and value != [] and value != {}
    }


@dataclass
class MasterComponent:
    """Canonical catalog entry for a component type/variant."""
    id: str
    name: str = ""
    brand: Optional[str] = None
    series: Optional[str] = None
    model: Optional[str] = None
    size: Optional[str] = None
    system: Optional[str] = None
    embedding: Optional[List[float]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> MasterComponent:
        """Create from a Firestore document, normalizing empty fields to None."""
        data = data or {}
        extra = {
            key: value
            for key, value in data.items()
            if key not in _IDENTITY_FIELDS and key not in ("id", "embedding")
        }
        embedding = data.get("embedding")
        return cls(
            id=doc_id,
            name=_clean(data.get("name")) or "",
            brand=_clean(data.get("brand")),
            series=_clean(data.get("series")),
            model=_clean(data.get("model")),
            size=_clean(data.get("size")),
            system=_clean(data.get("system")),
            embedding=embedding if isinstance(embedding, list) and embedding else None,
            extra=strip_empty_fields(extra),
        )

    def to_dict(self, include_embedding: bool = True) -> Dict[str, Any]:
        """Convert to Firestore-compatible dict (without the id)."""
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "name": self.name,
            "brand": self.brand,
            "series": self.series,
            "model": self.model,
            "size": self.size,
            "system": self.system,
        })
        if include_embedding:
            data["embedding"] = self.embedding
        return strip_empty_fields(data)

    def summary(self) -> Dict[str, Any]:
        """Identity fields plus id, for reports."""
        return {"id": self.id, **self.to_dict(include_embedding=False)}


@dataclass
class DuplicateGroup:
    """Master components sharing a grouping key. Never persisted."""
    key: str
    components: List[MasterComponent] = field(default_factory=list)

    @property
    def component_ids(self) -> List[str]:
        return [c.id for c in self.components]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "count": len(self.components),
            "components": [c.summary() for c in self.components],
        }


@dataclass
class IgnoredDuplicateMarker:
    """Persisted marker suppressing a duplicate group from future scans."""
    key: str
    ignored: bool = True
    ignored_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> IgnoredDuplicateMarker:
        data = data or {}
        return cls(
            key=data.get("key") or key_from_marker_id(doc_id),
            ignored=data.get("ignored", True),
            ignored_at=data.get("ignoredAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "ignored": self.ignored,
            "ignoredAt": self.ignored_at or datetime.now(timezone.utc),
        }


@dataclass
class OperationResult:
    """Uniform {success, message} outcome returned by catalog operations."""
    success: bool
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **details: Any) -> OperationResult:
        return cls(success=True, message=message, details=details)

    @classmethod
    def fail(cls, message: str, **details: Any) -> OperationResult:
        return cls(success=False, message=message, details=details)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message, **self.details}


@dataclass
class MergeResult(OperationResult):
    """Outcome of a merge, with rewrite counters."""
    dry_run: bool = False
    equipment_updated: int = 0
    components_rewritten: int = 0
    deleted_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            "dry_run": self.dry_run,
            "equipment_updated": self.equipment_updated,
            "components_rewritten": self.components_rewritten,
            "deleted_ids": list(self.deleted_ids),
        })
        return result


__all__ = [
    "ComponentSystem",
    "MasterComponent",
    "DuplicateGroup",
    "IgnoredDuplicateMarker",
    "OperationResult",
    "MergeResult",
    "strip_empty_fields",
]
