"""
Document Store - Collection scans and atomic batches over Firestore.

The catalog operations only talk to the store through this interface so that
the merge/scan logic can run against any backend with the same semantics:
- scan_collection / scan_subcollection: full reads
- page_collection: ordered-by-id pages for long cleanups
- create_or_replace: transactional read-check-write of one document
- batch(): staged update/delete/set with all-or-nothing commit

Implementations:
- FirestoreStore: Production Firestore (google-cloud-firestore)
- FakeStore: In-memory store used by tests (tests/conftest.py)

Paths are slash-separated document paths, e.g. "users/u1/equipment/e1".
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import firestore

logger = logging.getLogger(__name__)

# Sentinel for field deletion, mapped to firestore.DELETE_FIELD on write
DELETE_SENTINEL = "__DELETE__"


class StoreError(Exception):
    """Raised when a document store call fails."""

    def __init__(self, message: str, operation: str = "", path: str = ""):
        super().__init__(message)
        self.operation = operation
        self.path = path


@dataclass
class StoreDocument:
    """A document read from the store."""
    id: str
    path: str
    data: Dict[str, Any] = field(default_factory=dict)
    exists: bool = True


def doc_path(collection: str, doc_id: str) -> str:
    return f"{collection}/{doc_id}"


class StoreBatch(ABC):
    """Staged writes committed atomically."""

    @abstractmethod
    def update(self, path: str, data: Dict[str, Any]) -> None:
        """Stage a partial update of the document at path."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Stage a document deletion."""

    @abstractmethod
    def set(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Stage a full (or merged) document write."""

    @abstractmethod
    def commit(self) -> None:
        """Apply all staged writes, or none of them."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of staged writes."""


class DocumentStore(ABC):
    """Abstract document store interface."""

    @abstractmethod
    def scan_collection(self, name: str) -> List[StoreDocument]:
        """Read every document in a top-level collection."""

    @abstractmethod
    def scan_subcollection(self, parent_path: str, name: str) -> List[StoreDocument]:
        """Read every document in a subcollection of parent_path."""

    @abstractmethod
    def page_collection(
        self,
        name: str,
        page_size: int,
        start_after: Optional[str] = None,
    ) -> List[StoreDocument]:
        """Read one page of a collection ordered by document id."""

    @abstractmethod
    def query_collection(self, name: str, field_path: str, value: Any) -> List[StoreDocument]:
        """Read documents whose field equals value."""

    @abstractmethod
    def get_doc(self, collection: str, doc_id: str) -> StoreDocument:
        """Read a single document. Missing documents have exists=False."""

    @abstractmethod
    def set_doc(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Write a document."""

    @abstractmethod
    def create_or_replace(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        can_replace: Callable[[StoreDocument], bool],
    ) -> Optional[StoreDocument]:
        """
        Write a document unless an existing one must be kept, in one transaction.

        The read, the can_replace check and the write are atomic: two callers
        can never both replace the same existing document.

        Args:
            collection: Collection name
            doc_id: Document ID
            data: Full document to write
            can_replace: Called with the existing document, True to overwrite it

        Returns:
            None if data was written, else the existing document that was kept
        """

    @abstractmethod
    def delete_doc(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is a no-op."""

    @abstractmethod
    def batch(self) -> StoreBatch:
        """Start a new write batch."""


@contextmanager
def _wrap_errors(operation: str, path: str) -> Iterator[None]:
    """Convert Google API errors into StoreError."""
    try:
        yield
    except GoogleAPICallError as e:
        raise StoreError(f"{operation} {path} failed: {e.message}", operation, path) from e


def _to_firestore(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map DELETE_SENTINEL values to firestore.DELETE_FIELD."""
    return {
        key: firestore.DELETE_FIELD if value == DELETE_SENTINEL else value
        for key, value in data.items()
    }


def _snapshot_to_document(snapshot) -> StoreDocument:
    return StoreDocument(
        id=snapshot.id,
        path=snapshot.reference.path,
        data=snapshot.to_dict() or {},
        exists=snapshot.exists,
    )


class FirestoreBatch(StoreBatch):
    """Wrapper around firestore.WriteBatch."""

    def __init__(self, db: firestore.Client):
        self._db = db
        self._batch = db.batch()
        self._count = 0

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self._batch.update(self._db.document(path), _to_firestore(data))
        self._count += 1

    def delete(self, collection: str, doc_id: str) -> None:
        self._batch.delete(self._db.collection(collection).document(doc_id))
        self._count += 1

    def set(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        merge: bool = False,
    ) -> None:
        doc_ref = self._db.collection(collection).document(doc_id)
        self._batch.set(doc_ref, _to_firestore(data), merge=merge)
        self._count += 1

    def commit(self) -> None:
        with _wrap_errors("commit", f"batch of {self._count} writes"):
            self._batch.commit()
        logger.debug("Committed batch of %d writes", self._count)

    def __len__(self) -> int:
        return self._count


class FirestoreStore(DocumentStore):
    """Production store backed by google-cloud-firestore."""

    def __init__(self, db: firestore.Client):
        self.db = db

    def scan_collection(self, name: str) -> List[StoreDocument]:
        with _wrap_errors("scan", name):
            return [_snapshot_to_document(s) for s in self.db.collection(name).stream()]

    def scan_subcollection(self, parent_path: str, name: str) -> List[StoreDocument]:
        path = f"{parent_path}/{name}"
        with _wrap_errors("scan", path):
            snapshots = self.db.document(parent_path).collection(name).stream()
            return [_snapshot_to_document(s) for s in snapshots]

    def page_collection(
        self,
        name: str,
        page_size: int,
        start_after: Optional[str] = None,
    ) -> List[StoreDocument]:
        with _wrap_errors("page", name):
            collection = self.db.collection(name)
            query = collection.order_by(firestore.FieldPath.document_id()).limit(page_size)
            if start_after:
                query = query.start_after(collection.document(start_after).get())
            return [_snapshot_to_document(s) for s in query.stream()]

    def query_collection(self, name: str, field_path: str, value: Any) -> List[StoreDocument]:
        with _wrap_errors("query", name):
            query = self.db.collection(name).where(field_path, "==", value)
            return [_snapshot_to_document(s) for s in query.stream()]

    def get_doc(self, collection: str, doc_id: str) -> StoreDocument:
        with _wrap_errors("get", doc_path(collection, doc_id)):
            snapshot = self.db.collection(collection).document(doc_id).get()
        return _snapshot_to_document(snapshot)

    def set_doc(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        merge: bool = False,
    ) -> None:
        with _wrap_errors("set", doc_path(collection, doc_id)):
            self.db.collection(collection).document(doc_id).set(_to_firestore(data), merge=merge)

    def create_or_replace(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        can_replace: Callable[[StoreDocument], bool],
    ) -> Optional[StoreDocument]:
        doc_ref = self.db.collection(collection).document(doc_id)

        @firestore.transactional
        def claim_transaction(transaction, doc_ref):
            snapshot = doc_ref.get(transaction=transaction)
            if snapshot.exists:
                existing = _snapshot_to_document(snapshot)
                if not can_replace(existing):
                    return existing
            transaction.set(doc_ref, data)
            return None

        transaction = self.db.transaction()
        with _wrap_errors("create_or_replace", doc_path(collection, doc_id)):
            return claim_transaction(transaction, doc_ref)

    def delete_doc(self, collection: str, doc_id: str) -> None:
        with _wrap_errors("delete", doc_path(collection, doc_id)):
            self.db.collection(collection).document(doc_id).delete()

    def batch(self) -> StoreBatch:
        return FirestoreBatch(self.db)


_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """Get or initialize the Firestore-backed store."""
    global _store
    if _store is None:
        from gear_catalog.firestore_client import get_db
        _store = FirestoreStore(get_db())
    return _store


__all__ = [
    "DELETE_SENTINEL",
    "StoreError",
    "StoreDocument",
    "StoreBatch",
    "DocumentStore",
    "FirestoreBatch",
    "FirestoreStore",
    "doc_path",
    "get_store",
]
