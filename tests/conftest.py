"""
Shared fixtures: an in-memory DocumentStore with Firestore-like batch semantics.

FakeStore keeps documents by slash path ("users/u1/equipment/e1").
Failure injection:
- fail_on_scan: collection path whose scan raises StoreError
- fail_on_commit: every batch commit raises StoreError before applying
- fail_on_create: create_or_replace raises StoreError before reading

create_or_replace behaves like a Firestore transaction: if the document
changes between its read and its write, the attempt is retried. The
on_transaction_read hook runs once, right after the first read, so a test
can slip a competing writer into that window.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional

import pytest

from gear_catalog.store import (
    DELETE_SENTINEL,
    DocumentStore,
    StoreBatch,
    StoreDocument,
    StoreError,
    doc_path,
)


MAX_TRANSACTION_ATTEMPTS = 5


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0]


def _doc_id(path: str) -> str:
    return path.rsplit("/", 1)[1]


def _apply_fields(target: Dict[str, Any], data: Dict[str, Any]) -> None:
    for key, value in data.items():
        if value == DELETE_SENTINEL:
            target.pop(key, None)
        else:
            target[key] = copy.deepcopy(value)


class FakeBatch(StoreBatch):
    def __init__(self, store: FakeStore):
        self.store = store
        self.ops: List[tuple] = []

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self.ops.append(("update", path, copy.deepcopy(data), False))

    def delete(self, collection: str, doc_id: str) -> None:
        self.ops.append(("delete", doc_path(collection, doc_id), None, False))

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self.ops.append(("set", doc_path(collection, doc_id), copy.deepcopy(data), merge))

    def commit(self) -> None:
        self.store._commit(self.ops)

    def __len__(self) -> int:
        return len(self.ops)


class FakeStore(DocumentStore):
    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.fail_on_scan: Optional[str] = None
        self.fail_on_commit = False
        self.fail_on_create = False
        self.on_transaction_read: Optional[Callable[[], None]] = None
        self.commits: List[List[tuple]] = []

    # -- test helpers --

    def add(self, path: str, data: Dict[str, Any]) -> None:
        self.docs[path] = copy.deepcopy(data)

    def data(self, path: str) -> Optional[Dict[str, Any]]:
        value = self.docs.get(path)
        return copy.deepcopy(value) if value is not None else None

    def _documents(self, collection_path: str) -> List[StoreDocument]:
        if self.fail_on_scan == collection_path:
            raise StoreError(f"scan {collection_path} failed: unavailable", "scan", collection_path)
        return [
            StoreDocument(id=_doc_id(path), path=path, data=copy.deepcopy(data))
            for path, data in sorted(self.docs.items())
            if _parent(path) == collection_path
        ]

    def _commit(self, ops: List[tuple]) -> None:
        if self.fail_on_commit:
            raise StoreError("commit failed: deadline exceeded", "commit")

        staged = copy.deepcopy(self.docs)
        for op, path, data, merge in ops:
            if op == "update":
                if path not in staged:
                    raise StoreError(f"update {path} failed: not found", "update", path)
                _apply_fields(staged[path], data)
            elif op == "delete":
                staged.pop(path, None)
            elif op == "set":
                target = staged.get(path, {}) if merge else {}
                _apply_fields(target, data)
                staged[path] = target
        self.docs = staged
        self.commits.append(ops)

    # -- DocumentStore --

    def scan_collection(self, name: str) -> List[StoreDocument]:
        return self._documents(name)

    def scan_subcollection(self, parent_path: str, name: str) -> List[StoreDocument]:
        return self._documents(f"{parent_path}/{name}")

    def page_collection(self, name: str, page_size: int, start_after: Optional[str] = None):
        docs = [d for d in self._documents(name) if start_after is None or d.id > start_after]
        return docs[:page_size]

    def query_collection(self, name: str, field_path: str, value: Any) -> List[StoreDocument]:
        return [d for d in self._documents(name) if d.data.get(field_path) == value]

    def get_doc(self, collection: str, doc_id: str) -> StoreDocument:
        path = doc_path(collection, doc_id)
        data = self.data(path)
        return StoreDocument(id=doc_id, path=path, data=data or {}, exists=data is not None)

    def set_doc(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        batch = self.batch()
        batch.set(collection, doc_id, data, merge=merge)
        batch.commit()

    def create_or_replace(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        can_replace: Callable[[StoreDocument], bool],
    ) -> Optional[StoreDocument]:
        path = doc_path(collection, doc_id)
        if self.fail_on_create:
            raise StoreError(f"create_or_replace {path} failed: unavailable", "create_or_replace", path)

        for _ in range(MAX_TRANSACTION_ATTEMPTS):
            before = self.data(path)
            hook, self.on_transaction_read = self.on_transaction_read, None
            if hook:
                hook()
            if self.data(path) != before:
                continue

            if before is not None:
                existing = StoreDocument(id=doc_id, path=path, data=before)
                if not can_replace(existing):
                    return existing
            self.docs[path] = copy.deepcopy(data)
            return None

        raise StoreError(f"create_or_replace {path} failed: too much contention", "create_or_replace", path)

    def delete_doc(self, collection: str, doc_id: str) -> None:
        self.docs.pop(doc_path(collection, doc_id), None)

    def batch(self) -> StoreBatch:
        return FakeBatch(self)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def catalog_store(store: FakeStore) -> FakeStore:
    """Catalog with two derailleur variants, two identical forks and one bike per user."""
    store.add("masterComponents/shimano-rd-m8100-sgs", {
        "name": "Rear Derailleur", "brand": "Shimano", "series": "XT",
        "model": "RD-M8100-SGS", "system": "Drivetrain",
    })
    store.add("masterComponents/shimano-rd-m8100-gs", {
        "name": "Rear Derailleur", "brand": "Shimano", "series": "XT",
        "model": "RD-M8100-GS", "system": "Drivetrain",
    })
    store.add("masterComponents/rockshox-lyrik-a", {
        "name": "Fork", "brand": "RockShox", "model": "Lyrik Ultimate",
        "size": '29", 160mm', "system": "Suspension",
    })
    store.add("masterComponents/rockshox-lyrik-b", {
        "name": "Fork", "brand": "RockShox", "model": "Lyrik Ultimate",
        "size": '29", 160mm', "system": "Suspension", "embedding": [0.1, 0.2],
    })
    store.add("masterComponents/grips", {"name": "Grips", "system": "Cockpit"})

    store.add("users/alice", {"email": "alice@example.com"})
    store.add("users/alice/equipment/trail", {
        "name": "Trail bike",
        "components": [
            {"id": "c1", "masterComponentId": "shimano-rd-m8100-gs", "wearPercentage": 40},
            {"id": "c2", "masterComponentId": "rockshox-lyrik-b", "notes": "serviced"},
            {"id": "c3", "masterComponentId": "grips", "wearPercentage": 10},
        ],
    })
    store.add("users/alice/equipment/gravel", {
        "name": "Gravel bike",
        "components": [{"id": "c4", "masterComponentId": "grips"}],
    })
    store.add("users/bob", {"email": "bob@example.com"})
    store.add("users/bob/equipment/enduro", {
        "name": "Enduro",
        "components": [
            {"id": "c5", "masterComponentId": "rockshox-lyrik-a"},
            {"id": "c6", "masterComponentId": "rockshox-lyrik-b", "size": '29", 160mm'},
        ],
    })
    return store
