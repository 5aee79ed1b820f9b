"""
Merge Lock - Advisory lock serializing merges over the master catalog.

Stored at catalogLocks/{lock_id}:
- owner, token: who holds the lock
- acquired_at, expires_at: UTC timestamps

Key behaviors:
- Acquire reads, checks expiry and writes in one store transaction:
  exactly one caller wins, even when several race to take over an expired lock
- Release only deletes the lock if this handle still owns it
"""

from __future__ import annotations

import logging
import os
import socket
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from gear_catalog.config import LOCKS_COLLECTION, MERGE_LOCK_ID, MERGE_LOCK_TTL_SECS
from gear_catalog.store import DocumentStore, StoreDocument

logger = logging.getLogger(__name__)


class LockHeldError(Exception):
    """Raised when the lock is held by another owner."""

    def __init__(self, lock_id: str, owner: Optional[str] = None):
        super().__init__(f"Lock '{lock_id}' is held by {owner or 'another process'}")
        self.lock_id = lock_id
        self.owner = owner


def default_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class MergeLock:
    """
    Exclusive lock on the master catalog for merge operations.

    Not reentrant. Use one instance per merge call.
    """

    def __init__(
        self,
        store: DocumentStore,
        lock_id: str = MERGE_LOCK_ID,
        owner: Optional[str] = None,
        ttl_seconds: int = MERGE_LOCK_TTL_SECS,
    ):
        self.store = store
        self.lock_id = lock_id
        self.owner = owner or default_owner()
        self.ttl = timedelta(seconds=ttl_seconds)
        self.token = uuid.uuid4().hex
        self._acquired = False

    def _lock_data(self) -> dict:
        now = datetime.now(timezone.utc)
        return {
            "owner": self.owner,
            "token": self.token,
            "acquired_at": now,
            "expires_at": now + self.ttl,
        }

    def _is_expired(self, existing: StoreDocument) -> bool:
        expires_at = existing.data.get("expires_at")
        if expires_at and expires_at > datetime.now(timezone.utc):
            return False
        logger.warning("Taking over expired lock %s from %s", self.lock_id, existing.data.get("owner"))
        return True

    def acquire(self, strict: bool = False) -> bool:
        """
        Acquire the lock, taking over an expired one.

        Args:
            strict: Raise LockHeldError instead of returning False

        Returns:
            True if acquired, False if held by another active owner
        """
        held = self.store.create_or_replace(
            LOCKS_COLLECTION, self.lock_id, self._lock_data(), self._is_expired,
        )
        if held is None:
            self._acquired = True
            logger.debug("Acquired lock %s (%s)", self.lock_id, self.owner)
            return True

        holder = held.data.get("owner")
        logger.info("Lock %s held by %s until %s", self.lock_id, holder, held.data.get("expires_at"))
        if strict:
            raise LockHeldError(self.lock_id, holder)
        return False

    def release(self) -> None:
        """Delete the lock document if still owned by this handle."""
        if not self._acquired:
            return
        self._acquired = False

        try:
            current = self.store.get_doc(LOCKS_COLLECTION, self.lock_id)
            if current.exists and current.data.get("token") == self.token:
                self.store.delete_doc(LOCKS_COLLECTION, self.lock_id)
                logger.debug("Released lock %s", self.lock_id)
            else:
                logger.warning("Lock %s no longer owned by %s", self.lock_id, self.owner)
        except Exception as e:
            # Expiry frees it eventually
            logger.warning("Failed to release lock %s: %s", self.lock_id, e)

    @property
    def is_acquired(self) -> bool:
        """Check if lock is currently held."""
        return self._acquired


__all__ = [
    "LockHeldError",
    "MergeLock",
]
