"""Configuration for gear catalog maintenance."""

import os

# GCP Project (None lets the client resolve it from the environment)
PROJECT_ID = os.getenv("GCP_PROJECT_ID") or None

# Firestore collections
MASTER_COMPONENTS_COLLECTION = "masterComponents"
IGNORED_DUPLICATES_COLLECTION = "ignoredDuplicates"
USERS_COLLECTION = "users"
EQUIPMENT_SUBCOLLECTION = "equipment"
LOCKS_COLLECTION = "catalogLocks"

# Firestore rejects batches with more writes than this
BATCH_WRITE_LIMIT = 500
CLEANUP_PAGE_SIZE = 500

# Merge lock
MERGE_LOCK_ID = MASTER_COMPONENTS_COLLECTION
MERGE_LOCK_TTL_SECS = int(os.getenv("MERGE_LOCK_TTL_SECS", "300"))
