"""
Gear Catalog
============

Maintenance tooling for the master component catalog.

Components:
- Document store adapter (Firestore-backed)
- Identity normalizer for master component IDs
- Duplicate scan, merge coordinator and ignore registry
- Seeder, catalog reader and embedding cleanup
"""

__version__ = "0.1.0"
