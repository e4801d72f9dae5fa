"""
Object storage for relayed documents.

Volatile, in-process, TTL-bound. Nothing is written to disk.
"""

from .client import InMemoryObjectStore, StorageConfig, create_object_store

__all__ = ["InMemoryObjectStore", "StorageConfig", "create_object_store"]
