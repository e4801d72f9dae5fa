"""
Infrastructure layer.

- storage: the TTL-bound in-memory object store

Kept apart from core so the relay logic never depends on how bytes are held.
"""
