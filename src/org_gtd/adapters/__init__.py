from .base import ExternalItem, SyncAdapter, SyncItem, SyncResult
from .memory import InMemoryAdapter

__all__ = ["ExternalItem", "InMemoryAdapter", "SyncAdapter", "SyncItem", "SyncResult"]
