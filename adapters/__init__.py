"""Record store and notification adapters used by the job layer."""
from .base import NotificationError, NotificationSink, RecordStore, StoreError
from .memory import MemoryNotifier, MemoryStore
from .ntfy import NtfyNotifier
from .supabase import SupabaseStore

__all__ = [
    "MemoryNotifier",
    "MemoryStore",
    "NotificationError",
    "NotificationSink",
    "NtfyNotifier",
    "RecordStore",
    "StoreError",
    "SupabaseStore",
]
