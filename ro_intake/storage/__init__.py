"""Collaborators that own customers, vehicles, files, and repair-order rows."""
from ro_intake.storage.base import Directory, ObjectStore, RecordSink
from ro_intake.storage.memory import MemoryDirectory, MemoryObjectStore, MemoryRecordSink
from ro_intake.storage.supabase import SupabaseClient

__all__ = [
    "Directory",
    "MemoryDirectory",
    "MemoryObjectStore",
    "MemoryRecordSink",
    "ObjectStore",
    "RecordSink",
    "SupabaseClient",
]
