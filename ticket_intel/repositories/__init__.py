"""
Repositories package for key-value persistence

Provides the store backends used by the summary cache and usage tracker:
- process-local dictionary (InMemoryKeyValueStore)
- Supabase table (SupabaseKeyValueStore)
"""
from ticket_intel.repositories.kv_store import (
    KeyValueStore,
    InMemoryKeyValueStore,
    SupabaseKeyValueStore,
    create_store,
)

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SupabaseKeyValueStore",
    "create_store",
]
