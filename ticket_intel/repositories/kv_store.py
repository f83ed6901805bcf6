"""
Key-Value Store with atomic per-key updates

Persistence boundary for the summary cache and usage tracker. Backends
implement get/set/remove; ``update`` layers an atomic read-modify-write on
top, serialised per key with an asyncio lock.

Values are JSON-compatible (dicts, lists, scalars).
"""
import asyncio
import copy
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from supabase import create_client, Client

from ticket_intel.config import get_settings
from ticket_intel.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class KeyValueStore(ABC):
    """
    Base store class with per-key locking.

    All stores should inherit from this class so that read-modify-write
    sequences against the same key never lose updates.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None"""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one"""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete a key; missing keys are ignored"""

    def lock_for(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def update(self, key: str, mutator: Callable[[Optional[Any]], Any]) -> Any:
        """
        Atomically read, transform and write a key

        Args:
            key: Store key
            mutator: Receives the current value (None if absent), returns the new value

        Returns:
            The value written
        """
        async with self.lock_for(key):
            current = await self.get(key)
            updated = mutator(current)
            await self.set(key, updated)
            return updated


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store; values are deep-copied in and out"""

    def __init__(self):
        super().__init__()
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SupabaseKeyValueStore(KeyValueStore):
    """
    Store backed by a Supabase table with ``key`` (text, primary key) and
    ``value`` (jsonb) columns.

    The Supabase client is synchronous; calls run in a worker thread.
    """

    def __init__(self, client: Optional[Client] = None, table: Optional[str] = None):
        super().__init__()
        self.client: Client = client or create_client(
            settings.supabase_url,
            settings.supabase_key
        )
        self.table = table or settings.supabase_table

    async def get(self, key: str) -> Optional[Any]:
        try:
            result = await asyncio.to_thread(
                lambda: self.client.table(self.table)
                .select("value")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            self._handle_error(f"get {key}", e)

        rows = result.data or []
        return rows[0]["value"] if rows else None

    async def set(self, key: str, value: Any) -> None:
        try:
            await asyncio.to_thread(
                lambda: self.client.table(self.table)
                .upsert({"key": key, "value": value})
                .execute()
            )
        except Exception as e:
            self._handle_error(f"set {key}", e)

    async def remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(
                lambda: self.client.table(self.table)
                .delete()
                .eq("key", key)
                .execute()
            )
        except Exception as e:
            self._handle_error(f"remove {key}", e)

    def _handle_error(self, operation: str, error: Exception):
        """
        Centralized error handling for store operations.

        Raises:
            Re-raises exception after logging
        """
        logger.error(f"Store error during {operation}: {error}")
        raise error


def create_store(backend: Optional[str] = None) -> KeyValueStore:
    """
    Build the store selected by settings.storage_backend

    Args:
        backend: Override ("memory" or "supabase")

    Returns:
        KeyValueStore instance
    """
    backend = (backend or settings.storage_backend).lower()
    if backend == "supabase":
        logger.info(f"Using Supabase key-value store (table={settings.supabase_table})")
        return SupabaseKeyValueStore()
    if backend != "memory":
        logger.warning(f"Unknown storage backend '{backend}', using in-memory store")
    return InMemoryKeyValueStore()
