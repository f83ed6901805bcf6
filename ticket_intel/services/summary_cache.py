"""
Summary Cache - last generated summary per ticket

All entries live under one store key; every mutation goes through the
store's atomic update. There is no expiry: entries are removed only by
invalidate() or clear().
"""
from datetime import datetime, timezone as dt_timezone
from typing import Any, Callable, Dict, Optional

from ticket_intel.models.schemas import CacheEntry, ExtractedFields
from ticket_intel.repositories.kv_store import KeyValueStore
from ticket_intel.utils.logger import get_logger

logger = get_logger(__name__)

CACHE_KEY = "ticketCache"


def _utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


class SummaryCache:
    """Per-ticket summary cache with last-write-wins semantics"""

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = _utc_now):
        self.store = store
        self.clock = clock

    async def get(self, ticket_id: str) -> Optional[CacheEntry]:
        """
        Get the cached summary for a ticket

        Returns:
            CacheEntry or None when the ticket has not been summarized
        """
        cache: Dict[str, Any] = await self.store.get(CACHE_KEY) or {}
        entry = cache.get(str(ticket_id))
        if entry is None:
            return None
        return CacheEntry(**entry)

    async def put(
        self,
        ticket_id: str,
        summary: str,
        extracted_fields: ExtractedFields
    ) -> CacheEntry:
        """
        Store a summary, fully replacing any previous entry for the ticket

        Returns:
            The stored CacheEntry
        """
        entry = CacheEntry(
            ticket_id=str(ticket_id),
            summary=summary,
            extracted_fields=extracted_fields,
            timestamp=self.clock().isoformat()
        )

        def write(cache: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            cache = dict(cache or {})
            cache[entry.ticket_id] = entry.model_dump(mode="json")
            return cache

        await self.store.update(CACHE_KEY, write)
        logger.info(f"Cached summary for ticket {entry.ticket_id}")
        return entry

    async def invalidate(self, ticket_id: str) -> bool:
        """
        Remove the cached summary for one ticket

        Returns:
            True if an entry was removed
        """
        removed = False

        def drop(cache: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            nonlocal removed
            cache = dict(cache or {})
            removed = cache.pop(str(ticket_id), None) is not None
            return cache

        await self.store.update(CACHE_KEY, drop)
        if removed:
            logger.info(f"Invalidated cached summary for ticket {ticket_id}")
        return removed

    async def clear(self) -> None:
        """Remove every cached summary"""
        await self.store.update(CACHE_KEY, lambda _: {})
        logger.info("Cleared all cached summaries")
