"""
Usage Tracker - token consumption across model calls

Keeps running totals, per-day totals and the most recent requests
(newest first, capped at HISTORY_LIMIT). Each record() is one atomic
read-modify-write of the single usage key.
"""
from datetime import datetime, timezone as dt_timezone
from typing import Any, Callable, Dict, Optional

from ticket_intel.models.schemas import UsageHistoryEntry, UsageRecord
from ticket_intel.repositories.kv_store import KeyValueStore
from ticket_intel.utils.logger import get_logger

logger = get_logger(__name__)

USAGE_KEY = "tokenUsage"
HISTORY_LIMIT = 20


def _utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


class UsageTracker:
    """Accumulates token usage in a key-value store"""

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = _utc_now):
        self.store = store
        self.clock = clock

    async def record(
        self,
        ticket_id: str,
        prompt_tokens: int,
        completion_tokens: int,
        total_tokens: Optional[int] = None
    ) -> UsageRecord:
        """
        Record one completed model call

        Args:
            ticket_id: Ticket the call was made for
            prompt_tokens: Prompt token count
            completion_tokens: Completion token count
            total_tokens: Total reported by the backend (defaults to the sum)

        Returns:
            Updated UsageRecord
        """
        if total_tokens is None:
            total_tokens = prompt_tokens + completion_tokens

        now = self.clock()
        timestamp = now.isoformat()
        today = now.strftime("%Y-%m-%d")

        def apply(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            usage = UsageRecord(**current) if current else UsageRecord()

            usage.total_tokens += total_tokens
            usage.prompt_tokens += prompt_tokens
            usage.completion_tokens += completion_tokens
            usage.request_count += 1
            usage.last_request = timestamp
            usage.daily_usage[today] = usage.daily_usage.get(today, 0) + total_tokens

            usage.history.insert(0, UsageHistoryEntry(
                timestamp=timestamp,
                ticket_id=str(ticket_id or "unknown"),
                tokens=total_tokens,
                prompt=prompt_tokens,
                completion=completion_tokens
            ))
            del usage.history[HISTORY_LIMIT:]

            return usage.model_dump(mode="json")

        updated = await self.store.update(USAGE_KEY, apply)
        logger.info(
            f"Recorded {total_tokens} tokens for ticket {ticket_id} "
            f"(prompt={prompt_tokens}, completion={completion_tokens})"
        )
        return UsageRecord(**updated)

    async def snapshot(self) -> UsageRecord:
        """Current usage (zeroed record when nothing was recorded)"""
        current = await self.store.get(USAGE_KEY)
        return UsageRecord(**current) if current else UsageRecord()

    async def reset(self) -> UsageRecord:
        """Zero all counters and drop the history"""
        empty = UsageRecord()
        await self.store.update(USAGE_KEY, lambda _: empty.model_dump(mode="json"))
        logger.info("Token usage reset")
        return empty
