"""
Unit tests for Usage Tracker
"""
import asyncio
from datetime import datetime, timezone

import pytest

from ticket_intel.models.schemas import UsageRecord
from ticket_intel.services.usage_tracker import HISTORY_LIMIT, UsageTracker


@pytest.fixture
def tracker(memory_store, fixed_clock):
    return UsageTracker(memory_store, clock=fixed_clock)


class TestRecord:
    """Recording model calls"""

    @pytest.mark.asyncio
    async def test_first_record(self, tracker):
        usage = await tracker.record("123", prompt_tokens=100, completion_tokens=20)

        assert usage.total_tokens == 120
        assert usage.prompt_tokens == 100
        assert usage.completion_tokens == 20
        assert usage.request_count == 1
        assert usage.last_request == "2024-03-10T12:00:00+00:00"
        assert usage.daily_usage == {"2024-03-10": 120}
        assert usage.history[0].ticket_id == "123"
        assert usage.history[0].tokens == 120

    @pytest.mark.asyncio
    async def test_reported_total_used(self, tracker):
        """A backend-reported total is recorded as given"""
        usage = await tracker.record("123", prompt_tokens=10, completion_tokens=5, total_tokens=16)

        assert usage.total_tokens == 16
        assert usage.daily_usage["2024-03-10"] == 16

    @pytest.mark.asyncio
    async def test_history_newest_first_and_bounded(self, tracker):
        for i in range(HISTORY_LIMIT + 5):
            await tracker.record(str(i), prompt_tokens=1, completion_tokens=1)

        usage = await tracker.snapshot()

        assert len(usage.history) == HISTORY_LIMIT
        assert usage.history[0].ticket_id == str(HISTORY_LIMIT + 4)
        assert usage.request_count == HISTORY_LIMIT + 5

    @pytest.mark.asyncio
    async def test_daily_sum_matches_total(self, memory_store):
        days = iter([
            datetime(2024, 3, 9, 23, 0, tzinfo=timezone.utc),
            datetime(2024, 3, 10, 1, 0, tzinfo=timezone.utc),
            datetime(2024, 3, 10, 2, 0, tzinfo=timezone.utc),
        ])
        tracker = UsageTracker(memory_store, clock=lambda: next(days))

        for tokens in (10, 20, 30):
            await tracker.record("1", prompt_tokens=tokens, completion_tokens=0)

        usage = await tracker.snapshot()

        assert usage.daily_usage == {"2024-03-09": 10, "2024-03-10": 50}
        assert sum(usage.daily_usage.values()) == usage.total_tokens

    @pytest.mark.asyncio
    async def test_concurrent_records_are_all_counted(self, tracker):
        await asyncio.gather(*[
            tracker.record(str(i), prompt_tokens=2, completion_tokens=1)
            for i in range(30)
        ])

        usage = await tracker.snapshot()

        assert usage.request_count == 30
        assert usage.total_tokens == 90


class TestSnapshotAndReset:
    """Reading and resetting usage"""

    @pytest.mark.asyncio
    async def test_empty_snapshot(self, tracker):
        assert await tracker.snapshot() == UsageRecord()

    @pytest.mark.asyncio
    async def test_reset(self, tracker):
        await tracker.record("1", prompt_tokens=5, completion_tokens=5)

        await tracker.reset()

        assert await tracker.snapshot() == UsageRecord()
