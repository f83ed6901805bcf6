"""
Tests for Pydantic schemas to verify validation logic
"""
import pytest
from pydantic import ValidationError

from ticket_intel.models.schemas import (
    CacheEntry,
    ExtractedFields,
    LocalModel,
    TicketComment,
    TicketData,
    TokenUsage,
    UrgencyInfo,
    UsageRecord,
    WarrantyStatus,
)


class TestTicketComment:
    """Test comment parsing"""

    def test_extra_fields_kept(self, sample_comment_payload):
        """Unknown Zendesk fields are preserved"""
        comment = TicketComment(**sample_comment_payload)

        assert comment.body == "My phone screen cracked."
        assert comment.model_extra["author_id"] == 42

    def test_web_comment_not_automated(self, sample_comment_payload):
        assert TicketComment(**sample_comment_payload).is_automated is False

    def test_trigger_comment_is_automated(self):
        comment = TicketComment(body="We received your request", via={"source": {"rel": "trigger"}})

        assert comment.is_automated is True

    def test_missing_via(self):
        assert TicketComment(body="Hello").is_automated is False

    def test_ticket_data_defaults(self):
        data = TicketData()

        assert data.comments == []
        assert data.ticket is None
        assert data.custom_fields == {}


class TestExtractedFields:
    """Test extracted field container"""

    def test_empty(self):
        assert ExtractedFields().is_empty is True

    def test_not_empty(self):
        assert ExtractedFields(order_number="ORD-1").is_empty is False


class TestNonNegativeCounts:
    """Token counts and ticket age cannot be negative"""

    def test_negative_tokens_rejected(self):
        with pytest.raises(ValidationError):
            TokenUsage(prompt_tokens=-1)

    def test_negative_age_rejected(self):
        with pytest.raises(ValidationError):
            UrgencyInfo(age_in_days=-3)


class TestStorageModels:
    """Test persisted entities"""

    def test_cache_entry_requires_timestamp(self):
        with pytest.raises(ValidationError):
            CacheEntry(ticket_id="12345", summary="text")

    def test_cache_entry_json_dump(self):
        entry = CacheEntry(
            ticket_id="12345",
            summary="text",
            extracted_fields=ExtractedFields(order_number="ORD-1"),
            timestamp="2024-03-10T12:00:00+00:00"
        )

        dumped = entry.model_dump(mode="json")

        assert dumped["extracted_fields"]["order_number"] == "ORD-1"
        assert CacheEntry(**dumped) == entry

    def test_usage_record_from_payload(self, sample_usage_payload):
        record = UsageRecord(**sample_usage_payload)

        assert record.total_tokens == 150
        assert record.history[0].ticket_id == "12345"
        assert record.daily_usage == {"2024-03-10": 150}

    def test_usage_record_defaults(self):
        record = UsageRecord()

        assert record.request_count == 0
        assert record.last_request is None
        assert record.history == []


def test_local_model_keeps_server_metadata():
    model = LocalModel(name="llama3", size=4000, digest="abc")

    assert model.model_extra == {"digest": "abc"}


def test_warranty_status_values():
    assert WarrantyStatus.IN_WARRANTY.value == "In warranty"
    assert WarrantyStatus("Unknown") is WarrantyStatus.UNKNOWN
