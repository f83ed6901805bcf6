"""
pytest configuration and shared fixtures for ticket_intel tests
"""
from datetime import datetime, timezone

import pytest

from ticket_intel.models.schemas import TicketData
from ticket_intel.repositories.kv_store import InMemoryKeyValueStore


FIXED_NOW = datetime(2024, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def memory_store():
    """Fresh in-memory key-value store"""
    return InMemoryKeyValueStore()


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2024-03-10 12:00 UTC"""
    return lambda: FIXED_NOW


@pytest.fixture
def sample_ticket_payload():
    """Raw Zendesk payloads for one ticket (comments + ticket details)"""
    return {
        "comments": {
            "comments": [
                {
                    "id": 1,
                    "body": "My phone screen cracked. Serial number: AB12-CD34-EF56.",
                    "public": True,
                    "created_at": "2024-03-01T09:00:00Z",
                    "via": {"channel": "web", "source": {"rel": None}},
                },
                {
                    "id": 2,
                    "body": "We received your request and will reply shortly.",
                    "public": True,
                    "created_at": "2024-03-01T09:00:05Z",
                    "via": {"channel": "rule", "source": {"rel": "trigger"}},
                },
                {
                    "id": 3,
                    "body": "Internal: check stock for replacement screens.",
                    "public": False,
                    "created_at": "2024-03-01T10:00:00Z",
                    "via": {"channel": "web", "source": {"rel": None}},
                },
                {
                    "id": 4,
                    "body": "My shipping address is 12 Baker Street, London, NW1 6XE.",
                    "public": True,
                    "created_at": "2024-03-02T08:00:00Z",
                    "via": {"channel": "email", "source": {"rel": None}},
                },
            ]
        },
        "ticket": {
            "ticket": {
                "id": 12345,
                "subject": "Cracked screen on Phone 4",
                "tags": ["phone4", "screen", "in-warranty", "return-requested"],
                "created_at": "2024-03-01T09:00:00Z",
                "priority": "normal",
                "custom_fields": [
                    {"id": 360001, "value": "ORD-12345"},
                    {"id": 360002, "value": None},
                ],
            }
        },
    }


@pytest.fixture
def sample_ticket_data(sample_ticket_payload):
    """TicketData built from the sample payloads"""
    return TicketData(
        comments=sample_ticket_payload["comments"]["comments"],
        ticket=sample_ticket_payload["ticket"]["ticket"],
    )
