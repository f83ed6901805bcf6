"""
Pytest configuration and fixtures
"""
import pytest
from typing import Dict, Any


@pytest.fixture
def sample_comment_payload() -> Dict[str, Any]:
    """Single comment as returned by the Zendesk comments endpoint"""
    return {
        "id": 1,
        "body": "My phone screen cracked.",
        "public": True,
        "created_at": "2024-03-01T09:00:00Z",
        "via": {"channel": "web", "source": {"rel": None}},
        "author_id": 42,
    }


@pytest.fixture
def sample_usage_payload() -> Dict[str, Any]:
    """Persisted usage record"""
    return {
        "total_tokens": 150,
        "prompt_tokens": 100,
        "completion_tokens": 50,
        "request_count": 2,
        "last_request": "2024-03-10T12:00:00+00:00",
        "daily_usage": {"2024-03-10": 150},
        "history": [
            {
                "timestamp": "2024-03-10T12:00:00+00:00",
                "ticket_id": "12345",
                "tokens": 75,
                "prompt": 50,
                "completion": 25,
            }
        ],
    }
