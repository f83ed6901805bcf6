"""
Ticket intelligence services
"""
from .model_client import ModelClient
from .pipeline import TicketPipeline
from .summary_cache import SummaryCache
from .usage_tracker import UsageTracker
from .zendesk import ZendeskClient

__all__ = [
    "ModelClient",
    "TicketPipeline",
    "SummaryCache",
    "UsageTracker",
    "ZendeskClient",
]
