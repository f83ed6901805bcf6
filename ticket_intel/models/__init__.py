"""
Pydantic models for the Ticket Intelligence Pipeline
"""

from ticket_intel.models.schemas import (
    # Enums
    WarrantyStatus,
    UrgencyLevel,
    Backend,

    # Ticket Models
    TicketComment,
    TicketDetails,
    TicketData,
    TicketContext,

    # Extraction Models
    PatternMatches,
    ProductContext,
    UrgencyInfo,
    ExtractedFields,

    # Model Backend Models
    ModelBackendConfig,
    TokenUsage,
    CompletionResult,
    LocalModel,

    # Storage Models
    CacheEntry,
    UsageHistoryEntry,
    UsageRecord,

    # Pipeline Results
    SummaryResult,
    FollowupAnswer,
)

__all__ = [
    # Enums
    "WarrantyStatus",
    "UrgencyLevel",
    "Backend",

    # Ticket Models
    "TicketComment",
    "TicketDetails",
    "TicketData",
    "TicketContext",

    # Extraction Models
    "PatternMatches",
    "ProductContext",
    "UrgencyInfo",
    "ExtractedFields",

    # Model Backend Models
    "ModelBackendConfig",
    "TokenUsage",
    "CompletionResult",
    "LocalModel",

    # Storage Models
    "CacheEntry",
    "UsageHistoryEntry",
    "UsageRecord",

    # Pipeline Results
    "SummaryResult",
    "FollowupAnswer",
]
