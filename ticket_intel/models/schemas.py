"""
Pydantic models for the Ticket Intelligence Pipeline

Value objects passed between the extraction components, the model client
and the storage layer. Persisted entities (CacheEntry, UsageRecord) are
dumped with ``model_dump(mode="json")`` before reaching a key-value store.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Set

from pydantic import BaseModel, Field, ConfigDict


# ============================================================================
# Enums
# ============================================================================

class WarrantyStatus(str, Enum):
    """Warranty status derived from ticket tags"""
    IN_WARRANTY = "In warranty"
    OUT_OF_WARRANTY = "Out of warranty"
    EXPIRED = "Warranty expired"
    EXTENDED = "Extended warranty"
    UNKNOWN = "Unknown"


class UrgencyLevel(str, Enum):
    """Derived ticket urgency"""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class Backend(str, Enum):
    """Language model backend variants"""
    HOSTED = "hosted"
    LOCAL_SERVER = "local_server"


# ============================================================================
# Ticket models
# ============================================================================

class TicketComment(BaseModel):
    """Single comment as returned by the ticket source"""
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    body: str = ""
    public: bool = True
    created_at: Optional[str] = None
    via: Optional[Dict[str, Any]] = None

    @property
    def is_automated(self) -> bool:
        """Comments created by a trigger are automated notifications"""
        rel = ((self.via or {}).get("source") or {}).get("rel") or ""
        return "trigger" in rel


class TicketDetails(BaseModel):
    """Ticket metadata as returned by the ticket source"""
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    subject: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    priority: Optional[str] = None
    custom_fields: List[Dict[str, Any]] = Field(default_factory=list)


class TicketData(BaseModel):
    """Combined ticket-source payload: comments plus optional ticket details"""
    comments: List[TicketComment] = Field(default_factory=list)
    ticket: Optional[TicketDetails] = None
    custom_fields: Dict[str, Any] = Field(default_factory=dict)


class TicketContext(BaseModel):
    """Assembled ticket text and tags for one extraction request"""
    model_config = ConfigDict(frozen=True)

    ticket_id: str
    subject: str = ""
    raw_content: str = ""
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    priority: Optional[str] = None
    custom_fields: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Extraction models
# ============================================================================

class PatternMatches(BaseModel):
    """Identifiers detected in raw ticket text"""
    serial_numbers: Set[str] = Field(default_factory=set)
    imeis: Set[str] = Field(default_factory=set)
    addresses: Set[str] = Field(default_factory=set)
    emails: Set[str] = Field(default_factory=set)
    phones: Set[str] = Field(default_factory=set)


class ProductContext(BaseModel):
    """Structured context derived from ticket tags"""
    model: Optional[str] = None
    generation: Optional[str] = None
    issue_categories: List[str] = Field(default_factory=list)
    hardware_components: List[str] = Field(default_factory=list)
    os_version: Optional[str] = None
    software_context: List[str] = Field(default_factory=list)
    return_repair_status: List[str] = Field(default_factory=list)
    support_context: List[str] = Field(default_factory=list)
    warranty_status: WarrantyStatus = WarrantyStatus.UNKNOWN
    raw_tags: List[str] = Field(default_factory=list)


class UrgencyInfo(BaseModel):
    """Priority descriptor derived from ticket age and declared priority"""
    level: UrgencyLevel = UrgencyLevel.NORMAL
    age_in_days: int = Field(0, ge=0)
    is_old: bool = False
    description: str = "Normal priority"


class ExtractedFields(BaseModel):
    """Transactional fields recovered from a generated summary"""
    order_number: Optional[str] = None
    product: Optional[str] = None
    serial_number: Optional[str] = None
    date_of_purchase: Optional[str] = None
    reason_for_return: Optional[str] = None
    address: Optional[str] = None
    brief_summary: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """True when no field was recovered"""
        return all(value is None for value in self.model_dump().values())


# ============================================================================
# Model backend models
# ============================================================================

class ModelBackendConfig(BaseModel):
    """Connection parameters consumed by the pipeline"""
    use_local_server: bool = False
    hosted_api_key: str = ""
    local_server_url: str = ""
    local_model_name: str = ""
    prompt_template: str = ""


class TokenUsage(BaseModel):
    """Token counts for a single model call"""
    prompt_tokens: int = Field(0, ge=0)
    completion_tokens: int = Field(0, ge=0)
    total_tokens: int = Field(0, ge=0)


class CompletionResult(BaseModel):
    """Text generated by a model backend"""
    text: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    usage_estimated: bool = False
    backend: Backend = Backend.HOSTED
    endpoint_url: Optional[str] = None


class LocalModel(BaseModel):
    """Model advertised by a local model server"""
    model_config = ConfigDict(extra="allow")

    name: str
    size: int = 0


# ============================================================================
# Storage models
# ============================================================================

class CacheEntry(BaseModel):
    """Last generated summary for a ticket"""
    ticket_id: str
    summary: str
    extracted_fields: ExtractedFields = Field(default_factory=ExtractedFields)
    timestamp: str = Field(..., description="ISO-8601 creation time")


class UsageHistoryEntry(BaseModel):
    """One completed model call"""
    timestamp: str
    ticket_id: str
    tokens: int = 0
    prompt: int = 0
    completion: int = 0


class UsageRecord(BaseModel):
    """Accumulated token consumption"""
    total_tokens: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    request_count: int = 0
    last_request: Optional[str] = None
    daily_usage: Dict[str, int] = Field(default_factory=dict)
    history: List[UsageHistoryEntry] = Field(default_factory=list)


# ============================================================================
# Pipeline results
# ============================================================================

class SummaryResult(BaseModel):
    """Result of a summary request"""
    ticket_id: str
    summary: str
    extracted_fields: ExtractedFields
    cached: bool = False
    cached_at: Optional[str] = None
    usage: Optional[TokenUsage] = None
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class FollowupAnswer(BaseModel):
    """Answer to a follow-up question about a summarized ticket"""
    ticket_id: str
    question: str
    answer: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
