"""
FastAPI dependency providers

Singletons are built lazily and cached; tests replace them through
``app.dependency_overrides``.
"""
from functools import lru_cache

from fastapi import HTTPException

from ticket_intel.errors import TicketIntelError
from ticket_intel.repositories.kv_store import KeyValueStore, create_store
from ticket_intel.services.model_client import ModelClient
from ticket_intel.services.pipeline import TicketPipeline
from ticket_intel.services.prompt_templates import PromptTemplateStore
from ticket_intel.services.summary_cache import SummaryCache
from ticket_intel.services.usage_tracker import UsageTracker
from ticket_intel.services.zendesk import ZendeskClient


@lru_cache()
def get_store() -> KeyValueStore:
    return create_store()


@lru_cache()
def get_pipeline() -> TicketPipeline:
    """Application-wide pipeline over the configured store"""
    store = get_store()
    return TicketPipeline(
        ticket_source=ZendeskClient(),
        model_client=ModelClient(),
        cache=SummaryCache(store),
        usage=UsageTracker(store),
        templates=PromptTemplateStore(store)
    )


def to_http_exception(error: TicketIntelError) -> HTTPException:
    """Carry message, suggestions and debug info to the client unchanged"""
    return HTTPException(status_code=error.status_code, detail=error.to_dict())
