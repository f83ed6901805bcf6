"""
Ticket summary API routes

Summaries, cache management, follow-up questions and ticket-ID
resolution from agent console URLs.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ticket_intel.dependencies import get_pipeline, to_http_exception
from ticket_intel.errors import TicketIntelError
from ticket_intel.models.schemas import CacheEntry, FollowupAnswer, SummaryResult
from ticket_intel.services.pipeline import TicketPipeline
from ticket_intel.utils.logger import get_logger
from ticket_intel.utils.validators import (
    extract_ticket_id_from_url,
    sanitize_input,
    validate_ticket_id,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/tickets", tags=["tickets"])


class SummaryRequest(BaseModel):
    """Request model for summary generation"""
    force_refresh: bool = False


class FollowupRequest(BaseModel):
    """Request model for a follow-up question"""
    question: str = Field(..., min_length=1, max_length=2000)


class InvalidateResponse(BaseModel):
    ticket_id: str
    removed: bool


class ResolveResponse(BaseModel):
    ticket_id: str


def _require_ticket_id(ticket_id: str) -> str:
    if not validate_ticket_id(ticket_id):
        raise HTTPException(status_code=400, detail="Invalid ticket ID format")
    return ticket_id


@router.get("/resolve", response_model=ResolveResponse)
async def resolve_ticket_id(url: str = Query(..., description="Agent console URL")):
    """Extract the ticket ID from a ticket page URL"""
    ticket_id = extract_ticket_id_from_url(url)
    if ticket_id is None:
        raise HTTPException(status_code=404, detail="Not on a Zendesk ticket page")
    return ResolveResponse(ticket_id=ticket_id)


@router.delete("/summaries")
async def clear_summaries(pipeline: TicketPipeline = Depends(get_pipeline)):
    """Remove every cached summary"""
    await pipeline.cache.clear()
    return {"cleared": True}


@router.post("/{ticket_id}/summary", response_model=SummaryResult)
async def summarize_ticket(
    ticket_id: str,
    request: Optional[SummaryRequest] = None,
    pipeline: TicketPipeline = Depends(get_pipeline)
):
    """
    Summarize a ticket

    Returns the cached summary (``cached: true``) unless ``force_refresh``
    is set.

    Raises:
        HTTPException: Mapped from the pipeline error (status, message,
            suggestions, debug_info)
    """
    _require_ticket_id(ticket_id)
    force_refresh = request.force_refresh if request else False

    try:
        return await pipeline.summarize(ticket_id, force_refresh=force_refresh)
    except TicketIntelError as e:
        logger.error(f"Summary failed for ticket {ticket_id}: {e.message}")
        raise to_http_exception(e)


@router.get("/{ticket_id}/summary", response_model=CacheEntry)
async def get_cached_summary(ticket_id: str, pipeline: TicketPipeline = Depends(get_pipeline)):
    """Get the cached summary without generating one"""
    _require_ticket_id(ticket_id)
    entry = await pipeline.cache.get(ticket_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No cached summary for ticket {ticket_id}")
    return entry


@router.delete("/{ticket_id}/summary", response_model=InvalidateResponse)
async def invalidate_summary(ticket_id: str, pipeline: TicketPipeline = Depends(get_pipeline)):
    """Drop the cached summary so the next request regenerates it"""
    _require_ticket_id(ticket_id)
    removed = await pipeline.cache.invalidate(ticket_id)
    return InvalidateResponse(ticket_id=ticket_id, removed=removed)


@router.post("/{ticket_id}/followup", response_model=FollowupAnswer)
async def ask_followup(
    ticket_id: str,
    request: FollowupRequest,
    pipeline: TicketPipeline = Depends(get_pipeline)
):
    """Answer a question about an already summarized ticket"""
    _require_ticket_id(ticket_id)
    question = sanitize_input(request.question, max_length=2000)
    if not question:
        raise HTTPException(status_code=400, detail="Please enter a question")

    try:
        return await pipeline.ask_followup(ticket_id, question)
    except TicketIntelError as e:
        logger.error(f"Follow-up failed for ticket {ticket_id}: {e.message}")
        raise to_http_exception(e)
