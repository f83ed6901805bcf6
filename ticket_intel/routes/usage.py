"""
Token usage API routes
"""
from fastapi import APIRouter, Depends

from ticket_intel.dependencies import get_pipeline
from ticket_intel.models.schemas import UsageRecord
from ticket_intel.services.pipeline import TicketPipeline

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("", response_model=UsageRecord)
async def get_usage(pipeline: TicketPipeline = Depends(get_pipeline)):
    """
    Get accumulated token usage

    Totals, per-day totals and the 20 most recent requests.
    """
    return await pipeline.usage.snapshot()


@router.delete("", response_model=UsageRecord)
async def reset_usage(pipeline: TicketPipeline = Depends(get_pipeline)):
    """Reset all counters"""
    return await pipeline.usage.reset()
