"""
Model backend API routes

Local model discovery plus the saved and default prompt templates for
settings UIs.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ticket_intel.config import DEFAULT_PROMPT_TEMPLATE
from ticket_intel.dependencies import get_pipeline, to_http_exception
from ticket_intel.errors import TicketIntelError
from ticket_intel.models.schemas import LocalModel
from ticket_intel.services.pipeline import TicketPipeline
from ticket_intel.services.prompt_composer import TEMPLATE_VARIABLES
from ticket_intel.services.prompt_templates import PromptTemplateStore
from ticket_intel.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["models"])


class LocalModelsResponse(BaseModel):
    server_url: str
    models: List[LocalModel]


class PromptTemplateResponse(BaseModel):
    template: str
    variables: List[str]


class SavedPromptTemplateResponse(PromptTemplateResponse):
    custom: bool


class PromptTemplateRequest(BaseModel):
    template: str


@router.get("/models/local", response_model=LocalModelsResponse)
async def list_local_models(pipeline: TicketPipeline = Depends(get_pipeline)):
    """
    List models installed on the configured local model server

    Raises:
        HTTPException: AllEndpointsFailed when no candidate URL answered
    """
    config = pipeline.config
    try:
        models = await pipeline.model_client.list_local_models(config)
    except TicketIntelError as e:
        logger.error(f"Local model listing failed: {e.message}")
        raise to_http_exception(e)

    return LocalModelsResponse(server_url=config.local_server_url, models=models)


@router.get("/prompt-template/default", response_model=PromptTemplateResponse)
async def get_default_prompt_template():
    """Default prompt template and the placeholders it may use"""
    return PromptTemplateResponse(
        template=DEFAULT_PROMPT_TEMPLATE,
        variables=list(TEMPLATE_VARIABLES)
    )


def _template_store(pipeline: TicketPipeline) -> PromptTemplateStore:
    if pipeline.templates is None:
        raise HTTPException(status_code=503, detail="Prompt template storage is not configured")
    return pipeline.templates


@router.get("/prompt-template", response_model=SavedPromptTemplateResponse)
async def get_prompt_template(pipeline: TicketPipeline = Depends(get_pipeline)):
    """Template the pipeline will use; ``custom`` is True when the agent saved one"""
    saved = await _template_store(pipeline).get()
    return SavedPromptTemplateResponse(
        template=await pipeline.resolve_template(),
        variables=list(TEMPLATE_VARIABLES),
        custom=saved is not None
    )


@router.put("/prompt-template", response_model=SavedPromptTemplateResponse)
async def save_prompt_template(
    request: PromptTemplateRequest,
    pipeline: TicketPipeline = Depends(get_pipeline)
):
    """Save the agent's prompt template for all later summaries"""
    try:
        template = await _template_store(pipeline).save(request.template)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SavedPromptTemplateResponse(
        template=template,
        variables=list(TEMPLATE_VARIABLES),
        custom=True
    )


@router.delete("/prompt-template", response_model=SavedPromptTemplateResponse)
async def reset_prompt_template(pipeline: TicketPipeline = Depends(get_pipeline)):
    """Drop the saved template; summaries use the configured default again"""
    await _template_store(pipeline).reset()
    return SavedPromptTemplateResponse(
        template=await pipeline.resolve_template(),
        variables=list(TEMPLATE_VARIABLES),
        custom=False
    )
