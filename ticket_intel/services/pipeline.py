"""
Ticket Pipeline - orchestrates one summary request

Flow:
    cache check -> fetch ticket -> classify tags / urgency / patterns
    -> compose prompt -> model completion -> field extraction
    -> usage record + cache write

Concurrent requests for the same ticket share one in-flight computation.
Cache and usage failures never fail a summary: reads degrade to a miss,
writes are logged.
"""
import asyncio
from typing import Dict, Optional, Protocol

from ticket_intel.config import get_settings, validate_backend_config, DEFAULT_PROMPT_TEMPLATE
from ticket_intel.errors import NoTicketComments, SummaryNotCached
from ticket_intel.models.schemas import (
    CacheEntry,
    ExtractedFields,
    FollowupAnswer,
    ModelBackendConfig,
    SummaryResult,
    TicketContext,
    TicketData,
    TokenUsage,
)
from ticket_intel.services.field_extractor import extract_fields
from ticket_intel.services.model_client import ModelClient
from ticket_intel.services.pattern_extractor import extract_patterns
from ticket_intel.services.prompt_composer import (
    build_followup_prompt,
    build_prompt_variables,
    compose_prompt,
)
from ticket_intel.services.prompt_templates import PromptTemplateStore
from ticket_intel.services.summary_cache import SummaryCache
from ticket_intel.services.tag_classifier import classify_tags
from ticket_intel.services.urgency import calculate_urgency
from ticket_intel.services.usage_tracker import UsageTracker
from ticket_intel.services.zendesk import build_ticket_context
from ticket_intel.utils.logger import get_logger

logger = get_logger(__name__)


class TicketSource(Protocol):
    async def fetch_ticket_comments(self, ticket_id: str) -> TicketData:
        ...


class TicketPipeline:
    """Summary generation and follow-up questions for support tickets"""

    def __init__(
        self,
        ticket_source: TicketSource,
        model_client: ModelClient,
        cache: SummaryCache,
        usage: UsageTracker,
        config: Optional[ModelBackendConfig] = None,
        templates: Optional[PromptTemplateStore] = None
    ):
        self.ticket_source = ticket_source
        self.model_client = model_client
        self.cache = cache
        self.usage = usage
        self.config = config or get_settings().model_backend()
        self.templates = templates
        self._inflight: Dict[str, asyncio.Future] = {}

    async def summarize(self, ticket_id: str, force_refresh: bool = False) -> SummaryResult:
        """
        Summarize a ticket, serving the cached summary when present

        Args:
            ticket_id: Ticket identifier
            force_refresh: Skip the cache lookup and regenerate

        Returns:
            SummaryResult (``cached`` is True when served from the cache)

        Raises:
            ConfigurationInvalid: Backend configuration incomplete
            NoTicketComments: Ticket has no comments
            UpstreamRequestFailed: Ticket source or model backend failure
        """
        ticket_id = str(ticket_id)

        if not force_refresh:
            entry = await self._read_cache(ticket_id)
            if entry is not None:
                logger.info(f"Serving cached summary for ticket {ticket_id}")
                return SummaryResult(
                    ticket_id=ticket_id,
                    summary=entry.summary,
                    extracted_fields=entry.extracted_fields,
                    cached=True,
                    cached_at=entry.timestamp
                )

        validate_backend_config(self.config)

        task = self._inflight.get(ticket_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_summarize(ticket_id))
            self._inflight[ticket_id] = task
            task.add_done_callback(lambda _: self._inflight.pop(ticket_id, None))
        else:
            logger.info(f"Joining in-flight summary for ticket {ticket_id}")

        return await asyncio.shield(task)

    async def _fetch_and_summarize(self, ticket_id: str) -> SummaryResult:
        ticket_data = await self.ticket_source.fetch_ticket_comments(ticket_id)
        return await self.summarize_ticket_data(ticket_id, ticket_data)

    async def summarize_ticket_data(self, ticket_id: str, ticket_data: TicketData) -> SummaryResult:
        """
        Summarize already-fetched ticket data (no cache lookup)

        Raises:
            NoTicketComments: ticket_data carries no comments
        """
        if not ticket_data.comments:
            raise NoTicketComments(
                "No comments found for this ticket",
                suggestions=["Check that the ticket has at least one comment"],
                debug_info={"ticket_id": str(ticket_id)}
            )

        context = build_ticket_context(ticket_id, ticket_data)
        return await self.summarize_context(context)

    async def summarize_context(self, context: TicketContext) -> SummaryResult:
        """
        Run extraction, completion and storage for an assembled ticket

        Args:
            context: Assembled ticket text and metadata

        Returns:
            Freshly generated SummaryResult
        """
        validate_backend_config(self.config)

        product_context = classify_tags(context.tags)
        urgency = None
        if context.created_at or context.priority:
            urgency = calculate_urgency(context.created_at, context.priority)
        patterns = extract_patterns(context.raw_content)

        variables = build_prompt_variables(
            ticket_id=context.ticket_id,
            ticket_content=context.raw_content,
            patterns=patterns,
            product_context=product_context,
            urgency=urgency
        )
        template = await self.resolve_template()
        prompt = compose_prompt(template, variables)

        logger.info(f"Generating summary for ticket {context.ticket_id}")
        completion = await self.model_client.complete(prompt, self.config)

        await self._record_usage(context.ticket_id, completion.usage)

        fields = extract_fields(completion.text)
        await self._write_cache(context.ticket_id, completion.text, fields)

        return SummaryResult(
            ticket_id=context.ticket_id,
            summary=completion.text,
            extracted_fields=fields,
            cached=False,
            usage=completion.usage
        )

    async def resolve_template(self) -> str:
        """Saved template first, then the configured one, then the default"""
        if self.templates is not None:
            try:
                saved = await self.templates.get()
            except Exception as e:
                logger.warning(f"Prompt template read failed, using configured template: {e}")
                saved = None
            if saved:
                return saved
        return self.config.prompt_template or DEFAULT_PROMPT_TEMPLATE

    async def ask_followup(self, ticket_id: str, question: str) -> FollowupAnswer:
        """
        Answer a question about a previously summarized ticket

        Args:
            ticket_id: Ticket identifier
            question: Agent question

        Returns:
            FollowupAnswer

        Raises:
            SummaryNotCached: The ticket has not been summarized yet
        """
        ticket_id = str(ticket_id)
        validate_backend_config(self.config)

        entry = await self._read_cache(ticket_id)
        if entry is None:
            raise SummaryNotCached(
                "No summary available. Please summarize the ticket first.",
                debug_info={"ticket_id": ticket_id}
            )

        prompt = build_followup_prompt(entry.summary, question)
        completion = await self.model_client.complete(prompt, self.config)
        await self._record_usage(ticket_id, completion.usage)

        return FollowupAnswer(
            ticket_id=ticket_id,
            question=question,
            answer=completion.text,
            usage=completion.usage
        )

    async def _read_cache(self, ticket_id: str) -> Optional[CacheEntry]:
        try:
            return await self.cache.get(ticket_id)
        except Exception as e:
            logger.warning(f"Cache read failed for ticket {ticket_id}, treating as miss: {e}")
            return None

    async def _write_cache(self, ticket_id: str, summary: str, fields: ExtractedFields) -> None:
        try:
            await self.cache.put(ticket_id, summary, fields)
        except Exception as e:
            logger.error(f"Cache write failed for ticket {ticket_id}: {e}")

    async def _record_usage(self, ticket_id: str, usage: TokenUsage) -> None:
        try:
            await self.usage.record(
                ticket_id,
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens
            )
        except Exception as e:
            logger.error(f"Usage tracking failed for ticket {ticket_id}: {e}")
