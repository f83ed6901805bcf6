"""
Model Client - "ask a language model" over two backends

Backends:
- Hosted: one chat-completion call through the OpenAI SDK, failures are terminal
- Local server: candidate base URLs tried in order, each walked through an
  endpoint ladder (version probe, generate, chat, legacy completions)

The local ladder is an explicit transition table (LADDER_TRANSITIONS) so
the retry order can be tested without a server. Calls are strictly
sequential; there are no retries outside the ladder.
"""
import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import openai
from openai import AsyncOpenAI

from ticket_intel.config import get_settings, DEFAULT_LOCAL_SERVER_PORT
from ticket_intel.errors import (
    AllEndpointsFailed,
    LocalServerForbidden,
    MalformedUpstreamResponse,
    UpstreamAuthFailed,
    UpstreamNotFound,
    UpstreamRateLimitedOrServerError,
    UpstreamRequestFailed,
)
from ticket_intel.models.schemas import (
    Backend,
    CompletionResult,
    LocalModel,
    ModelBackendConfig,
    TokenUsage,
)
from ticket_intel.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

PORT_PATTERN = re.compile(r':(\d+)')

LOCAL_SERVER_SUGGESTIONS = [
    "Ensure the local model server is running on your computer",
    f"Check the URL in settings (default: http://localhost:{DEFAULT_LOCAL_SERVER_PORT})",
    "Make sure the model is downloaded with 'ollama pull modelname'",
    "Try restarting the server with CORS headers: OLLAMA_ORIGINS=* ollama serve",
]

CORS_REMEDIATION = (
    "Restart the local model server allowing all origins: OLLAMA_ORIGINS=* ollama serve"
)


def estimate_tokens(text: Optional[str]) -> int:
    """Rough estimation: 1 token ≈ 4 characters"""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def estimate_usage(prompt: str, completion: str) -> TokenUsage:
    """Estimate prompt and completion tokens independently"""
    prompt_tokens = estimate_tokens(prompt)
    completion_tokens = estimate_tokens(completion)
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens
    )


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


# ============================================================================
# Hosted backend
# ============================================================================

class HostedBackend:
    """Hosted chat-completion API called through the OpenAI SDK"""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.hosted_base_url).rstrip("/")
        self.model = model or settings.hosted_model
        self.temperature = settings.model_temperature
        self.max_tokens = settings.hosted_max_tokens
        self.timeout = settings.request_timeout
        self.transport = transport

    @property
    def endpoint_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _map_status_error(self, error: openai.APIStatusError) -> UpstreamRequestFailed:
        status = error.status_code
        body = error.response.text
        message = f"Hosted model API error ({status}): {body}"

        if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return UpstreamAuthFailed(message, upstream_status=status, response_body=body)
        if isinstance(error, openai.NotFoundError):
            return UpstreamNotFound(message, upstream_status=status, response_body=body)
        if isinstance(error, openai.RateLimitError) or status >= 500:
            return UpstreamRateLimitedOrServerError(message, upstream_status=status, response_body=body)
        return UpstreamRequestFailed(message, upstream_status=status, response_body=body)

    async def complete(self, prompt: str) -> CompletionResult:
        """
        Single completion call, SDK retries disabled

        Args:
            prompt: Prompt text

        Returns:
            CompletionResult with usage from the response (estimated if absent)

        Raises:
            UpstreamAuthFailed: 401/403
            UpstreamNotFound: 404
            UpstreamRateLimitedOrServerError: 429/5xx
            UpstreamRequestFailed: Other non-2xx or transport failure
            MalformedUpstreamResponse: 2xx without choices/message
        """
        logger.info(f"Requesting hosted completion ({self.model})")
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as http_client:
            client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
                timeout=self.timeout,
                http_client=http_client
            )
            try:
                response = await client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens
                )
            except openai.APIStatusError as e:
                logger.error(f"Hosted completion failed with status {e.status_code}")
                raise self._map_status_error(e) from e
            except openai.APIError as e:
                logger.error(f"Hosted completion request failed: {e}")
                raise UpstreamRequestFailed(f"Hosted model API request failed: {e}") from e

        try:
            text = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise MalformedUpstreamResponse(
                "Invalid response from hosted model API",
                debug_info={"raw_data": str(response)[:200]}
            ) from e

        if text is None:
            raise MalformedUpstreamResponse("Hosted model API returned an empty message")

        usage_data = getattr(response, "usage", None)
        if usage_data is not None:
            prompt_tokens = getattr(usage_data, "prompt_tokens", None) or 0
            completion_tokens = getattr(usage_data, "completion_tokens", None) or 0
            usage = TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=getattr(usage_data, "total_tokens", None) or prompt_tokens + completion_tokens,
            )
            estimated = False
        else:
            usage = estimate_usage(prompt, text)
            estimated = True

        return CompletionResult(
            text=text,
            usage=usage,
            usage_estimated=estimated,
            backend=Backend.HOSTED,
            endpoint_url=self.endpoint_url
        )


# ============================================================================
# Local server backend
# ============================================================================

class LadderState(str, Enum):
    """States of the per-URL endpoint ladder"""
    PROBING = "probing"
    TRY_PRIMARY = "try_primary"
    TRY_CHAT = "try_chat"
    TRY_LEGACY = "try_legacy"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class Outcome(str, Enum):
    OK = "ok"
    FAILED = "failed"


LADDER_TRANSITIONS: Dict[Tuple[LadderState, Outcome], LadderState] = {
    # Probe result is informational only
    (LadderState.PROBING, Outcome.OK): LadderState.TRY_PRIMARY,
    (LadderState.PROBING, Outcome.FAILED): LadderState.TRY_PRIMARY,
    (LadderState.TRY_PRIMARY, Outcome.OK): LadderState.SUCCEEDED,
    (LadderState.TRY_PRIMARY, Outcome.FAILED): LadderState.TRY_CHAT,
    (LadderState.TRY_CHAT, Outcome.OK): LadderState.SUCCEEDED,
    (LadderState.TRY_CHAT, Outcome.FAILED): LadderState.TRY_LEGACY,
    (LadderState.TRY_LEGACY, Outcome.OK): LadderState.SUCCEEDED,
    (LadderState.TRY_LEGACY, Outcome.FAILED): LadderState.EXHAUSTED,
}

TERMINAL_STATES = {LadderState.SUCCEEDED, LadderState.EXHAUSTED}


def next_state(state: LadderState, outcome: Outcome) -> LadderState:
    """Look up the ladder transition for a state and call outcome"""
    return LADDER_TRANSITIONS[(state, outcome)]


def _parse_generate(data: Any) -> str:
    text = data.get("response") if isinstance(data, dict) else None
    if not text or not isinstance(text, str):
        raise MalformedUpstreamResponse(
            "Invalid response format from local model server",
            debug_info={
                "received_keys": list(data.keys()) if isinstance(data, dict) else [],
                "raw_data": json.dumps(data)[:200] + "...",
                "expected": 'Expected a "response" property in the data object',
            }
        )
    return text


def _parse_chat(data: Dict[str, Any]) -> str:
    message = data.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, str) and content:
        return content
    return json.dumps(data)


def _parse_legacy(data: Dict[str, Any]) -> str:
    choices = data.get("choices")
    first = choices[0] if isinstance(choices, list) and choices else None
    text = first.get("text") if isinstance(first, dict) else None
    if isinstance(text, str) and text:
        return text
    completion = data.get("completion")
    if isinstance(completion, str) and completion:
        return completion
    return json.dumps(data)


@dataclass(frozen=True)
class EndpointShape:
    """One historically-evolved completion endpoint of the local server"""
    path: str
    build_payload: Callable[[str, str, Dict[str, Any]], Dict[str, Any]]
    parse: Callable[[Any], str]


ENDPOINT_SHAPES: Dict[LadderState, EndpointShape] = {
    LadderState.TRY_PRIMARY: EndpointShape(
        path="/api/generate",
        build_payload=lambda model, prompt, options: {
            "model": model, "prompt": prompt, "stream": False, "options": options,
        },
        parse=_parse_generate,
    ),
    LadderState.TRY_CHAT: EndpointShape(
        path="/api/chat",
        build_payload=lambda model, prompt, options: {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            "options": options,
        },
        parse=_parse_chat,
    ),
    LadderState.TRY_LEGACY: EndpointShape(
        path="/api/completions",
        build_payload=lambda model, prompt, options: {
            "model": model, "prompt": prompt, "options": options,
        },
        parse=_parse_legacy,
    ),
}


@dataclass
class EndpointAttempt:
    """Diagnostic record of one endpoint call"""
    url: str
    status_code: Optional[int] = None
    error: Optional[str] = None


@dataclass
class LadderRun:
    """Outcome of walking the ladder against one base URL"""
    base_url: str
    state: LadderState
    text: Optional[str] = None
    endpoint_url: Optional[str] = None
    server_version: Optional[str] = None
    attempts: List[EndpointAttempt] = field(default_factory=list)
    primary_response: Optional[httpx.Response] = None


def normalize_base_url(url: str) -> str:
    """Add a missing protocol and strip the trailing slash"""
    url = (url or "").strip() or f"http://localhost:{DEFAULT_LOCAL_SERVER_PORT}"
    if not url.startswith(("http://", "https://")):
        url = "http://" + url
    return url[:-1] if url.endswith("/") else url


def candidate_base_urls(configured_url: str) -> List[str]:
    """
    Derive candidate base URLs for the local server

    Order: configured URL, localhost, 127.0.0.1 (same port), duplicates removed.

    Example:
        >>> candidate_base_urls("http://localhost:11434/")
        ['http://localhost:11434', 'http://127.0.0.1:11434']
    """
    base_url = normalize_base_url(configured_url)
    port_match = PORT_PATTERN.search(base_url)
    port = port_match.group(1) if port_match else DEFAULT_LOCAL_SERVER_PORT

    candidates = [base_url, f"http://localhost:{port}", f"http://127.0.0.1:{port}"]
    return list(dict.fromkeys(candidates))


class LocalServerBackend:
    """
    Resilient client for a local model server

    Every candidate URL is walked through the endpoint ladder in URL-major,
    endpoint-minor order; the first success wins.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        probe_version: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.configured_url = base_url
        self.model = model
        self.probe_version = settings.local_probe_version if probe_version is None else probe_version
        self.options = {
            "temperature": settings.model_temperature,
            "num_predict": settings.local_num_predict,
        }
        self.timeout = settings.request_timeout
        self.transport = transport
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @property
    def candidate_urls(self) -> List[str]:
        return candidate_base_urls(self.configured_url)

    async def _probe(self, client: httpx.AsyncClient, run: LadderRun) -> Outcome:
        """Query the server version; failures are logged and tolerated"""
        try:
            response = await client.get(f"{run.base_url}/api/version", headers=self.headers)
        except httpx.HTTPError as e:
            logger.debug(f"Version probe failed at {run.base_url}: {e}")
            return Outcome.FAILED

        if not _is_success(response):
            logger.debug(f"Version endpoint not available, status: {response.status_code}")
            return Outcome.FAILED

        try:
            run.server_version = response.json().get("version")
            logger.info(f"Local model server version detected: {run.server_version}")
        except (ValueError, AttributeError):
            logger.debug("Could not parse version data as JSON")
        return Outcome.OK

    async def _call_endpoint(
        self,
        client: httpx.AsyncClient,
        run: LadderRun,
        state: LadderState,
        prompt: str
    ) -> Outcome:
        shape = ENDPOINT_SHAPES[state]
        url = f"{run.base_url}{shape.path}"
        attempt = EndpointAttempt(url=url)
        run.attempts.append(attempt)

        logger.info(f"Trying {url}")
        try:
            response = await client.post(
                url,
                headers=self.headers,
                json=shape.build_payload(self.model, prompt, self.options)
            )
        except httpx.HTTPError as e:
            attempt.error = str(e) or type(e).__name__
            logger.warning(f"{url} request failed: {attempt.error}")
            return Outcome.FAILED

        attempt.status_code = response.status_code
        logger.info(f"{shape.path} response status: {response.status_code}")

        if state == LadderState.TRY_PRIMARY:
            run.primary_response = response

        if not _is_success(response):
            return Outcome.FAILED

        try:
            data = response.json()
        except ValueError:
            data = {"response": response.text}

        # The primary parser raises MalformedUpstreamResponse on any non-object body
        if not isinstance(data, dict) and state != LadderState.TRY_PRIMARY:
            attempt.error = f"Expected a JSON object, got {type(data).__name__}"
            logger.warning(f"{url} returned an unexpected body: {attempt.error}")
            return Outcome.FAILED

        run.text = shape.parse(data)
        run.endpoint_url = url
        return Outcome.OK

    async def run_ladder(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        prompt: str
    ) -> LadderRun:
        """
        Walk the endpoint ladder for one base URL

        Returns:
            LadderRun in SUCCEEDED or EXHAUSTED state
        """
        run = LadderRun(base_url=base_url, state=LadderState.TRY_PRIMARY)
        if self.probe_version:
            run.state = LadderState.PROBING

        while run.state not in TERMINAL_STATES:
            if run.state == LadderState.PROBING:
                outcome = await self._probe(client, run)
            else:
                outcome = await self._call_endpoint(client, run, run.state, prompt)
            run.state = next_state(run.state, outcome)

        return run

    def _exhaustion_error(self, run: LadderRun) -> UpstreamRequestFailed:
        """Build the error describing why a base URL failed"""
        primary = run.primary_response
        if primary is not None and primary.status_code == 403:
            return LocalServerForbidden(
                "Local model server error (403 Forbidden): CORS policy restriction. "
                + CORS_REMEDIATION,
                upstream_status=403,
                response_body=primary.text,
                suggestions=[CORS_REMEDIATION],
            )
        if primary is not None:
            return UpstreamRequestFailed(
                f"Local model server error ({primary.status_code}): {primary.text}",
                upstream_status=primary.status_code,
                response_body=primary.text,
            )
        last = run.attempts[-1] if run.attempts else None
        detail = last.error if last and last.error else "no response"
        return UpstreamRequestFailed(f"Could not reach local model server at {run.base_url}: {detail}")

    async def complete(self, prompt: str) -> CompletionResult:
        """
        Generate a completion from the first responsive URL and endpoint

        Args:
            prompt: Prompt text

        Returns:
            CompletionResult with estimated usage

        Raises:
            AllEndpointsFailed: Every candidate URL exhausted every endpoint
            MalformedUpstreamResponse: Primary endpoint answered without text
        """
        urls = self.candidate_urls
        logger.info(f"Querying local model {self.model}, will try these URLs: {urls}")

        attempted: List[str] = []
        attempts: List[EndpointAttempt] = []
        last_error: Optional[UpstreamRequestFailed] = None

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for base_url in urls:
                attempted.append(base_url)
                run = await self.run_ladder(client, base_url, prompt)
                attempts.extend(run.attempts)

                if run.state == LadderState.SUCCEEDED:
                    logger.info(f"Local model response received from {run.endpoint_url}")
                    return CompletionResult(
                        text=run.text,
                        usage=estimate_usage(prompt, run.text),
                        usage_estimated=True,
                        backend=Backend.LOCAL_SERVER,
                        endpoint_url=run.endpoint_url
                    )

                last_error = self._exhaustion_error(run)
                logger.warning(f"URL {base_url} failed, trying next one: {last_error}")

        suggestions = list(LOCAL_SERVER_SUGGESTIONS)
        if isinstance(last_error, LocalServerForbidden):
            suggestions.insert(0, CORS_REMEDIATION)

        error = AllEndpointsFailed(
            attempted_urls=attempted,
            last_error=last_error,
            suggestions=suggestions,
            debug_info={
                "model_name": self.model,
                "attempts": [
                    {"url": a.url, "status_code": a.status_code, "error": a.error}
                    for a in attempts
                ],
            }
        )
        logger.error(f"All local model server URLs failed: {error.attempted_urls}")
        raise error

    async def list_models(self) -> List[LocalModel]:
        """
        List models advertised by the local server

        Per URL: /api/tags, then /api/models, then /api/embeddings as a
        liveness check (reported as a single placeholder model).

        Raises:
            AllEndpointsFailed: No candidate URL answered
        """
        attempted: List[str] = []
        last_error: Optional[UpstreamRequestFailed] = None

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for base_url in self.candidate_urls:
                attempted.append(base_url)
                try:
                    models = await self._list_models_at(client, base_url)
                except UpstreamRequestFailed as e:
                    last_error = e
                    logger.warning(f"URL {base_url} failed for model fetching, trying next one")
                    continue
                logger.info(f"Fetched {len(models)} local models from {base_url}")
                return models

        raise AllEndpointsFailed(
            attempted_urls=attempted,
            last_error=last_error,
            suggestions=list(LOCAL_SERVER_SUGGESTIONS)
        )

    async def _list_models_at(self, client: httpx.AsyncClient, base_url: str) -> List[LocalModel]:
        last_status: Optional[int] = None
        for path in ("/api/tags", "/api/models"):
            try:
                response = await client.get(f"{base_url}{path}", headers=self.headers)
            except httpx.HTTPError as e:
                raise UpstreamRequestFailed(f"Failed to fetch models from {base_url}: {e}") from e

            if _is_success(response):
                try:
                    data = response.json()
                except ValueError:
                    data = {}
                models = data.get("models") if isinstance(data, dict) else None
                if not isinstance(models, list):
                    models = []
                return [
                    LocalModel(**m) for m in models
                    if isinstance(m, dict) and isinstance(m.get("name"), str) and m["name"]
                ]
            last_status = response.status_code

        try:
            response = await client.get(f"{base_url}/api/embeddings", headers=self.headers)
        except httpx.HTTPError as e:
            raise UpstreamRequestFailed(f"Failed to fetch models from {base_url}: {e}") from e

        if _is_success(response):
            # Server is up but does not list models
            return [LocalModel(name="default", size=0)]

        raise UpstreamRequestFailed(
            f"Failed to fetch models from {base_url}: {last_status}",
            upstream_status=last_status
        )


# ============================================================================
# Facade
# ============================================================================

class ModelClient:
    """Selects the backend from ModelBackendConfig and runs the completion"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    def backend_for(self, config: ModelBackendConfig):
        if config.use_local_server:
            return LocalServerBackend(
                base_url=config.local_server_url,
                model=config.local_model_name,
                transport=self.transport
            )
        return HostedBackend(api_key=config.hosted_api_key, transport=self.transport)

    async def complete(self, prompt: str, config: ModelBackendConfig) -> CompletionResult:
        """
        Ask the configured language model

        Args:
            prompt: Prompt text
            config: Backend selection and connection parameters

        Returns:
            CompletionResult
        """
        return await self.backend_for(config).complete(prompt)

    async def list_local_models(self, config: ModelBackendConfig) -> List[LocalModel]:
        """List models of the configured local server"""
        backend = LocalServerBackend(
            base_url=config.local_server_url,
            model=config.local_model_name,
            transport=self.transport
        )
        return await backend.list_models()
