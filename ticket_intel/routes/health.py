"""
Health check endpoints with dependency monitoring

Provides two endpoints:
- GET /api/health - Basic health check
- GET /api/health/dependencies - Model backend, ticket source and store status
"""
import asyncio
import time
from datetime import datetime
from typing import Dict, Optional

import httpx
from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from ticket_intel.config import get_settings
from ticket_intel.errors import ConfigurationInvalid, TicketIntelError
from ticket_intel.services.model_client import ModelClient
from ticket_intel.services.zendesk import normalize_domain
from ticket_intel.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])

APP_VERSION = "1.0.0"
APP_START_TIME = time.time()

# Dependency check results are reused for 30 seconds
_dependency_cache: Optional["DependencyHealth"] = None
_cache_timestamp: float = 0.0
CACHE_TTL_SECONDS = 30.0
CHECK_TIMEOUT_SECONDS = 5.0

# The pipeline cannot produce summaries without these
CRITICAL_SERVICES = ("model_backend",)


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthResponse(BaseModel):
    """Basic health check response"""
    status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Check timestamp")
    version: str = Field(..., description="Application version")
    uptime_seconds: float = Field(..., description="Application uptime in seconds")


class DependencyStatus(BaseModel):
    """Status of a single dependency"""
    name: str = Field(..., description="Dependency name")
    status: str = Field(..., description="Status: healthy, degraded, unhealthy")
    latency_ms: Optional[float] = Field(None, description="Response latency in milliseconds")
    error_message: Optional[str] = Field(None, description="Error message if not healthy")


class DependencyHealth(BaseModel):
    """Dependency health check response"""
    overall_status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    dependencies: Dict[str, DependencyStatus] = Field(..., description="Individual dependency statuses")
    checked_at: datetime = Field(default_factory=datetime.utcnow, description="Check timestamp")


# ============================================================================
# Dependency Check Functions
# ============================================================================

async def _timed_get(name: str, url: str, **kwargs) -> DependencyStatus:
    """GET a URL and report latency, mapping failures to unhealthy"""
    try:
        start = time.time()
        async with httpx.AsyncClient(timeout=CHECK_TIMEOUT_SECONDS) as client:
            response = await client.get(url, **kwargs)
            response.raise_for_status()
        latency = (time.time() - start) * 1000

        return DependencyStatus(name=name, status="healthy", latency_ms=round(latency, 2))

    except httpx.TimeoutException:
        logger.error(f"{name} health check timed out")
        return DependencyStatus(
            name=name,
            status="unhealthy",
            error_message=f"Request timed out after {CHECK_TIMEOUT_SECONDS:.0f} seconds"
        )
    except httpx.HTTPStatusError as e:
        logger.error(f"{name} health check failed: {e}")
        return DependencyStatus(
            name=name,
            status="unhealthy",
            error_message=f"HTTP {e.response.status_code}: {str(e)}"
        )
    except httpx.HTTPError as e:
        logger.error(f"{name} health check failed: {e}")
        return DependencyStatus(name=name, status="unhealthy", error_message=str(e))


async def check_local_server() -> DependencyStatus:
    """List models on the local server through the model client"""
    try:
        start = time.time()
        models = await asyncio.wait_for(
            ModelClient().list_local_models(settings.model_backend()),
            timeout=CHECK_TIMEOUT_SECONDS
        )
        latency = (time.time() - start) * 1000

        logger.debug(f"Local server reports {len(models)} models")
        return DependencyStatus(name="model_backend", status="healthy", latency_ms=round(latency, 2))

    except asyncio.TimeoutError:
        logger.error("model_backend health check timed out")
        return DependencyStatus(
            name="model_backend",
            status="unhealthy",
            error_message=f"Request timed out after {CHECK_TIMEOUT_SECONDS:.0f} seconds"
        )
    except TicketIntelError as e:
        logger.error(f"model_backend health check failed: {e.message}")
        return DependencyStatus(name="model_backend", status="unhealthy", error_message=e.message)


async def check_model_backend() -> DependencyStatus:
    """
    Check the configured language model backend

    Local server: list models across the candidate URLs.
    Hosted: GET /models with the bearer key.
    """
    if settings.use_local_server:
        return await check_local_server()

    if not settings.hosted_api_key:
        return DependencyStatus(
            name="model_backend",
            status="unhealthy",
            error_message="API key not configured"
        )

    return await _timed_get(
        "model_backend",
        f"{settings.hosted_base_url.rstrip('/')}/models",
        headers={"Authorization": f"Bearer {settings.hosted_api_key}"}
    )


async def check_zendesk_api() -> DependencyStatus:
    """Check Zendesk credentials against the current-user endpoint"""
    try:
        settings.validate_ticket_source_settings()
    except ConfigurationInvalid as e:
        return DependencyStatus(name="zendesk_api", status="degraded", error_message=e.message)

    domain = normalize_domain(settings.zendesk_domain)
    return await _timed_get(
        "zendesk_api",
        f"https://{domain}/api/v2/users/me.json",
        auth=(f"{settings.zendesk_email}/token", settings.zendesk_api_token)
    )


async def check_store() -> DependencyStatus:
    """Check the key-value store backend"""
    if settings.storage_backend.lower() != "supabase":
        return DependencyStatus(name="store", status="healthy")

    if not settings.supabase_url or not settings.supabase_key:
        return DependencyStatus(
            name="store",
            status="unhealthy",
            error_message="Supabase credentials not configured"
        )

    return await _timed_get(
        "store",
        f"{settings.supabase_url.rstrip('/')}/rest/v1/{settings.supabase_table}",
        params={"select": "key", "limit": 1},
        headers={
            "apikey": settings.supabase_key,
            "Authorization": f"Bearer {settings.supabase_key}",
        }
    )


async def check_all_dependencies() -> Dict[str, DependencyStatus]:
    """
    Check all external dependencies in parallel

    Returns:
        Dictionary mapping dependency names to their status
    """
    dep_names = ["model_backend", "zendesk_api", "store"]
    results = await asyncio.gather(
        check_model_backend(),
        check_zendesk_api(),
        check_store(),
        return_exceptions=True
    )

    dependencies = {}
    for name, result in zip(dep_names, results):
        if isinstance(result, Exception):
            logger.error(f"Unexpected error checking {name}: {result}")
            dependencies[name] = DependencyStatus(
                name=name,
                status="unhealthy",
                error_message=f"Unexpected error: {str(result)}"
            )
        else:
            dependencies[name] = result

    return dependencies


def determine_overall_status(dependencies: Dict[str, DependencyStatus]) -> str:
    """
    Rules:
    - Any critical service unhealthy → "unhealthy"
    - Any other service degraded or unhealthy → "degraded"
    - All healthy → "healthy"
    """
    for service in CRITICAL_SERVICES:
        if service in dependencies and dependencies[service].status == "unhealthy":
            return "unhealthy"

    if any(dep.status in ("degraded", "unhealthy") for dep in dependencies.values()):
        return "degraded"

    return "healthy"


# ============================================================================
# API Endpoints
# ============================================================================

@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check"
)
async def basic_health_check() -> HealthResponse:
    """Always 200; external dependencies are not checked"""
    uptime = time.time() - APP_START_TIME

    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=APP_VERSION,
        uptime_seconds=round(uptime, 2)
    )


@router.get(
    "/dependencies",
    response_model=DependencyHealth,
    status_code=status.HTTP_200_OK,
    summary="Dependency health check"
)
async def dependency_health_check() -> DependencyHealth:
    """
    Check model backend, Zendesk API and store

    Results are cached for 30 seconds to avoid hammering external services.
    """
    global _dependency_cache, _cache_timestamp

    current_time = time.time()
    if _dependency_cache and (current_time - _cache_timestamp) < CACHE_TTL_SECONDS:
        logger.debug("Returning cached dependency health check results")
        return _dependency_cache

    logger.info("Performing dependency health checks")
    dependencies = await check_all_dependencies()

    response = DependencyHealth(
        overall_status=determine_overall_status(dependencies),
        dependencies=dependencies,
        checked_at=datetime.utcnow()
    )

    _dependency_cache = response
    _cache_timestamp = current_time

    unhealthy_deps = [
        name for name, dep in dependencies.items()
        if dep.status == "unhealthy"
    ]
    if unhealthy_deps:
        logger.warning(f"Unhealthy dependencies: {', '.join(unhealthy_deps)}")

    return response
