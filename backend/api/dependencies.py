"""
API dependencies for API-key authentication and service wiring.
"""

import logging
import secrets
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from adapters.seo.dataforseo_adapter import DataForSEOAdapter
from core.interfaces.repositories import FreshnessStore
from infrastructure.config import get_settings
from infrastructure.database.store import SqlFreshnessStore
from services.related_keywords import RelatedKeywordsService
from services.serp import SerpService

logger = logging.getLogger(__name__)


async def require_api_key(
    x_api_key: Annotated[Optional[str], Header(alias="X-API-Key")] = None,
) -> None:
    """
    Reject requests without a valid X-API-Key header.

    With no API_KEY configured the check is skipped in development and
    every request is rejected elsewhere.
    """
    settings = get_settings()
    expected = settings.api_key

    if not expected:
        if settings.is_development:
            return
        logger.error("API_KEY is not configured; rejecting request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )

    if not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )


def get_store(request: Request) -> FreshnessStore:
    """Freshness store over the process-wide Database."""
    return SqlFreshnessStore(request.app.state.database)


def get_dataforseo_adapter(request: Request) -> DataForSEOAdapter:
    """The process-wide DataForSEO adapter."""
    return request.app.state.dataforseo


def get_related_keywords_service(
    store: Annotated[FreshnessStore, Depends(get_store)],
    adapter: Annotated[DataForSEOAdapter, Depends(get_dataforseo_adapter)],
) -> RelatedKeywordsService:
    settings = get_settings()
    return RelatedKeywordsService(store, adapter, ttl_hours=settings.cache_ttl_hours)


def get_serp_service(
    store: Annotated[FreshnessStore, Depends(get_store)],
    adapter: Annotated[DataForSEOAdapter, Depends(get_dataforseo_adapter)],
) -> SerpService:
    settings = get_settings()
    return SerpService(
        store,
        adapter,
        ttl_hours=settings.cache_ttl_hours,
        concurrency=settings.serp_task_concurrency,
    )
