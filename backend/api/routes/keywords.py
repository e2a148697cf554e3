"""
Keyword research routes: related keywords and live organic SERPs.

Both endpoints answer 200 with one entry per unique requested keyword;
failures for individual keywords are reported in the entry's `error`.
"""

import logging

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_related_keywords_service, get_serp_service
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.keywords import (
    RelatedKeywordsItem,
    RelatedKeywordsRequest,
    SerpKeywordItem,
    SerpRequest,
)
from infrastructure.config import get_settings
from services.related_keywords import RelatedKeywordsService
from services.serp import SerpService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/keyword", tags=["Keywords"])
settings = get_settings()


@router.post(
    "/related",
    response_model=list[RelatedKeywordsItem],
    summary="Live/Cached Related Keywords (Batch)",
)
@limiter.limit(get_rate_limit("keyword_lookup"))
async def related_keywords(
    request: Request,
    body: RelatedKeywordsRequest,
    service: RelatedKeywordsService = Depends(get_related_keywords_service),
) -> list[RelatedKeywordsItem]:
    """
    Get related keywords for the given seed keywords.

    Seeds with a fresh cached profile are answered from the database; the
    rest are fetched from DataForSEO in a single call and cached.
    """
    location_code = body.location_code if body.location_code is not None else settings.default_location_code
    language_code = body.language_code if body.language_code is not None else settings.default_language_code

    entries = await service.get_related(body.keywords, location_code, language_code)
    return [RelatedKeywordsItem.from_entry(entry) for entry in entries]


@router.post(
    "/serp",
    response_model=list[SerpKeywordItem],
    summary="Live/Cached Google Organic SERP (Batch)",
)
@limiter.limit(get_rate_limit("keyword_lookup"))
async def serp(
    request: Request,
    body: SerpRequest,
    service: SerpService = Depends(get_serp_service),
) -> list[SerpKeywordItem]:
    """
    Get Google organic SERPs for the given keywords.

    Fresh cached SERPs are returned as is; the rest are fetched live from
    DataForSEO, one provider task per keyword, and stored.
    """
    location_code = body.location_code if body.location_code is not None else settings.default_location_code
    language_code = body.language_code if body.language_code is not None else settings.default_language_code

    entries = await service.get_serps(body.keywords, location_code, language_code)
    return [SerpKeywordItem.from_entry(entry) for entry in entries]
