"""
Keyword API schemas for related keywords and SERP lookups.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from infrastructure.config import get_settings
from infrastructure.database.models import (
    KEYWORD_MAX_LENGTH,
    LANGUAGE_CODE_MAX_LENGTH,
    KeywordProfile,
)
from services.cache_partitioner import dedupe_keywords
from services.result_assembler import RelatedKeywordEntry, SerpEntry


def validate_keyword_list(value: Any) -> Any:
    """Shared checks for the `keywords` array of both endpoints."""
    if not isinstance(value, list) or len(value) == 0:
        raise ValueError("Missing or invalid 'keywords' array in request body")
    if any(not isinstance(kw, str) or kw.strip() == "" for kw in value):
        raise ValueError("All items in 'keywords' array must be non-empty strings")
    if any(len(kw.strip()) > KEYWORD_MAX_LENGTH for kw in value):
        raise ValueError(f"Keywords must be at most {KEYWORD_MAX_LENGTH} characters long")

    limit = get_settings().max_keywords_per_request
    if len(dedupe_keywords(value)) > limit:
        raise ValueError(f"At most {limit} unique keywords are allowed per request")
    return value


def validate_language_code(value: Any) -> Any:
    """`None` means the default; anything else must fit a stored language code."""
    if value is None:
        return value
    if not isinstance(value, str) or not 0 < len(value.strip()) <= LANGUAGE_CODE_MAX_LENGTH:
        raise ValueError(
            f"'language_code' must be a non-empty string of at most {LANGUAGE_CODE_MAX_LENGTH} characters"
        )
    return value.strip()


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Related keywords
# ============================================================================


class RelatedKeywordsRequest(_CamelModel):
    """Request body for POST /keyword/related."""

    keywords: list[str] = Field(
        None, validate_default=True, description="Keywords to look up related keywords for"
    )
    location_code: int | None = Field(
        None, description="DataForSEO location code (e.g., 2826 for UK). Defaults to 2826."
    )
    language_code: str | None = Field(
        None, description='DataForSEO language code (e.g., "en"). Defaults to "en".'
    )

    @field_validator("keywords", mode="before")
    @classmethod
    def check_keywords(cls, value: Any) -> Any:
        return validate_keyword_list(value)

    @field_validator("language_code", mode="before")
    @classmethod
    def check_language_code(cls, value: Any) -> Any:
        return validate_language_code(value)


class _ProfileFields(_CamelModel):
    id: str
    keyword_id: str
    location_code: int
    language_code: str
    ki_competition: float | None = None
    ki_competition_level: str | None = None
    ki_cpc: float | None = None
    ki_search_volume: int | None = None
    ki_low_top_of_page_bid: float | None = None
    ki_high_top_of_page_bid: float | None = None
    ki_categories: list[int] = Field(default_factory=list)
    ki_monthly_searches: list[dict[str, Any]] | None = None
    kp_synonym_clustering_algorithm: str | None = None
    kp_keyword_difficulty: int | None = None
    kp_detected_language: str | None = None
    kp_is_another_language: bool | None = None
    avg_backlinks: float | None = None
    avg_dofollow: float | None = None
    avg_referring_pages: float | None = None
    avg_referring_domains: float | None = None
    avg_referring_main_domains: float | None = None
    avg_rank: float | None = None
    avg_main_domain_rank: float | None = None
    avg_last_updated_time: datetime | None = None
    si_main_intent: str | None = None
    related_keyword_ids: list[str] = Field(default_factory=list)

    @field_validator("ki_categories", "related_keyword_ids", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class KeywordProfileResponse(_ProfileFields):
    """Profile of a requested (seed) keyword."""

    ki_last_check: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RelatedKeywordProfileResponse(_ProfileFields):
    """Profile of a related keyword, carrying its text."""

    keyword_text: str | None = None

    @classmethod
    def from_profile(cls, profile: KeywordProfile, keyword_text: str | None):
        fields = _ProfileFields.model_validate(profile).model_dump()
        return cls(**fields, keyword_text=keyword_text)


class RelatedKeywordsItem(BaseModel):
    """Result for one requested keyword."""

    keyword: str
    related: KeywordProfileResponse | None = None
    keywords: list[RelatedKeywordProfileResponse] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_entry(cls, entry: RelatedKeywordEntry) -> "RelatedKeywordsItem":
        return cls(
            keyword=entry.keyword,
            related=(
                KeywordProfileResponse.model_validate(entry.related) if entry.related else None
            ),
            keywords=[
                RelatedKeywordProfileResponse.from_profile(profile, text)
                for profile, text in entry.keywords
            ],
            error=entry.error,
        )


# ============================================================================
# SERP
# ============================================================================


class SerpRequest(BaseModel):
    """Request body for POST /keyword/serp."""

    keywords: list[str] = Field(
        None, validate_default=True, description="Keywords to fetch Google organic SERPs for"
    )
    language_code: str | None = Field(
        None, description="ISO 639-1 language code (e.g., 'en', 'es'). Defaults to 'en'."
    )
    location_code: int | None = Field(
        None, description="DataForSEO location code (e.g., 2840 for US). Defaults to 2826."
    )

    @field_validator("keywords", mode="before")
    @classmethod
    def check_keywords(cls, value: Any) -> Any:
        return validate_keyword_list(value)

    @field_validator("language_code", mode="before")
    @classmethod
    def check_language_code(cls, value: Any) -> Any:
        return validate_language_code(value)


class SerpView(_CamelModel):
    """Stored SERP. seResultsCount is a string so large counts survive JSON clients."""

    id: str
    task_id: str
    keyword_id: str
    type: str
    se_domain: str
    location_code: int
    language_code: str
    check_url: str
    fetch_timestamp_from_api: datetime | None = None
    refinement_chips: dict[str, Any] | None = None
    item_types: list[str] = Field(default_factory=list)
    se_results_count: str | None = None
    items_count: int | None = None
    created_at: datetime | None = None

    @field_validator("se_results_count", mode="before")
    @classmethod
    def count_as_string(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("item_types", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ResultView(_CamelModel):
    """One stored organic result."""

    id: str
    serp_id: str
    position: int
    url: str
    type: str
    title: str | None = None
    snippet: str | None = None
    created_at: datetime | None = None


class SerpKeywordItem(BaseModel):
    """Result for one requested keyword."""

    keyword: str
    serp: SerpView | None = None
    results: list[ResultView] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_entry(cls, entry: SerpEntry) -> "SerpKeywordItem":
        return cls(
            keyword=entry.keyword,
            serp=SerpView.model_validate(entry.serp) if entry.serp else None,
            results=[ResultView.model_validate(result) for result in entry.results],
            error=entry.error,
        )
