"""
API request and response schemas.
"""

from .keywords import (
    KeywordProfileResponse,
    RelatedKeywordProfileResponse,
    RelatedKeywordsItem,
    RelatedKeywordsRequest,
    ResultView,
    SerpKeywordItem,
    SerpRequest,
    SerpView,
)

__all__ = [
    "KeywordProfileResponse",
    "RelatedKeywordProfileResponse",
    "RelatedKeywordsItem",
    "RelatedKeywordsRequest",
    "ResultView",
    "SerpKeywordItem",
    "SerpRequest",
    "SerpView",
]
