"""
Service layer for business logic.
"""

from services.cache_partitioner import CachePartitioner, dedupe_keywords
from services.related_keywords import RelatedKeywordsService
from services.result_assembler import RelatedKeywordEntry, ResultAssembler, SerpEntry
from services.serp import SerpService

__all__ = [
    "CachePartitioner",
    "dedupe_keywords",
    "RelatedKeywordsService",
    "RelatedKeywordEntry",
    "ResultAssembler",
    "SerpEntry",
    "SerpService",
]
