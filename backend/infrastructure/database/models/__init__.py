"""
SQLAlchemy database models.
"""

from .base import Base, CreatedAtMixin, TimestampMixin
from .keyword import KEYWORD_MAX_LENGTH, LANGUAGE_CODE_MAX_LENGTH, Keyword, KeywordProfile
from .upstream import Job, JobStatus, RelatedResult, Result, Serp, Task

__all__ = [
    "Base",
    "CreatedAtMixin",
    "TimestampMixin",
    "KEYWORD_MAX_LENGTH",
    "LANGUAGE_CODE_MAX_LENGTH",
    "Keyword",
    "KeywordProfile",
    "Job",
    "JobStatus",
    "Task",
    "Serp",
    "Result",
    "RelatedResult",
]
