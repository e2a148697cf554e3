# SEO data adapters
# DataForSEO integration

from .dataforseo_adapter import (
    DataForSEOAdapter,
    DataForSEOAPIError,
    DataForSEOConfigError,
    DataForSEOConnectionError,
    DataForSEOError,
    create_dataforseo_adapter,
)
from .dataforseo_models import (
    KeywordIdeaItem,
    KeywordIdeasResponse,
    KeywordIdeasTask,
    SerpItem,
    SerpResponse,
    SerpResult,
    SerpTask,
)

__all__ = [
    "DataForSEOAdapter",
    "DataForSEOError",
    "DataForSEOConfigError",
    "DataForSEOConnectionError",
    "DataForSEOAPIError",
    "create_dataforseo_adapter",
    "KeywordIdeaItem",
    "KeywordIdeasResponse",
    "KeywordIdeasTask",
    "SerpItem",
    "SerpResponse",
    "SerpResult",
    "SerpTask",
]
