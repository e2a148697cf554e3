"""
DataForSEO v3 adapter for keyword ideas and live Google organic SERPs.

Every request cycle makes exactly one HTTP call carrying the whole batch.
Responses are validated into the envelopes in `dataforseo_models` before
they are handed back.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from infrastructure.config.settings import Settings

from .dataforseo_models import KeywordIdeasResponse, SerpResponse

logger = logging.getLogger(__name__)

KEYWORD_IDEAS_ENDPOINT = "/v3/dataforseo_labs/google/keyword_ideas/live"
SERP_ORGANIC_ENDPOINT = "/v3/serp/google/organic/live/regular"


# Custom Exceptions
class DataForSEOError(Exception):
    """Base exception for DataForSEO adapter errors."""

    pass


class DataForSEOConfigError(DataForSEOError):
    """Raised when no DataForSEO credential is configured."""

    pass


class DataForSEOConnectionError(DataForSEOError):
    """Raised when the DataForSEO API cannot be reached."""

    pass


class DataForSEOAPIError(DataForSEOError):
    """Raised when DataForSEO answers with an error or an unreadable envelope."""

    pass


class DataForSEOAdapter:
    """
    DataForSEO API adapter.

    Authenticates with a pre-encoded Basic credential. The underlying
    httpx client is created lazily and shared for the adapter's lifetime.
    """

    def __init__(
        self,
        credential: Optional[str],
        base_url: str = "https://api.dataforseo.com",
        timeout: float = 60.0,
        related_limit: int = 10,
        serp_depth: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize DataForSEO adapter.

        Args:
            credential: base64 "login:password" used in the Basic auth header
            base_url: API root
            timeout: Request timeout in seconds
            related_limit: Maximum related keywords requested per batch
            serp_depth: Number of SERP positions requested per keyword
            transport: Optional httpx transport (used by tests)
        """
        self.credential = credential
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.related_limit = related_limit
        self.serp_depth = serp_depth
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "DataForSEOAdapter":
        return cls(
            credential=settings.dataforseo_credential,
            base_url=settings.dataforseo_base_url,
            timeout=settings.dataforseo_timeout,
            related_limit=settings.related_keywords_limit,
            serp_depth=settings.serp_depth,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.credential)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client with auth headers."""
        if not self.is_configured:
            logger.error("DataForSEO credential (DATAFORSEO_BEARER or login/password) is not configured")
            raise DataForSEOConfigError("Server configuration error.")

        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Basic {self.credential}",
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _post(self, endpoint: str, payload: list[dict[str, Any]]) -> dict[str, Any]:
        """POST one batch and return the decoded JSON envelope."""
        client = self._get_client()
        try:
            response = await client.post(endpoint, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"DataForSEO request timed out: {e}")
            raise DataForSEOConnectionError(
                f"DataForSEO did not respond within {self.timeout} seconds"
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to connect to DataForSEO: {e}")
            raise DataForSEOConnectionError(f"Failed to connect to DataForSEO: {e}")

        if response.status_code >= 400:
            logger.error(
                f"DataForSEO API error [{response.status_code}]: {response.text[:500]}"
            )
            raise DataForSEOAPIError(
                f"DataForSEO request failed with status code {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Failed to parse DataForSEO response: {e}")
            raise DataForSEOAPIError(f"Invalid JSON response from DataForSEO: {e}")

    async def keyword_ideas(
        self,
        keywords: list[str],
        location_code: int,
        language_code: str,
    ) -> KeywordIdeasResponse:
        """
        Fetch related keyword ideas for a batch of seed keywords.

        The provider answers with a single task whose single result lists
        the candidate related keywords for the whole batch.

        Raises:
            DataForSEOConfigError: If no credential is configured
            DataForSEOConnectionError: On transport failure
            DataForSEOAPIError: On HTTP error or malformed envelope
        """
        payload = [
            {
                "keywords": keywords,
                "location_code": location_code,
                "language_code": language_code,
                "limit": self.related_limit,
            }
        ]
        logger.info(
            "Fetching related keywords from API for: %s [%s/%s]",
            ", ".join(keywords),
            location_code,
            language_code,
        )
        body = await self._post(KEYWORD_IDEAS_ENDPOINT, payload)
        try:
            return KeywordIdeasResponse.model_validate(body)
        except ValidationError as e:
            logger.error(f"Malformed DataForSEO keyword ideas response: {e}")
            raise DataForSEOAPIError(f"Malformed DataForSEO keyword ideas response: {e}")

    async def serp_organic(
        self,
        keywords: list[str],
        location_code: int,
        language_code: str,
    ) -> SerpResponse:
        """
        Fetch live Google organic SERPs, one provider task per keyword.

        Each sub-request is tagged with its keyword so tasks can be matched
        back to the keyword that produced them.

        Raises:
            DataForSEOConfigError: If no credential is configured
            DataForSEOConnectionError: On transport failure
            DataForSEOAPIError: On HTTP error or malformed envelope
        """
        payload = [
            {
                "keyword": keyword,
                "language_code": language_code,
                "location_code": location_code,
                "device": "desktop",
                "os": "windows",
                "depth": self.serp_depth,
                "tag": keyword,
            }
            for keyword in keywords
        ]
        logger.info("Proceeding with live SERP call for keywords: %s", ", ".join(keywords))
        body = await self._post(SERP_ORGANIC_ENDPOINT, payload)
        try:
            envelope = SerpResponse.model_validate(body)
        except ValidationError as e:
            logger.error(f"Malformed DataForSEO SERP response: {e}")
            raise DataForSEOAPIError(f"Malformed DataForSEO SERP response: {e}")

        logger.info(
            "Data received from DataForSEO: tasks_count=%s tasks_error=%s",
            envelope.tasks_count,
            envelope.tasks_error,
        )
        return envelope


def create_dataforseo_adapter(settings: Settings) -> DataForSEOAdapter:
    """Build the process-wide adapter from settings."""
    adapter = DataForSEOAdapter.from_settings(settings)
    if not adapter.is_configured:
        logger.warning("DataForSEO credential missing; live fetches will report a configuration error")
    return adapter
