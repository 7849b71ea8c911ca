"""SerpAPI search backend."""

from typing import Any

import httpx

from utils.logger import get_logger

from .errors import SearchConfigurationError, SearchProviderError

logger = get_logger(__name__)

SERP_API_URL = "https://serpapi.com/search"


class SerpApiSearchProvider:
    """
    Thin client for the SerpAPI search endpoint.

    Contract: non-2xx raises; a 2xx reply with no organic results is a valid,
    empty result, returned as-is for the caller to parse.
    """

    def __init__(
        self,
        api_key: str | None,
        engine: str = "google",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key or ""
        self.engine = engine
        self.timeout = timeout
        self._transport = transport

    def search(self, query: str, num_results: int = 10, engine: str | None = None) -> dict[str, Any]:
        """
        Run one search.

        Args:
            query: Search query
            num_results: Number of results to request
            engine: Override the configured engine

        Returns:
            Raw SerpAPI JSON

        Raises:
            SearchConfigurationError: no API key configured
            SearchProviderError: non-2xx reply, timeout or network failure
        """
        if not self.api_key:
            raise SearchConfigurationError(
                "SERP API key not configured. Please set SERP_API_KEY in your .env file."
            )

        params = {
            "api_key": self.api_key,
            "q": query,
            "num": num_results,
            "engine": engine or self.engine,
        }

        client_kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self._transport is not None:
            client_kwargs["transport"] = self._transport

        try:
            with httpx.Client(**client_kwargs) as client:
                response = client.get(SERP_API_URL, params=params)
        except httpx.TimeoutException as e:
            raise SearchProviderError(f"SERP API request timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise SearchProviderError(f"SERP API request failed: {e}") from e

        if not response.is_success:
            raise SearchProviderError(f"SERP API request failed: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise SearchProviderError("SERP API returned invalid JSON") from e

        if not isinstance(data, dict):
            raise SearchProviderError("SERP API returned an unexpected payload")

        logger.debug(
            "SERP API search complete",
            extra={
                "extra_fields": {
                    "query": query,
                    "engine": params["engine"],
                    "organic_count": len(data.get("organic_results") or []),
                }
            },
        )
        return data
