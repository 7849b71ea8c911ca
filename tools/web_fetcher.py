"""
HTTP page fetcher: URL validation, one GET, main-text extraction.
"""

from urllib.parse import urlsplit

import httpx

from config.config import DEFAULT_USER_AGENT
from utils.logger import get_logger

from .content_extractor import extract_main_content, truncate_content
from .errors import FetchError, FetchTimeoutError, InvalidURLError

logger = get_logger(__name__)


def validate_url(url: str) -> str:
    """
    Syntactic URL check; runs before any network call.

    Raises:
        InvalidURLError: not an absolute http(s) URL with a host
    """
    candidate = (url or "").strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        raise InvalidURLError("Invalid URL provided")

    try:
        parts = urlsplit(candidate)
    except ValueError as e:
        raise InvalidURLError("Invalid URL provided") from e

    if parts.scheme.lower() not in ("http", "https") or not parts.netloc or not parts.hostname:
        raise InvalidURLError("Invalid URL provided")

    return candidate


class WebFetcher:
    """
    Fetches a page and returns its readable text, truncated to ``max_content_length``.

    Both a blocking (``fetch_content``) and an async (``afetch_content``) variant are provided;
    the async one is cancellation-aware, so cancelling the awaiting task
    aborts the request.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_content_length: int = 10000,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            timeout: Per-request timeout in seconds
            max_content_length: Maximum characters of extracted text
            user_agent: Value of the User-Agent header
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.timeout = timeout
        self.max_content_length = max_content_length
        self.user_agent = user_agent
        self._transport = transport

    def _client_kwargs(self) -> dict:
        kwargs = {
            "timeout": self.timeout,
            "follow_redirects": True,
            "headers": {"User-Agent": self.user_agent},
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return kwargs

    def fetch_content(self, url: str) -> str:
        """
        Fetch ``url`` and return its main text.

        Raises:
            InvalidURLError: URL failed validation
            FetchTimeoutError: the request timed out
            FetchError: non-2xx status or network failure
        """
        url = validate_url(url)
        try:
            with httpx.Client(**self._client_kwargs()) as client:
                response = client.get(url)
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"Request timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Network error while fetching URL: {e}") from e

        return self._process_response(url, response)

    async def afetch_content(self, url: str) -> str:
        """Async variant of ``fetch_content``; same errors."""
        url = validate_url(url)
        try:
            async with httpx.AsyncClient(**self._client_kwargs()) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"Request timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Network error while fetching URL: {e}") from e

        return self._process_response(url, response)

    def _process_response(self, url: str, response: httpx.Response) -> str:
        if not response.is_success:
            raise FetchError(f"Failed to fetch URL: HTTP {response.status_code}")

        content = truncate_content(extract_main_content(response.text), self.max_content_length)

        logger.debug(
            "Fetched page",
            extra={
                "extra_fields": {
                    "url": url,
                    "status": response.status_code,
                    "content_length": len(content),
                }
            },
        )
        return content
